from datetime import date, timedelta, timezone

from backend.classroom_module.models import (
    ActivityLog,
    Assignment,
    Notification,
    StudentAssignment,
    SubmissionFile,
    UserRole,
    utcnow,
)


def test_class_wide_assignment_targets_every_enrolled_student(client, make_user, make_classroom, teacher, auth):
    pupils = [make_user(UserRole.STUDENT) for _ in range(3)]
    classroom = make_classroom(teacher, students=pupils)

    response = client.post(
        "/api/teacher/assignments",
        json={"title": "  Essay  ", "classroom_id": classroom.id, "due_date": "2030-01-01T00:00:00"},
        headers=auth(teacher),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["assignment"]["title"] == "Essay"
    assert body["student_assignments"] == 3


def test_assignment_creation_validates_targets(client, make_user, make_classroom, teacher, auth):
    enrolled = make_user(UserRole.STUDENT)
    stranger = make_user(UserRole.STUDENT)
    empty = make_classroom(teacher, name="Empty")
    classroom = make_classroom(teacher, students=[enrolled])

    no_students = client.post(
        "/api/teacher/assignments", json={"title": "A", "classroom_id": empty.id}, headers=auth(teacher)
    )
    assert no_students.status_code == 400
    assert no_students.json()["message"] == "This classroom has no enrolled students"

    bad_targets = client.post(
        "/api/teacher/assignments",
        json={"title": "A", "classroom_id": classroom.id, "is_class_wide": False, "student_ids": [stranger.id]},
        headers=auth(teacher),
    )
    assert bad_targets.status_code == 400
    assert bad_targets.json()["errors"][0]["invalid_ids"] == [stranger.id]

    blank_title = client.post(
        "/api/teacher/assignments", json={"title": "   ", "classroom_id": classroom.id}, headers=auth(teacher)
    )
    assert blank_title.status_code == 400


def test_students_cannot_use_teacher_routes(client, student, auth):
    assert client.get("/api/teacher/assignments", headers=auth(student)).status_code == 403


def test_update_can_clear_due_date(client, make_user, make_classroom, make_assignment, teacher, auth):
    pupil = make_user(UserRole.STUDENT)
    classroom = make_classroom(teacher, students=[pupil])
    assignment = make_assignment(classroom, teacher, students=[pupil], due_date=utcnow() + timedelta(days=3))

    response = client.put(
        f"/api/teacher/assignments/{assignment.id}", json={"due_date": None}, headers=auth(teacher)
    )

    assert response.status_code == 200
    assert response.json()["assignment"]["due_date"] is None
    assert response.json()["assignment"]["title"] == "Homework 1"


def test_deleting_assignment_removes_submissions_and_files(
    client, db, make_user, make_classroom, make_assignment, teacher, auth, tmp_path
):
    pupil = make_user(UserRole.STUDENT)
    classroom = make_classroom(teacher, students=[pupil])
    assignment = make_assignment(classroom, teacher, students=[pupil])
    stored = tmp_path / "work.pdf"
    stored.write_bytes(b"%PDF-1.4")
    assignment_id = assignment.id
    row = assignment.student_assignments[0]
    db.add(SubmissionFile(student_assignment_id=row.id, filename="work.pdf", file_path=str(stored), file_size=8, file_type="application/pdf"))
    db.commit()

    response = client.delete(f"/api/teacher/assignments/{assignment_id}", headers=auth(teacher))

    assert response.status_code == 200
    db.expire_all()
    assert db.get(Assignment, assignment_id) is None
    assert db.query(StudentAssignment).filter_by(assignment_id=assignment_id).count() == 0
    assert db.query(SubmissionFile).count() == 0
    assert not stored.exists()


def test_grading_pending_submission_completes_it(client, make_user, make_classroom, make_assignment, teacher, auth):
    pupil = make_user(UserRole.STUDENT)
    classroom = make_classroom(teacher, students=[pupil])
    assignment = make_assignment(classroom, teacher, students=[pupil])
    row_id = assignment.student_assignments[0].id

    out_of_range = client.put(f"/api/teacher/submissions/{row_id}", json={"grade": 120}, headers=auth(teacher))
    assert out_of_range.status_code == 400

    response = client.put(
        f"/api/teacher/submissions/{row_id}", json={"grade": 88.5, "feedback": "Good"}, headers=auth(teacher)
    )
    assert response.status_code == 200
    submission = response.json()["submission"]
    assert submission["status"] == "COMPLETED"
    assert submission["grade"] == 88.5
    assert submission["student"]["id"] == pupil.id


def test_other_teachers_cannot_grade(client, make_user, make_classroom, make_assignment, teacher, auth):
    pupil = make_user(UserRole.STUDENT)
    stranger = make_user(UserRole.TEACHER)
    classroom = make_classroom(teacher, students=[pupil])
    assignment = make_assignment(classroom, teacher, students=[pupil])
    row_id = assignment.student_assignments[0].id

    assert client.put(f"/api/teacher/submissions/{row_id}", json={"grade": 50}, headers=auth(stranger)).status_code == 403
    assert client.put("/api/teacher/submissions/9999", json={"grade": 50}, headers=auth(stranger)).status_code == 404


def test_reminders_create_one_notification_per_student(
    client, db, make_user, make_classroom, make_assignment, teacher, auth
):
    pupils = [make_user(UserRole.STUDENT) for _ in range(2)]
    outsider = make_user(UserRole.STUDENT)
    classroom = make_classroom(teacher, students=pupils)
    assignment = make_assignment(classroom, teacher, students=pupils, title="Lab report")

    rejected = client.post(
        f"/api/teacher/assignments/{assignment.id}/send-reminders",
        json={"student_ids": [pupils[0].id, outsider.id]},
        headers=auth(teacher),
    )
    assert rejected.status_code == 400
    db.expire_all()
    assert db.query(Notification).count() == 0

    sent = client.post(
        f"/api/teacher/assignments/{assignment.id}/send-reminders",
        json={"student_ids": [pupil.id for pupil in pupils]},
        headers=auth(teacher),
    )
    assert sent.status_code == 200
    assert sent.json()["sent"] == 2

    inbox = client.get("/api/notifications/", headers=auth(pupils[0])).json()["notifications"]
    assert len(inbox) == 1
    assert '"Lab report"' in inbox[0]["message"]
    assert inbox[0]["sender"]["id"] == teacher.id

    marked = client.put(f"/api/notifications/{inbox[0]['id']}/read", headers=auth(pupils[0]))
    assert marked.json()["notification"]["is_read"] is True
    assert client.put(f"/api/notifications/{inbox[0]['id']}/read", headers=auth(pupils[1])).status_code == 404
    assert client.put("/api/notifications/read-all", headers=auth(pupils[1])).json()["updated"] == 1


def test_attendance_upserts_one_record_per_student_per_day(client, db, make_user, make_classroom, teacher, auth):
    pupils = [make_user(UserRole.STUDENT) for _ in range(2)]
    stranger = make_user(UserRole.STUDENT)
    classroom = make_classroom(teacher, students=pupils)
    day = date(2024, 9, 2)
    records = [{"student_id": pupils[0].id, "is_present": True}, {"student_id": pupils[1].id, "is_present": False}]

    first = client.post(
        f"/api/teacher/attendance/{classroom.id}", json={"date": day.isoformat(), "attendance_records": records}, headers=auth(teacher)
    )
    records[1]["is_present"] = True
    second = client.post(
        f"/api/teacher/attendance/{classroom.id}", json={"date": day.isoformat(), "attendance_records": records}, headers=auth(teacher)
    )
    assert first.status_code == 200
    assert second.json()["records"] == 2

    db.expire_all()
    assert db.query(ActivityLog).filter(ActivityLog.is_present.is_not(None)).count() == 2

    fetched = client.get(f"/api/teacher/attendance/{classroom.id}", params={"date": day.isoformat()}, headers=auth(teacher))
    assert sorted(item["is_present"] for item in fetched.json()["attendance_records"]) == [True, True]

    invalid = client.post(
        f"/api/teacher/attendance/{classroom.id}",
        json={"date": day.isoformat(), "attendance_records": [{"student_id": stranger.id, "is_present": True}]},
        headers=auth(teacher),
    )
    assert invalid.status_code == 400


def test_classroom_report_aggregates_real_rows(client, make_user, make_classroom, make_assignment, teacher, auth):
    pupils = [make_user(UserRole.STUDENT) for _ in range(4)]
    classroom = make_classroom(teacher, students=pupils)
    make_assignment(
        classroom,
        teacher,
        students=pupils,
        grades={pupils[0].id: 80, pupils[1].id: 90, pupils[2].id: 100},
    )

    response = client.get(
        f"/api/teacher/analytics/{classroom.id}", params={"time_range": "week"}, headers=auth(teacher)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["assignment_data"]["assignment_completion_rate"] == 75
    assert body["assignment_data"]["assignment_scores"] == [{"name": "Homework 1", "average": 90}]
    performance = body["student_performance"]
    assert (performance["high_performers"], performance["average_performers"], performance["low_performers"]) == (3, 0, 0)
    assert performance["unscored"] == 1

    bad_range = client.get(f"/api/teacher/analytics/{classroom.id}", params={"time_range": "decade"}, headers=auth(teacher))
    assert bad_range.status_code == 400


def test_report_for_empty_classroom_has_zero_completion(client, make_classroom, teacher, auth):
    classroom = make_classroom(teacher)

    body = client.get(f"/api/teacher/analytics/{classroom.id}", headers=auth(teacher)).json()

    assert body["assignment_data"]["assignment_completion_rate"] == 0
    assert body["attendance_data"]["average_attendance"] == 0
    assert body["assignment_data"]["assignments_by_status"][0] == {"name": "Completed", "value": 0}


def test_due_date_with_offset_is_stored_in_utc(client, make_user, make_classroom, teacher, auth):
    pupil = make_user(UserRole.STUDENT)
    classroom = make_classroom(teacher, students=[pupil])
    due_utc = (utcnow() + timedelta(hours=2)).replace(microsecond=0)
    due_local = due_utc.replace(tzinfo=timezone.utc).astimezone(timezone(timedelta(hours=-5)))

    created = client.post(
        "/api/teacher/assignments",
        json={"title": "Quiz", "classroom_id": classroom.id, "due_date": due_local.isoformat()},
        headers=auth(teacher),
    )
    assert created.status_code == 201
    assert created.json()["assignment"]["due_date"] == due_utc.isoformat()

    [listed] = client.get("/api/student/assignments", headers=auth(pupil)).json()["assignments"]
    assert listed["status"] == "PENDING"

    moved = due_utc - timedelta(hours=3)
    updated = client.put(
        f"/api/teacher/assignments/{created.json()['assignment']['id']}",
        json={"due_date": moved.replace(tzinfo=timezone.utc).astimezone(timezone(timedelta(hours=9))).isoformat()},
        headers=auth(teacher),
    )
    assert updated.json()["assignment"]["due_date"] == moved.isoformat()
    [listed] = client.get("/api/student/assignments", headers=auth(pupil)).json()["assignments"]
    assert listed["status"] == "OVERDUE"
