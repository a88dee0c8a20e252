from datetime import timedelta

from backend.classroom_module.models import ActivityLog, User, UserRole, utcnow


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok", "message": "Server is running"}


def test_admin_endpoints_reject_other_roles(client, teacher, student, auth):
    for user in (teacher, student):
        assert client.get("/api/admin/dashboard-stats", headers=auth(user)).status_code == 403
        assert client.get("/api/analytics/classrooms", headers=auth(user)).status_code == 403
        assert client.get("/api/users/", headers=auth(user)).status_code == 403
    assert client.get("/api/admin/system-stats").status_code == 401


def test_dashboard_stats_count_active_rows_and_recent_activity(
    client, make_user, make_classroom, make_assignment, admin, teacher, student, auth
):
    make_user(UserRole.STUDENT, is_active=False)
    classroom = make_classroom(teacher, students=[student], name="Chemistry")
    make_assignment(classroom, teacher, students=[student], title="Titration", due_date=utcnow() + timedelta(days=1))
    make_assignment(classroom, teacher, students=[student], title="Past", due_date=utcnow() - timedelta(days=1))

    body = client.get("/api/admin/dashboard-stats", headers=auth(admin)).json()

    assert body["total_users"] == 3
    assert body["total_teachers"] == 1
    assert body["total_students"] == 1
    assert body["total_classrooms"] == 1
    assert body["active_assignments"] == 1
    kinds = {item["type"] for item in body["recent_activities"]}
    assert kinds == {"classroom_created", "student_enrolled", "assignment_created"}
    assert len(body["recent_activities"]) <= 10


def test_system_stats(client, db, make_user, make_classroom, make_assignment, admin, teacher, auth):
    pupils = [make_user(UserRole.STUDENT) for _ in range(2)]
    classroom = make_classroom(teacher, students=pupils)
    make_assignment(classroom, teacher, students=pupils, grades={pupils[0].id: 70})
    db.add_all(
        [
            ActivityLog(user_id=pupils[0].id, date=utcnow(), action="ATTENDANCE", is_present=True),
            ActivityLog(user_id=pupils[1].id, date=utcnow(), action="ATTENDANCE", is_present=False),
            ActivityLog(user_id=pupils[0].id, date=utcnow(), action="QUIZ", performance_score=60),
            ActivityLog(user_id=pupils[1].id, date=utcnow(), action="QUIZ", performance_score=90),
        ]
    )
    db.commit()

    body = client.get("/api/admin/system-stats", headers=auth(admin)).json()

    assert {item["role"]: item["count"] for item in body["users"]} == {"ADMIN": 1, "TEACHER": 1, "STUDENT": 2}
    assert body["classrooms"] == {"total_classrooms": 1, "avg_students_per_classroom": 2}
    assert body["assignments"]["avg_completion_rate"] == 50
    assert body["performance"] == {"avg_performance_score": 75, "min_performance_score": 60, "max_performance_score": 90}
    assert body["attendance"] == {"total_records": 2, "present_count": 1, "attendance_rate": 50}


def test_analytics_averages_use_graded_rows_only(
    client, make_user, make_classroom, make_assignment, admin, teacher, auth
):
    pupils = [make_user(UserRole.STUDENT) for _ in range(4)]
    classroom = make_classroom(teacher, students=pupils)
    make_assignment(classroom, teacher, students=pupils, grades={pupils[0].id: 80, pupils[1].id: 90, pupils[2].id: 100})

    [summary] = client.get("/api/analytics/classrooms", headers=auth(admin)).json()["classrooms"]
    assert summary["average_score"] == 90
    assert summary["graded_count"] == 3
    assert summary["student_count"] == 4

    [teacher_summary] = client.get("/api/analytics/teachers", headers=auth(admin)).json()["teachers"]
    assert teacher_summary["average_class_score"] == 90
    assert teacher_summary["classroom_count"] == 1

    students = client.get("/api/analytics/students", params={"classroom": classroom.id}, headers=auth(admin)).json()
    scores = sorted(item["average_score"] for item in students["students"])
    assert scores == [0, 80, 90, 100]


def test_date_filter_skips_classrooms_without_assignments_in_range(
    client, make_user, make_classroom, make_assignment, admin, teacher, auth
):
    pupil = make_user(UserRole.STUDENT)
    busy = make_classroom(teacher, students=[pupil], name="Busy")
    make_classroom(teacher, students=[pupil], name="Idle")
    make_assignment(busy, teacher, students=[pupil])

    since = (utcnow() - timedelta(days=1)).isoformat()
    body = client.get("/api/analytics/classrooms", params={"date_from": since}, headers=auth(admin)).json()

    assert [item["name"] for item in body["classrooms"]] == ["Busy"]


def test_teacher_analytics_are_scoped_to_taught_classrooms(
    client, make_user, make_classroom, make_assignment, teacher, auth
):
    other = make_user(UserRole.TEACHER)
    pupil = make_user(UserRole.STUDENT)
    mine = make_classroom(teacher, students=[pupil], name="Mine")
    theirs = make_classroom(other, students=[pupil], name="Theirs")
    make_assignment(mine, teacher, students=[pupil], grades={pupil.id: 90})

    classrooms = client.get("/api/analytics/teacher/classrooms", headers=auth(teacher)).json()["classrooms"]
    assert [item["name"] for item in classrooms] == ["Mine"]

    denied = client.get("/api/analytics/teacher/students", params={"classroom": theirs.id}, headers=auth(teacher))
    assert denied.status_code == 403
    assert denied.json() == {"message": "Not authorized to access this classroom"}
    missing = client.get("/api/analytics/teacher/students", params={"classroom": 9999}, headers=auth(teacher))
    assert missing.status_code == 404

    [summary] = client.get(
        "/api/analytics/teacher/students", params={"classroom": mine.id}, headers=auth(teacher)
    ).json()["students"]
    assert summary["average_score"] == 90
    assert summary["assignments_completed"] == 1


def test_admin_user_management(client, db, make_classroom, admin, teacher, auth):
    payload = {"first_name": "Ada", "last_name": "L", "email": "ada@school.test", "password": "abcdef", "role": "STUDENT"}
    created = client.post("/api/users/", json=payload, headers=auth(admin))
    assert created.status_code == 201
    user_id = created.json()["user"]["id"]

    duplicate = client.post("/api/users/", json=payload, headers=auth(admin))
    assert duplicate.status_code == 400

    updated = client.put(f"/api/users/{user_id}", json={"is_active": False}, headers=auth(admin))
    assert updated.json()["user"]["is_active"] is False
    assert updated.json()["user"]["first_name"] == "Ada"

    make_classroom(teacher)
    owner_delete = client.delete(f"/api/users/{teacher.id}", headers=auth(admin))
    assert owner_delete.status_code == 400

    assert client.delete(f"/api/users/{user_id}", headers=auth(admin)).status_code == 200
    db.expire_all()
    assert db.get(User, user_id) is None
    assert client.get(f"/api/users/{user_id}", headers=auth(admin)).status_code == 404


def test_user_search_requires_a_filter(client, make_user, teacher, auth):
    make_user(UserRole.STUDENT, first_name="Grace")

    assert client.get("/api/users/search", headers=auth(teacher)).status_code == 400
    found = client.get("/api/users/search", params={"query": "grace"}, headers=auth(teacher)).json()["users"]
    assert [user["first_name"] for user in found] == ["Grace"]
