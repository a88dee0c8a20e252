from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..analytics_service import DEFAULT_TIME_RANGE, classroom_report
from ..assignment_service import (
    create_assignment,
    delete_assignment,
    get_assignment_for_teacher,
    get_submission_for_teacher,
    grade_submission,
    list_classroom_assignments,
    list_classroom_students,
    list_taught_assignments,
    send_reminders,
    update_assignment,
)
from ..attendance_service import get_attendance, submit_attendance
from ..classroom_service import get_classroom_or_404, list_classrooms_for
from ..database import get_db_session
from ..middleware import require_roles
from ..models import User, UserRole
from ..permissions import Action, Resource, authorize
from ..schemas import (
    AssignmentCreateRequest,
    AssignmentOut,
    AssignmentUpdateRequest,
    AttendanceSubmitRequest,
    MessageResponse,
    ReminderRequest,
    SubmissionEnvelope,
    SubmissionOut,
    SubmissionUpdateRequest,
    UserBrief,
    UserListItem,
)
from .serializers import assignment_summary, classroom_detail, classroom_summary

router = APIRouter(prefix="/api/teacher", tags=["Teacher"])

staff = require_roles(UserRole.TEACHER, UserRole.ADMIN)


@router.get("/classrooms")
def taught_classrooms(db: Session = Depends(get_db_session), current_user: User = Depends(staff)):
    return {"classrooms": [classroom_summary(classroom) for classroom in list_classrooms_for(db, current_user)]}


@router.get("/classrooms/{classroom_id}")
def classroom_details(classroom_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(staff)):
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(current_user, Resource.CLASSROOM, Action.TEACH, classroom, "You do not have access to this classroom")
    return {"classroom": classroom_detail(classroom)}


@router.get("/classrooms/{classroom_id}/students")
def classroom_students(classroom_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(staff)):
    students = list_classroom_students(db, classroom_id, current_user)
    return {"students": [UserListItem.model_validate(student) for student in students]}


@router.get("/classrooms/{classroom_id}/assignments")
def classroom_assignments(
    classroom_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(staff)
):
    assignments = list_classroom_assignments(db, classroom_id, current_user)
    return {"assignments": [assignment_summary(assignment) for assignment in assignments]}


@router.get("/assignments")
def all_assignments(db: Session = Depends(get_db_session), current_user: User = Depends(staff)):
    assignments = list_taught_assignments(db, current_user)
    return {"assignments": [assignment_summary(assignment, with_classroom=True) for assignment in assignments]}


@router.get("/assignments/{assignment_id}")
def assignment_details(assignment_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(staff)):
    assignment = get_assignment_for_teacher(db, assignment_id, current_user)
    data = AssignmentOut.model_validate(assignment).model_dump()
    data["classroom"] = {"id": assignment.classroom.id, "name": assignment.classroom.name}
    data["creator"] = UserBrief.model_validate(assignment.creator)
    data["submissions"] = [SubmissionOut.model_validate(row) for row in assignment.student_assignments]
    data["total_students"] = len(assignment.classroom.students)
    return {"assignment": data}


@router.post("/assignments", status_code=status.HTTP_201_CREATED)
def new_assignment(
    payload: AssignmentCreateRequest,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(staff),
):
    assignment = create_assignment(
        db,
        title=payload.title,
        description=payload.description,
        due_date=payload.due_date,
        classroom_id=payload.classroom_id,
        is_class_wide=payload.is_class_wide,
        student_ids=payload.student_ids,
        actor=current_user,
    )
    return {
        "assignment": AssignmentOut.model_validate(assignment),
        "student_assignments": len(assignment.student_assignments),
        "message": "Assignment created successfully",
    }


@router.put("/assignments/{assignment_id}")
def edit_assignment(
    assignment_id: int,
    payload: AssignmentUpdateRequest,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(staff),
):
    assignment = update_assignment(db, assignment_id, payload.model_dump(exclude_unset=True), current_user)
    return {"assignment": AssignmentOut.model_validate(assignment)}


@router.delete("/assignments/{assignment_id}", response_model=MessageResponse)
def remove_assignment(assignment_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(staff)):
    delete_assignment(db, assignment_id, current_user)
    return MessageResponse(message="Assignment deleted successfully")


@router.post("/assignments/{assignment_id}/send-reminders")
def remind_students(
    assignment_id: int,
    payload: ReminderRequest,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(staff),
):
    sent = send_reminders(db, assignment_id, payload.student_ids, current_user)
    return {"message": "Reminders sent successfully", "sent": sent}


@router.get("/submissions/{submission_id}", response_model=SubmissionEnvelope)
def submission_detail(submission_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(staff)):
    submission = get_submission_for_teacher(db, submission_id, current_user)
    return SubmissionEnvelope(submission=SubmissionOut.model_validate(submission))


@router.put("/submissions/{submission_id}", response_model=SubmissionEnvelope)
def grade(
    submission_id: int,
    payload: SubmissionUpdateRequest,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(staff),
):
    submission = grade_submission(
        db, submission_id, grade=payload.grade, feedback=payload.feedback, actor=current_user
    )
    return SubmissionEnvelope(submission=SubmissionOut.model_validate(submission))


@router.get("/attendance/{classroom_id}")
def attendance_for_day(
    classroom_id: int,
    day: date | None = Query(default=None, alias="date"),
    db: Session = Depends(get_db_session),
    current_user: User = Depends(staff),
):
    day, rows = get_attendance(db, classroom_id, current_user, day)
    return {
        "date": day.isoformat(),
        "attendance_records": [
            {"id": row.id, "student_id": row.user_id, "is_present": row.is_present} for row in rows
        ],
    }


@router.post("/attendance/{classroom_id}")
def record_attendance(
    classroom_id: int,
    payload: AttendanceSubmitRequest,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(staff),
):
    saved = submit_attendance(
        db,
        classroom_id,
        current_user,
        day=payload.date,
        records=[(record.student_id, record.is_present) for record in payload.attendance_records],
    )
    return {"message": "Attendance submitted successfully", "date": payload.date.isoformat(), "records": saved}


@router.get("/analytics/{classroom_id}")
def classroom_analytics(
    classroom_id: int,
    time_range: Literal["week", "month", "semester", "year"] = Query(default=DEFAULT_TIME_RANGE),
    db: Session = Depends(get_db_session),
    current_user: User = Depends(staff),
):
    return classroom_report(db, classroom_id, current_user, time_range)
