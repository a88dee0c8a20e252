from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware import require_roles
from ..models import AssignmentStatus, User, UserRole
from ..schemas import SubmissionFileOut, UserListItem
from ..storage import read_uploads
from ..submission_service import (
    dashboard_stats,
    get_enrolled_classroom,
    get_student_assignment,
    list_enrolled_classrooms,
    list_student_assignments,
    prepare_submission,
    submit_assignment,
)

router = APIRouter(prefix="/api/student", tags=["Student"])

members = require_roles(UserRole.STUDENT, UserRole.TEACHER, UserRole.ADMIN)


def _classroom_ref(classroom) -> dict:
    return {"id": classroom.id, "name": classroom.name}


@router.get("/dashboard-stats")
def student_dashboard(db: Session = Depends(get_db_session), current_user: User = Depends(members)):
    return dashboard_stats(db, current_user)


@router.get("/classrooms")
def enrolled_classrooms(db: Session = Depends(get_db_session), current_user: User = Depends(members)):
    return {"classrooms": list_enrolled_classrooms(db, current_user)}


@router.get("/classrooms/{classroom_id}")
def enrolled_classroom(classroom_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(members)):
    classroom, assignments = get_enrolled_classroom(db, classroom_id, current_user)
    return {
        "id": classroom.id,
        "name": classroom.name,
        "description": classroom.description,
        "teachers": [UserListItem.model_validate(membership.teacher) for membership in classroom.teachers],
        "students": [UserListItem.model_validate(membership.student) for membership in classroom.students],
        "assignments": assignments,
    }


@router.get("/assignments")
def own_assignments(db: Session = Depends(get_db_session), current_user: User = Depends(members)):
    rows = list_student_assignments(db, current_user)
    assignments = [
        {
            "id": row.assignment_id,
            "submission_id": row.id,
            "title": row.assignment.title,
            "description": row.assignment.description,
            "status": row.status,
            "grade": row.grade,
            "feedback": row.feedback,
            "submitted_at": row.submitted_at,
            "due_date": row.assignment.due_date,
            "classroom": _classroom_ref(row.assignment.classroom),
        }
        for row in rows
    ]
    return {"assignments": assignments, "count": len(assignments)}


@router.get("/assignments/{assignment_id}")
def own_assignment(assignment_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(members)):
    assignment, row = get_student_assignment(db, assignment_id, current_user)
    return {
        "assignment": {
            "id": assignment.id,
            "title": assignment.title,
            "description": assignment.description,
            "due_date": assignment.due_date,
            "status": row.status if row else AssignmentStatus.PENDING,
            "submitted_at": row.submitted_at if row else None,
            "grade": row.grade if row else None,
            "feedback": row.feedback if row else None,
            "submission_content": row.submission_content if row else None,
            "files": [SubmissionFileOut.model_validate(file) for file in row.files] if row else [],
            "classroom": _classroom_ref(assignment.classroom),
        }
    }


@router.post("/assignments/{assignment_id}/submit")
def submit(
    assignment_id: int,
    comment: str | None = Form(default=None),
    files: list[UploadFile] | None = File(default=None),
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_roles(UserRole.STUDENT)),
):
    row = prepare_submission(db, assignment_id, current_user)
    uploads = read_uploads(files or [])
    row, stored = submit_assignment(db, row, current_user, comment=comment, uploads=uploads)
    return {
        "message": "Assignment submitted successfully",
        "submitted_at": row.submitted_at,
        "files": [{"filename": item.filename, "file_size": item.file_size} for item in stored],
    }
