"""Student-side views of classrooms and assignments, and the submission flow."""
import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .assignment_service import refresh_overdue
from .classroom_service import get_classroom_or_404
from .database import transaction
from .errors import AuthorizationError, InternalError, NotFoundError, ValidationError
from .models import (
    ActivityLog,
    Assignment,
    AssignmentStatus,
    Classroom,
    ClassroomStudent,
    StudentAssignment,
    SubmissionFile,
    User,
    UserRole,
    utcnow,
)
from .permissions import Action, Resource, authorize
from .storage import PendingUpload, StoredUpload, remove_files, store_uploads

logger = logging.getLogger(__name__)

UPCOMING_WINDOW = timedelta(days=7)
UPCOMING_LIMIT = 5
SUBMISSION_ACTION = "ASSIGNMENT_SUBMISSION"


def _student_rows(db: Session, student: User) -> list[StudentAssignment]:
    query = (
        select(StudentAssignment)
        .where(StudentAssignment.student_id == student.id)
        .options(selectinload(StudentAssignment.assignment).selectinload(Assignment.classroom))
    )
    return list(db.scalars(query))


def _due_sort_key(row: StudentAssignment):
    due_date = row.assignment.due_date
    return (due_date is None, due_date or datetime.max, row.assignment_id)


def dashboard_stats(db: Session, student: User, now: datetime | None = None) -> dict:
    now = now or utcnow()
    rows = _student_rows(db, student)
    refresh_overdue(db, rows, now)

    total_classrooms = len(student.student_memberships)
    counts = {status: 0 for status in AssignmentStatus}
    for row in rows:
        counts[row.status] += 1

    horizon = now + UPCOMING_WINDOW
    upcoming = sorted(
        (
            row
            for row in rows
            if row.status == AssignmentStatus.PENDING
            and row.assignment.due_date is not None
            and now < row.assignment.due_date <= horizon
        ),
        key=_due_sort_key,
    )[:UPCOMING_LIMIT]

    return {
        "total_classrooms": total_classrooms,
        "active_assignments": counts[AssignmentStatus.PENDING],
        "completed_assignments": counts[AssignmentStatus.COMPLETED],
        "overdue_assignments": counts[AssignmentStatus.OVERDUE],
        "upcoming_assignments": [
            {
                "id": row.assignment_id,
                "title": row.assignment.title,
                "due_date": row.assignment.due_date,
                "classroom_name": row.assignment.classroom.name,
            }
            for row in upcoming
        ],
    }


def list_enrolled_classrooms(db: Session, student: User, now: datetime | None = None) -> list[dict]:
    now = now or utcnow()
    query = (
        select(Classroom)
        .join(ClassroomStudent, ClassroomStudent.classroom_id == Classroom.id)
        .where(ClassroomStudent.student_id == student.id)
        .options(selectinload(Classroom.assignments))
        .order_by(Classroom.name)
    )
    return [
        {
            "id": classroom.id,
            "name": classroom.name,
            "description": classroom.description,
            "active_assignments": sum(
                1
                for assignment in classroom.assignments
                if assignment.is_active and assignment.due_date is not None and assignment.due_date >= now
            ),
        }
        for classroom in db.scalars(query)
    ]


def get_enrolled_classroom(db: Session, classroom_id: int, actor: User) -> tuple[Classroom, list[dict]]:
    """Classroom plus its active assignments annotated with the actor's own status."""
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(actor, Resource.CLASSROOM, Action.READ, classroom, "You are not enrolled in this classroom")

    assignments = sorted(
        (assignment for assignment in classroom.assignments if assignment.is_active),
        key=lambda assignment: (assignment.due_date is None, assignment.due_date or datetime.max, assignment.id),
    )
    own_rows = {
        row.assignment_id: row
        for row in db.scalars(
            select(StudentAssignment).where(
                StudentAssignment.student_id == actor.id,
                StudentAssignment.assignment_id.in_([assignment.id for assignment in assignments]),
            )
        )
    }
    refresh_overdue(db, own_rows.values())
    return classroom, [
        {
            "id": assignment.id,
            "title": assignment.title,
            "description": assignment.description or "",
            "due_date": assignment.due_date,
            "status": own_rows[assignment.id].status if assignment.id in own_rows else AssignmentStatus.PENDING,
        }
        for assignment in assignments
    ]


def list_student_assignments(db: Session, student: User) -> list[StudentAssignment]:
    rows = _student_rows(db, student)
    refresh_overdue(db, rows)
    return sorted(rows, key=_due_sort_key)


def _active_assignment_or_404(db: Session, assignment_id: int) -> Assignment:
    assignment = db.get(Assignment, assignment_id)
    if not assignment or not assignment.is_active:
        raise NotFoundError("Assignment not found")
    return assignment


def _own_row(db: Session, assignment: Assignment, student: User) -> StudentAssignment | None:
    return db.scalars(
        select(StudentAssignment).where(
            StudentAssignment.assignment_id == assignment.id,
            StudentAssignment.student_id == student.id,
        )
    ).first()


def get_student_assignment(
    db: Session, assignment_id: int, actor: User
) -> tuple[Assignment, StudentAssignment | None]:
    """The assignment and the actor's own row.

    An enrolled student opening a class-wide assignment for the first time
    gets a PENDING row created here. Staff viewers get ``None`` for the row.
    """
    assignment = _active_assignment_or_404(db, assignment_id)
    authorize(actor, Resource.CLASSROOM, Action.READ, assignment.classroom, "You are not enrolled in this classroom")
    if actor.role != UserRole.STUDENT:
        return assignment, None

    authorize(actor, Resource.ASSIGNMENT, Action.SUBMIT, assignment, "This assignment is not assigned to you")
    row = _own_row(db, assignment, actor)
    if row is None:
        row = StudentAssignment(assignment=assignment, student_id=actor.id, status=AssignmentStatus.PENDING)
        with transaction(db):
            db.add(row)
        db.refresh(row)
    refresh_overdue(db, [row])
    return assignment, row


def prepare_submission(db: Session, assignment_id: int, actor: User) -> StudentAssignment:
    """Run every check that does not need the uploaded bytes.

    A missing class-wide row is attached to the session but left uncommitted,
    so it is only written together with the submission itself.
    """
    assignment = _active_assignment_or_404(db, assignment_id)
    if actor.id not in assignment.classroom.student_ids:
        raise AuthorizationError("You are not enrolled in this classroom")
    authorize(actor, Resource.ASSIGNMENT, Action.SUBMIT, assignment, "This assignment is not assigned to you")

    row = _own_row(db, assignment, actor)
    if row is None:
        row = StudentAssignment(assignment=assignment, student_id=actor.id, status=AssignmentStatus.PENDING)
        db.add(row)
    elif row.status == AssignmentStatus.COMPLETED:
        raise ValidationError("Assignment has already been submitted")
    return row


def submit_assignment(
    db: Session,
    row: StudentAssignment,
    actor: User,
    *,
    comment: str | None,
    uploads: list[PendingUpload],
) -> tuple[StudentAssignment, list[StoredUpload]]:
    try:
        stored = store_uploads(uploads)
    except OSError as exc:
        db.rollback()
        logger.exception(f"Storing uploads for assignment {row.assignment_id} failed")
        raise InternalError() from exc

    submitted_at = utcnow()
    try:
        with transaction(db):
            row.status = AssignmentStatus.COMPLETED
            row.submitted_at = submitted_at
            row.submission_content = comment or None
            row.files.extend(
                SubmissionFile(
                    filename=item.filename,
                    file_path=item.file_path,
                    file_size=item.file_size,
                    file_type=item.file_type,
                    uploaded_at=submitted_at,
                )
                for item in stored
            )
            db.add(row)
            db.add(
                ActivityLog(
                    user_id=actor.id,
                    date=submitted_at,
                    action=SUBMISSION_ACTION,
                    details=f"Submitted assignment: {row.assignment.title}",
                )
            )
    except Exception:
        remove_files(item.file_path for item in stored)
        raise

    db.refresh(row)
    logger.info(f"Student {actor.id} submitted assignment {row.assignment_id} with {len(stored)} file(s)")
    return row, stored
