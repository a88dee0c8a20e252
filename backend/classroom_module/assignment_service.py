import logging
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .classroom_service import get_classroom_or_404, taught_classroom_ids
from .database import transaction
from .errors import NotFoundError, ValidationError
from .models import (
    Assignment,
    AssignmentStatus,
    Classroom,
    ClassroomStudent,
    StudentAssignment,
    User,
    utcnow,
)
from .notification_service import create_notifications
from .permissions import Action, Resource, authorize
from .storage import remove_files

logger = logging.getLogger(__name__)

REMINDER_TITLE = "Assignment Reminder"


def get_assignment_or_404(db: Session, assignment_id: int) -> Assignment:
    assignment = db.get(Assignment, assignment_id)
    if not assignment:
        raise NotFoundError("Assignment not found")
    return assignment


def get_submission_or_404(db: Session, submission_id: int) -> StudentAssignment:
    submission = db.get(StudentAssignment, submission_id)
    if not submission:
        raise NotFoundError("Submission not found")
    return submission


def refresh_overdue(db: Session, rows: Iterable[StudentAssignment], now: datetime | None = None) -> int:
    """Flip pending rows whose due date has passed to OVERDUE and persist the change.

    There is no background sweep; this runs whenever rows are read.
    """
    now = now or utcnow()
    changed = 0
    for row in rows:
        due_date = row.assignment.due_date
        if row.status == AssignmentStatus.PENDING and due_date is not None and due_date < now:
            row.status = AssignmentStatus.OVERDUE
            db.add(row)
            changed += 1
    if changed:
        db.commit()
    return changed


def list_taught_assignments(db: Session, actor: User) -> list[Assignment]:
    classroom_ids = taught_classroom_ids(db, actor)
    if not classroom_ids:
        return []
    query = (
        select(Assignment)
        .where(Assignment.classroom_id.in_(classroom_ids))
        .options(
            selectinload(Assignment.student_assignments),
            selectinload(Assignment.classroom).selectinload(Classroom.students),
        )
        .order_by(Assignment.created_at.desc(), Assignment.id.desc())
    )
    return list(db.scalars(query))


def list_classroom_assignments(db: Session, classroom_id: int, actor: User) -> list[Assignment]:
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(actor, Resource.CLASSROOM, Action.TEACH, classroom, "You do not have access to this classroom")
    query = (
        select(Assignment)
        .where(Assignment.classroom_id == classroom.id)
        .options(selectinload(Assignment.student_assignments))
        .order_by(Assignment.created_at.desc(), Assignment.id.desc())
    )
    return list(db.scalars(query))


def list_classroom_students(db: Session, classroom_id: int, actor: User) -> list[User]:
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(actor, Resource.CLASSROOM, Action.TEACH, classroom, "You do not have access to this classroom")
    query = (
        select(User)
        .join(ClassroomStudent, ClassroomStudent.student_id == User.id)
        .where(ClassroomStudent.classroom_id == classroom.id)
        .order_by(User.first_name, User.last_name)
    )
    return list(db.scalars(query))


def get_assignment_for_teacher(db: Session, assignment_id: int, actor: User) -> Assignment:
    assignment = get_assignment_or_404(db, assignment_id)
    authorize(actor, Resource.ASSIGNMENT, Action.READ, assignment, "You do not have access to this assignment")
    refresh_overdue(db, assignment.student_assignments)
    return assignment


def create_assignment(
    db: Session,
    *,
    title: str,
    description: str | None,
    due_date: datetime | None,
    classroom_id: int,
    is_class_wide: bool,
    student_ids: list[int] | None,
    actor: User,
) -> Assignment:
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(actor, Resource.CLASSROOM, Action.TEACH, classroom, "You do not have access to this classroom")

    enrolled = classroom.student_ids
    if not enrolled:
        raise ValidationError("This classroom has no enrolled students")

    if is_class_wide:
        targets = sorted(enrolled)
    else:
        if not student_ids:
            raise ValidationError("Please select at least one student for individual assignment")
        invalid = sorted(set(student_ids) - enrolled)
        if invalid:
            raise ValidationError(
                "Some selected students are not enrolled in this classroom",
                errors=[{"field": "student_ids", "invalid_ids": invalid}],
            )
        targets = sorted(set(student_ids))

    assignment = Assignment(
        title=title,
        description=description,
        due_date=due_date,
        classroom_id=classroom.id,
        creator_id=actor.id,
        is_class_wide=is_class_wide,
    )
    assignment.student_assignments = [
        StudentAssignment(student_id=student_id, status=AssignmentStatus.PENDING) for student_id in targets
    ]
    with transaction(db):
        db.add(assignment)
    db.refresh(assignment)
    logger.info(
        f"Assignment {assignment.id} created in classroom {classroom.id} for {len(targets)} student(s)"
    )
    return assignment


def update_assignment(db: Session, assignment_id: int, changes: dict, actor: User) -> Assignment:
    """Apply only the fields present in ``changes``; an explicit ``due_date: None`` clears it."""
    assignment = get_assignment_or_404(db, assignment_id)
    authorize(actor, Resource.ASSIGNMENT, Action.WRITE, assignment, "You do not have access to this assignment")

    if changes.get("title") is not None:
        title = changes["title"].strip()
        if not title:
            raise ValidationError("Assignment title is required")
        assignment.title = title
    if "description" in changes:
        assignment.description = changes["description"]
    if "due_date" in changes:
        assignment.due_date = changes["due_date"]
    if changes.get("is_active") is not None:
        assignment.is_active = changes["is_active"]

    with transaction(db):
        db.add(assignment)
    db.refresh(assignment)
    return assignment


def delete_assignment(db: Session, assignment_id: int, actor: User) -> None:
    assignment = get_assignment_or_404(db, assignment_id)
    authorize(
        actor,
        Resource.ASSIGNMENT,
        Action.WRITE,
        assignment,
        "Only teachers assigned to this classroom can delete assignments",
    )
    stored_paths = [file.file_path for row in assignment.student_assignments for file in row.files]
    with transaction(db):
        db.delete(assignment)
    remove_files(stored_paths)
    logger.info(f"Assignment {assignment_id} deleted by user {actor.id}")


def send_reminders(db: Session, assignment_id: int, student_ids: list[int], actor: User) -> int:
    assignment = get_assignment_or_404(db, assignment_id)
    authorize(actor, Resource.ASSIGNMENT, Action.READ, assignment, "You do not have access to this assignment")
    if not student_ids:
        return 0

    targeted = {row.student_id for row in assignment.student_assignments}
    invalid = sorted(set(student_ids) - targeted)
    if invalid:
        raise ValidationError(
            "Some selected students do not have this assignment",
            errors=[{"field": "student_ids", "invalid_ids": invalid}],
        )

    notifications = create_notifications(
        db,
        actor.id,
        sorted(set(student_ids)),
        title=REMINDER_TITLE,
        message=f'Reminder: Your assignment "{assignment.title}" is due soon. Please submit your work.',
    )
    logger.info(f"Sent {len(notifications)} reminder(s) for assignment {assignment.id}")
    return len(notifications)


def get_submission_for_teacher(db: Session, submission_id: int, actor: User) -> StudentAssignment:
    submission = get_submission_or_404(db, submission_id)
    authorize(actor, Resource.SUBMISSION, Action.READ, submission, "You do not have permission to view this submission")
    refresh_overdue(db, [submission])
    return submission


def grade_submission(
    db: Session, submission_id: int, *, grade: float | None, feedback: str | None, actor: User
) -> StudentAssignment:
    submission = get_submission_or_404(db, submission_id)
    authorize(actor, Resource.SUBMISSION, Action.GRADE, submission, "You do not have access to this submission")

    submission.grade = grade
    submission.feedback = feedback
    if submission.status == AssignmentStatus.PENDING and grade is not None:
        submission.status = AssignmentStatus.COMPLETED
    with transaction(db):
        db.add(submission)
    db.refresh(submission)
    logger.info(f"Submission {submission.id} graded by user {actor.id}")
    return submission
