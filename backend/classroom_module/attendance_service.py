import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from .classroom_service import get_classroom_or_404
from .database import transaction
from .errors import ValidationError
from .models import ActivityLog, User, utcnow
from .permissions import Action, Resource, authorize

logger = logging.getLogger(__name__)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def _attendance_rows(db: Session, student_ids, day: date) -> list[ActivityLog]:
    if not student_ids:
        return []
    start, end = day_bounds(day)
    query = select(ActivityLog).where(
        ActivityLog.user_id.in_(list(student_ids)),
        ActivityLog.date >= start,
        ActivityLog.date < end,
        ActivityLog.is_present.is_not(None),
    )
    return list(db.scalars(query.order_by(ActivityLog.id)))


def get_attendance(db: Session, classroom_id: int, actor: User, day: date | None = None) -> tuple[date, list[ActivityLog]]:
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(actor, Resource.CLASSROOM, Action.TEACH, classroom, "You do not have access to this classroom")
    day = day or utcnow().date()
    return day, _attendance_rows(db, classroom.student_ids, day)


def submit_attendance(
    db: Session, classroom_id: int, actor: User, *, day: date, records: list[tuple[int, bool]]
) -> int:
    """Upsert one presence mark per student for ``day``; all records are written or none."""
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(actor, Resource.CLASSROOM, Action.TEACH, classroom, "You do not have access to this classroom")

    marks = dict(records)
    enrolled = classroom.student_ids
    invalid = sorted(set(marks) - enrolled)
    if invalid:
        raise ValidationError(
            "Some students are not enrolled in this classroom",
            errors=[{"field": "attendance_records", "invalid_ids": invalid}],
        )

    existing = {row.user_id: row for row in _attendance_rows(db, marks.keys(), day)}
    start, _ = day_bounds(day)
    with transaction(db):
        for student_id, is_present in marks.items():
            row = existing.get(student_id)
            if row is None:
                row = ActivityLog(user_id=student_id, date=start)
            row.is_present = is_present
            db.add(row)
    logger.info(f"Attendance for classroom {classroom.id} on {day.isoformat()} saved ({len(marks)} record(s))")
    return len(marks)
