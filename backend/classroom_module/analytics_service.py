"""Analytics read models built from stored rows on every request."""
import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from . import analytics
from .classroom_service import get_classroom_or_404, taught_classroom_ids
from .errors import AuthorizationError
from .models import (
    ActivityLog,
    Assignment,
    AssignmentStatus,
    Classroom,
    ClassroomStudent,
    StudentAssignment,
    User,
    UserRole,
    utcnow,
)
from .permissions import Action, Resource, authorize

logger = logging.getLogger(__name__)

TIME_RANGES = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "semester": timedelta(days=120),
    "year": timedelta(days=365),
}
DEFAULT_TIME_RANGE = "month"


def _in_range(moment: datetime | None, date_from: datetime | None, date_to: datetime | None) -> bool:
    if moment is None:
        return False
    if date_from and moment < date_from:
        return False
    if date_to and moment > date_to:
        return False
    return True


def _filtered(assignments, date_from: datetime | None, date_to: datetime | None) -> list[Assignment]:
    if not date_from and not date_to:
        return list(assignments)
    return [assignment for assignment in assignments if _in_range(assignment.created_at, date_from, date_to)]


def _attendance_flags(db: Session, user_ids, date_from: datetime | None = None, date_to: datetime | None = None):
    user_ids = list(user_ids)
    if not user_ids:
        return []
    query = select(ActivityLog.is_present).where(
        ActivityLog.user_id.in_(user_ids), ActivityLog.is_present.is_not(None)
    )
    if date_from:
        query = query.where(ActivityLog.date >= date_from)
    if date_to:
        query = query.where(ActivityLog.date <= date_to)
    return list(db.scalars(query))


def _classroom_summary(db: Session, classroom: Classroom, date_from, date_to) -> dict:
    assignments = _filtered(classroom.assignments, date_from, date_to)
    grades = [row.grade for assignment in assignments for row in assignment.student_assignments]
    return {
        "id": classroom.id,
        "name": classroom.name,
        "description": classroom.description,
        "student_count": len(classroom.students),
        "assignment_count": len(classroom.assignments),
        "average_score": analytics.average_score(grades),
        "graded_count": analytics.graded_count(grades),
        "attendance_rate": analytics.attendance_rate(
            _attendance_flags(db, classroom.student_ids, date_from, date_to)
        ),
    }


def _classroom_query():
    return select(Classroom).options(
        selectinload(Classroom.students),
        selectinload(Classroom.assignments).selectinload(Assignment.student_assignments),
    )


def classroom_analytics(
    db: Session, *, classroom_ids: list[int] | None = None, date_from=None, date_to=None
) -> list[dict]:
    query = _classroom_query().where(Classroom.is_active.is_(True)).order_by(Classroom.name)
    if classroom_ids is not None:
        if not classroom_ids:
            return []
        query = query.where(Classroom.id.in_(classroom_ids))

    summaries = []
    for classroom in db.scalars(query):
        if (date_from or date_to) and not _filtered(classroom.assignments, date_from, date_to):
            continue
        summaries.append(_classroom_summary(db, classroom, date_from, date_to))
    return summaries


def _student_summary(db: Session, student: User, rows: list[StudentAssignment], now: datetime) -> dict:
    grades = [row.grade for row in rows]
    return {
        "id": student.id,
        "name": student.full_name,
        "email": student.email,
        "average_score": analytics.average_score(grades),
        "graded_count": analytics.graded_count(grades),
        "assignments_completed": sum(1 for row in rows if row.status == AssignmentStatus.COMPLETED),
        "assignments_pending": sum(1 for row in rows if row.status == AssignmentStatus.PENDING),
        "attendance_rate": analytics.attendance_rate(_attendance_flags(db, [student.id])),
        "trend": analytics.weekly_trend(((row.submitted_at, row.grade) for row in rows), now),
    }


def student_analytics(
    db: Session, *, classroom_ids: list[int] | None = None, date_from=None, date_to=None
) -> list[dict]:
    """Per-student summaries, limited to ``classroom_ids`` when given."""
    now = utcnow()
    query = (
        select(User)
        .where(User.role == UserRole.STUDENT, User.is_active.is_(True))
        .options(
            selectinload(User.student_assignments).selectinload(StudentAssignment.assignment),
        )
        .order_by(User.first_name, User.last_name)
    )
    if classroom_ids is not None:
        if not classroom_ids:
            return []
        enrolled = select(ClassroomStudent.student_id).where(ClassroomStudent.classroom_id.in_(classroom_ids))
        query = query.where(User.id.in_(enrolled))

    summaries = []
    for student in db.scalars(query):
        rows = [
            row
            for row in student.student_assignments
            if (classroom_ids is None or row.assignment.classroom_id in classroom_ids)
            and (not (date_from or date_to) or _in_range(row.assignment.created_at, date_from, date_to))
        ]
        summaries.append(_student_summary(db, student, rows, now))
    return summaries


def teacher_analytics(db: Session, *, date_from=None, date_to=None) -> list[dict]:
    teachers = db.scalars(
        select(User)
        .where(User.role == UserRole.TEACHER, User.is_active.is_(True))
        .order_by(User.first_name, User.last_name)
    )
    results = []
    for teacher in teachers:
        classrooms = db.scalars(
            _classroom_query().where(Classroom.id.in_(taught_classroom_ids(db, teacher))).order_by(Classroom.name)
        )
        summaries = []
        for classroom in classrooms:
            grades = [
                row.grade
                for assignment in _filtered(classroom.assignments, date_from, date_to)
                for row in assignment.student_assignments
            ]
            summaries.append(
                {
                    "id": classroom.id,
                    "name": classroom.name,
                    "student_count": len(classroom.students),
                    "average_score": analytics.average_score(grades),
                }
            )
        total_students = sum(item["student_count"] for item in summaries)
        weighted = sum(item["average_score"] * item["student_count"] for item in summaries)
        results.append(
            {
                "id": teacher.id,
                "name": teacher.full_name,
                "classroom_count": len(summaries),
                "student_count": total_students,
                "average_class_score": round(weighted / total_students, 2) if total_students else 0,
                "classrooms": summaries,
            }
        )
    return results


def scoped_classroom_ids(db: Session, actor: User, classroom_id: int | None = None) -> list[int]:
    """Classrooms the actor teaches, narrowed to ``classroom_id`` when one is requested."""
    allowed = taught_classroom_ids(db, actor)
    if classroom_id is None:
        return allowed
    get_classroom_or_404(db, classroom_id)
    if classroom_id not in allowed:
        raise AuthorizationError("Not authorized to access this classroom")
    return [classroom_id]


def classroom_report(db: Session, classroom_id: int, actor: User, time_range: str = DEFAULT_TIME_RANGE) -> dict:
    """Attendance, assignment and performance figures for one classroom over ``time_range``."""
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(actor, Resource.CLASSROOM, Action.TEACH, classroom, "You do not have access to this classroom")

    now = utcnow()
    start = now - TIME_RANGES.get(time_range, TIME_RANGES[DEFAULT_TIME_RANGE])
    student_ids = classroom.student_ids

    records = []
    if student_ids:
        records = db.execute(
            select(ActivityLog.date, ActivityLog.is_present).where(
                ActivityLog.user_id.in_(list(student_ids)),
                ActivityLog.date >= start,
                ActivityLog.date <= now,
                ActivityLog.is_present.is_not(None),
            )
        ).all()
    attendance = analytics.attendance_by_date(records)

    assignments = [assignment for assignment in classroom.assignments if start <= assignment.created_at <= now]
    rows = [row for assignment in assignments for row in assignment.student_assignments]
    status_counts = {status: 0 for status in AssignmentStatus}
    for row in rows:
        status_counts[row.status] += 1

    scores = []
    for membership in classroom.students:
        grades = [
            row.grade
            for row in membership.student.student_assignments
            if row.assignment.classroom_id == classroom.id
        ]
        graded = analytics.graded_values(grades)
        scores.append(
            {
                "student_id": membership.student_id,
                "name": membership.student.full_name,
                "score": round(sum(graded) / len(graded)) if graded else None,
            }
        )
    scored = [item["score"] for item in scores if item["score"] is not None]
    tiers = analytics.tier_counts(scored)

    return {
        "attendance_data": attendance,
        "assignment_data": {
            "assignment_completion_rate": analytics.completion_rate(
                status_counts[AssignmentStatus.COMPLETED], len(assignments) * len(student_ids)
            ),
            "assignments_by_status": [
                {"name": status.value.capitalize(), "value": status_counts[status]}
                for status in (AssignmentStatus.COMPLETED, AssignmentStatus.PENDING, AssignmentStatus.OVERDUE)
            ],
            "assignment_scores": [
                {
                    "name": assignment.title,
                    "average": round(analytics.average_score(row.grade for row in assignment.student_assignments)),
                }
                for assignment in assignments
            ],
        },
        "student_performance": {
            "high_performers": tiers["high"],
            "average_performers": tiers["average"],
            "low_performers": tiers["low"],
            "unscored": len(scores) - len(scored),
            "student_scores": sorted(
                scores, key=lambda item: (item["score"] is None, -(item["score"] or 0), item["name"])
            ),
        },
    }
