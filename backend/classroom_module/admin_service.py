from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from . import analytics
from .models import (
    ActivityLog,
    Assignment,
    AssignmentStatus,
    Classroom,
    ClassroomStudent,
    ClassroomTeacher,
    User,
    UserRole,
    utcnow,
)

RECENT_PER_SOURCE = 5
RECENT_ACTIVITY_LIMIT = 10


def _count(db: Session, statement) -> int:
    return db.scalar(statement) or 0


def _actor(user: User) -> dict:
    return {"id": user.id, "name": user.full_name}


def recent_activities(db: Session, limit: int = RECENT_ACTIVITY_LIMIT) -> list[dict]:
    """Newest classroom, membership and assignment events merged into one feed."""
    classrooms = db.scalars(
        select(Classroom).options(selectinload(Classroom.creator)).order_by(Classroom.created_at.desc()).limit(RECENT_PER_SOURCE)
    )
    teachers = db.scalars(
        select(ClassroomTeacher).order_by(ClassroomTeacher.assigned_at.desc()).limit(RECENT_PER_SOURCE)
    )
    students = db.scalars(
        select(ClassroomStudent).order_by(ClassroomStudent.assigned_at.desc()).limit(RECENT_PER_SOURCE)
    )
    assignments = db.scalars(select(Assignment).order_by(Assignment.created_at.desc()).limit(RECENT_PER_SOURCE))

    activities = [
        {
            "id": f"classroom-{classroom.id}",
            "type": "classroom_created",
            "description": f'New classroom "{classroom.name}" created',
            "timestamp": classroom.created_at,
            "user": _actor(classroom.creator),
        }
        for classroom in classrooms
    ]
    activities += [
        {
            "id": f"teacher-{membership.id}",
            "type": "teacher_assigned",
            "description": f"Teacher assigned to {membership.classroom.name}",
            "timestamp": membership.assigned_at,
            "user": _actor(membership.teacher),
        }
        for membership in teachers
    ]
    activities += [
        {
            "id": f"student-{membership.id}",
            "type": "student_enrolled",
            "description": f"Student enrolled in {membership.classroom.name}",
            "timestamp": membership.assigned_at,
            "user": _actor(membership.student),
        }
        for membership in students
    ]
    activities += [
        {
            "id": f"assignment-{assignment.id}",
            "type": "assignment_created",
            "description": f'Assignment "{assignment.title}" created in {assignment.classroom.name}',
            "timestamp": assignment.created_at,
            "user": _actor(assignment.creator),
        }
        for assignment in assignments
    ]
    activities.sort(key=lambda item: item["timestamp"], reverse=True)
    return activities[:limit]


def dashboard_stats(db: Session) -> dict:
    now = utcnow()
    return {
        "total_users": _count(db, select(func.count(User.id)).where(User.is_active.is_(True))),
        "total_teachers": _count(
            db, select(func.count(User.id)).where(User.role == UserRole.TEACHER, User.is_active.is_(True))
        ),
        "total_students": _count(
            db, select(func.count(User.id)).where(User.role == UserRole.STUDENT, User.is_active.is_(True))
        ),
        "total_classrooms": _count(db, select(func.count(Classroom.id)).where(Classroom.is_active.is_(True))),
        "active_assignments": _count(
            db,
            select(func.count(Assignment.id)).where(Assignment.is_active.is_(True), Assignment.due_date >= now),
        ),
        "recent_activities": recent_activities(db),
    }


def system_stats(db: Session) -> dict:
    now = utcnow()
    user_counts = db.execute(
        select(User.role, func.count(User.id)).where(User.is_active.is_(True)).group_by(User.role)
    ).all()

    classrooms = list(
        db.scalars(select(Classroom).where(Classroom.is_active.is_(True)).options(selectinload(Classroom.students)))
    )
    student_counts = [len(classroom.students) for classroom in classrooms]

    assignments = list(
        db.scalars(
            select(Assignment)
            .where(Assignment.is_active.is_(True))
            .options(selectinload(Assignment.student_assignments))
        )
    )
    rates = [
        analytics.completion_rate(
            sum(1 for row in assignment.student_assignments if row.status == AssignmentStatus.COMPLETED),
            len(assignment.student_assignments),
        )
        for assignment in assignments
        if assignment.student_assignments
    ]

    score_avg, score_min, score_max = db.execute(
        select(
            func.avg(ActivityLog.performance_score),
            func.min(ActivityLog.performance_score),
            func.max(ActivityLog.performance_score),
        ).where(ActivityLog.performance_score.is_not(None))
    ).one()
    flags = list(db.scalars(select(ActivityLog.is_present).where(ActivityLog.is_present.is_not(None))))

    return {
        "users": [{"role": role.value, "count": count} for role, count in user_counts],
        "classrooms": {
            "total_classrooms": len(classrooms),
            "avg_students_per_classroom": round(sum(student_counts) / len(student_counts), 2) if student_counts else 0,
        },
        "assignments": {
            "total_assignments": len(assignments),
            "active_assignments": sum(
                1 for assignment in assignments if assignment.due_date is not None and assignment.due_date >= now
            ),
            "avg_completion_rate": round(sum(rates) / len(rates), 2) if rates else 0,
        },
        "performance": {
            "avg_performance_score": round(score_avg, 2) if score_avg is not None else None,
            "min_performance_score": score_min,
            "max_performance_score": score_max,
        },
        "attendance": {
            "total_records": len(flags),
            "present_count": sum(1 for flag in flags if flag),
            "attendance_rate": analytics.attendance_rate(flags),
        },
    }
