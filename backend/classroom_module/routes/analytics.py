from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..analytics_service import classroom_analytics, scoped_classroom_ids, student_analytics, teacher_analytics
from ..classroom_service import get_classroom_or_404
from ..database import get_db_session
from ..middleware import require_roles
from ..models import User, UserRole, to_naive_utc

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])

admin_only = require_roles(UserRole.ADMIN)
staff = require_roles(UserRole.ADMIN, UserRole.TEACHER)


@router.get("/classrooms")
def all_classrooms(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    db: Session = Depends(get_db_session),
    _: User = Depends(admin_only),
):
    return {"classrooms": classroom_analytics(db, date_from=to_naive_utc(date_from), date_to=to_naive_utc(date_to))}


@router.get("/students")
def all_students(
    classroom: int | None = Query(default=None),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    db: Session = Depends(get_db_session),
    _: User = Depends(admin_only),
):
    classroom_ids = None
    if classroom is not None:
        classroom_ids = [get_classroom_or_404(db, classroom).id]
    students = student_analytics(
        db, classroom_ids=classroom_ids, date_from=to_naive_utc(date_from), date_to=to_naive_utc(date_to)
    )
    return {"students": students}


@router.get("/teachers")
def all_teachers(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    db: Session = Depends(get_db_session),
    _: User = Depends(admin_only),
):
    return {"teachers": teacher_analytics(db, date_from=to_naive_utc(date_from), date_to=to_naive_utc(date_to))}


@router.get("/teacher/classrooms")
def taught_classrooms(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    db: Session = Depends(get_db_session),
    current_user: User = Depends(staff),
):
    classroom_ids = scoped_classroom_ids(db, current_user)
    classrooms = classroom_analytics(
        db, classroom_ids=classroom_ids, date_from=to_naive_utc(date_from), date_to=to_naive_utc(date_to)
    )
    return {"classrooms": classrooms}


@router.get("/teacher/students")
def taught_students(
    classroom: int | None = Query(default=None),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    db: Session = Depends(get_db_session),
    current_user: User = Depends(staff),
):
    classroom_ids = scoped_classroom_ids(db, current_user, classroom)
    students = student_analytics(
        db, classroom_ids=classroom_ids, date_from=to_naive_utc(date_from), date_to=to_naive_utc(date_to)
    )
    return {"students": students}
