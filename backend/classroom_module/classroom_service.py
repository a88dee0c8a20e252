import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from .database import transaction
from .errors import ConflictError, NotFoundError, ValidationError
from .models import Classroom, ClassroomStudent, ClassroomTeacher, User, UserRole
from .permissions import Action, Resource, authorize
from .storage import remove_files
from .user_service import find_active_user

logger = logging.getLogger(__name__)


def get_classroom_or_404(db: Session, classroom_id: int) -> Classroom:
    classroom = db.get(Classroom, classroom_id)
    if not classroom:
        raise NotFoundError("Classroom not found")
    return classroom


def taught_classroom_ids(db: Session, actor: User) -> list[int]:
    """Classrooms the actor may teach in; every classroom for an admin."""
    if actor.role == UserRole.ADMIN:
        return list(db.scalars(select(Classroom.id)))
    member_of = select(ClassroomTeacher.classroom_id).where(ClassroomTeacher.teacher_id == actor.id)
    query = select(Classroom.id).where(or_(Classroom.creator_id == actor.id, Classroom.id.in_(member_of)))
    return list(db.scalars(query))


def list_classrooms_for(db: Session, actor: User) -> list[Classroom]:
    query = (
        select(Classroom)
        .where(Classroom.is_active.is_(True))
        .options(selectinload(Classroom.teachers), selectinload(Classroom.students))
        .order_by(Classroom.created_at.desc(), Classroom.id.desc())
    )
    if actor.role == UserRole.TEACHER:
        member_of = select(ClassroomTeacher.classroom_id).where(ClassroomTeacher.teacher_id == actor.id)
        query = query.where(or_(Classroom.creator_id == actor.id, Classroom.id.in_(member_of)))
    elif actor.role == UserRole.STUDENT:
        enrolled_in = select(ClassroomStudent.classroom_id).where(ClassroomStudent.student_id == actor.id)
        query = query.where(Classroom.id.in_(enrolled_in))
    return list(db.scalars(query))


def create_classroom(db: Session, *, name: str, description: str | None, actor: User) -> Classroom:
    classroom = Classroom(name=name.strip(), description=description, creator_id=actor.id)
    with transaction(db):
        db.add(classroom)
    db.refresh(classroom)
    logger.info(f"Classroom {classroom.id} created by user {actor.id}")
    return classroom


def update_classroom(db: Session, classroom_id: int, changes: dict, actor: User) -> Classroom:
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(actor, Resource.CLASSROOM, Action.MANAGE, classroom, "Not authorized to update this classroom")

    for field in ("name", "description", "is_active"):
        if field in changes and (changes[field] is not None or field == "description"):
            setattr(classroom, field, changes[field])
    with transaction(db):
        db.add(classroom)
    db.refresh(classroom)
    return classroom


def delete_classroom(db: Session, classroom_id: int, actor: User) -> None:
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(actor, Resource.CLASSROOM, Action.MANAGE, classroom, "Not authorized to delete this classroom")

    stored_paths = [
        file.file_path
        for assignment in classroom.assignments
        for row in assignment.student_assignments
        for file in row.files
    ]
    with transaction(db):
        db.delete(classroom)
    remove_files(stored_paths)
    logger.info(f"Classroom {classroom_id} deleted by user {actor.id}")


def add_teacher(
    db: Session, classroom_id: int, actor: User, *, teacher_id: int | None, teacher_email: str | None
) -> ClassroomTeacher:
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(actor, Resource.CLASSROOM, Action.MANAGE, classroom, "Not authorized to add teachers to this classroom")
    if teacher_id is None and not teacher_email:
        raise ValidationError("Teacher ID is required")

    teacher = find_active_user(db, UserRole.TEACHER, user_id=teacher_id, email=teacher_email)
    if not teacher:
        raise NotFoundError("Teacher not found")
    if teacher.id in classroom.teacher_ids:
        raise ConflictError("Teacher already assigned to this classroom")

    membership = ClassroomTeacher(classroom_id=classroom.id, teacher_id=teacher.id)
    with transaction(db):
        db.add(membership)
    db.refresh(membership)
    return membership


def add_student(
    db: Session, classroom_id: int, actor: User, *, student_id: int | None, student_email: str | None
) -> ClassroomStudent:
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(actor, Resource.CLASSROOM, Action.TEACH, classroom, "Not authorized to add students to this classroom")
    if student_id is None and not student_email:
        raise ValidationError("Student ID is required")

    student = find_active_user(db, UserRole.STUDENT, user_id=student_id, email=student_email)
    if not student:
        raise NotFoundError("Student not found")
    if student.id in classroom.student_ids:
        raise ConflictError("Student already assigned to this classroom")

    membership = ClassroomStudent(classroom_id=classroom.id, student_id=student.id)
    with transaction(db):
        db.add(membership)
    db.refresh(membership)
    return membership


def remove_teacher(db: Session, classroom_id: int, teacher_id: int, actor: User) -> None:
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(
        actor, Resource.CLASSROOM, Action.MANAGE, classroom, "Not authorized to remove teachers from this classroom"
    )
    membership = next((m for m in classroom.teachers if m.teacher_id == teacher_id), None)
    if not membership:
        raise NotFoundError("Teacher not assigned to this classroom")
    with transaction(db):
        db.delete(membership)


def remove_student(db: Session, classroom_id: int, student_id: int, actor: User) -> None:
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(
        actor, Resource.CLASSROOM, Action.TEACH, classroom, "Not authorized to remove students from this classroom"
    )
    membership = next((m for m in classroom.students if m.student_id == student_id), None)
    if not membership:
        raise NotFoundError("Student not assigned to this classroom")
    with transaction(db):
        db.delete(membership)
