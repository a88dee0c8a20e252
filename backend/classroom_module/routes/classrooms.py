from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..classroom_service import (
    add_student,
    add_teacher,
    create_classroom,
    delete_classroom,
    get_classroom_or_404,
    list_classrooms_for,
    remove_student,
    remove_teacher,
    update_classroom,
)
from ..database import get_db_session
from ..middleware import get_current_user, require_roles
from ..models import User, UserRole
from ..permissions import Action, Resource, authorize
from ..schemas import (
    ClassroomCreateRequest,
    ClassroomEnvelope,
    ClassroomListResponse,
    ClassroomOut,
    ClassroomUpdateRequest,
    MembershipOut,
    MessageResponse,
    StudentMembershipRequest,
    TeacherMembershipRequest,
    UserBrief,
)
from .serializers import classroom_detail, classroom_summary

router = APIRouter(prefix="/api/classrooms", tags=["Classrooms"])


@router.get("/", response_model=ClassroomListResponse)
def list_visible(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    classrooms = list_classrooms_for(db, current_user)
    return ClassroomListResponse(classrooms=[classroom_summary(classroom) for classroom in classrooms])


@router.get("/{classroom_id}")
def retrieve(classroom_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    classroom = get_classroom_or_404(db, classroom_id)
    authorize(current_user, Resource.CLASSROOM, Action.READ, classroom, "Not authorized to access this classroom")
    return {"classroom": classroom_detail(classroom)}


@router.post("/", response_model=ClassroomEnvelope, status_code=status.HTTP_201_CREATED)
def create(
    payload: ClassroomCreateRequest,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.TEACHER)),
):
    classroom = create_classroom(db, name=payload.name, description=payload.description, actor=current_user)
    return ClassroomEnvelope(classroom=ClassroomOut.model_validate(classroom))


@router.put("/{classroom_id}", response_model=ClassroomEnvelope)
def update(
    classroom_id: int,
    payload: ClassroomUpdateRequest,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    classroom = update_classroom(db, classroom_id, payload.model_dump(exclude_unset=True), current_user)
    return ClassroomEnvelope(classroom=ClassroomOut.model_validate(classroom))


@router.delete("/{classroom_id}", response_model=MessageResponse)
def delete(classroom_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    delete_classroom(db, classroom_id, current_user)
    return MessageResponse(message="Classroom deleted successfully")


@router.post("/{classroom_id}/teachers", status_code=status.HTTP_201_CREATED)
def assign_teacher(
    classroom_id: int,
    payload: TeacherMembershipRequest,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    membership = add_teacher(
        db, classroom_id, current_user, teacher_id=payload.teacher_id, teacher_email=payload.teacher_email
    )
    return {
        "classroom_teacher": MembershipOut(
            id=membership.id,
            classroom_id=membership.classroom_id,
            user=UserBrief.model_validate(membership.teacher),
            assigned_at=membership.assigned_at,
        )
    }


@router.delete("/{classroom_id}/teachers/{teacher_id}", response_model=MessageResponse)
def unassign_teacher(
    classroom_id: int,
    teacher_id: int,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    remove_teacher(db, classroom_id, teacher_id, current_user)
    return MessageResponse(message="Teacher removed from classroom successfully")


@router.post("/{classroom_id}/students", status_code=status.HTTP_201_CREATED)
def enroll_student(
    classroom_id: int,
    payload: StudentMembershipRequest,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.TEACHER)),
):
    membership = add_student(
        db, classroom_id, current_user, student_id=payload.student_id, student_email=payload.student_email
    )
    return {
        "classroom_student": MembershipOut(
            id=membership.id,
            classroom_id=membership.classroom_id,
            user=UserBrief.model_validate(membership.student),
            assigned_at=membership.assigned_at,
        )
    }


@router.delete("/{classroom_id}/students/{student_id}", response_model=MessageResponse)
def unenroll_student(
    classroom_id: int,
    student_id: int,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.TEACHER)),
):
    remove_student(db, classroom_id, student_id, current_user)
    return MessageResponse(message="Student removed from classroom successfully")
