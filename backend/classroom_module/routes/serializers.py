"""Response shaping shared by several routers."""
from ..models import Assignment, Classroom
from ..schemas import (
    AssignmentOut,
    ClassroomDetail,
    ClassroomSummary,
    UserBrief,
    UserListItem,
)


def classroom_summary(classroom: Classroom) -> ClassroomSummary:
    return ClassroomSummary(
        id=classroom.id,
        name=classroom.name,
        description=classroom.description,
        creator_id=classroom.creator_id,
        is_active=classroom.is_active,
        created_at=classroom.created_at,
        creator=UserBrief.model_validate(classroom.creator),
        teacher_count=len(classroom.teachers),
        student_count=len(classroom.students),
    )


def classroom_detail(classroom: Classroom) -> ClassroomDetail:
    return ClassroomDetail(
        id=classroom.id,
        name=classroom.name,
        description=classroom.description,
        creator_id=classroom.creator_id,
        is_active=classroom.is_active,
        created_at=classroom.created_at,
        creator=UserBrief.model_validate(classroom.creator),
        teachers=[UserListItem.model_validate(membership.teacher) for membership in classroom.teachers],
        students=[UserListItem.model_validate(membership.student) for membership in classroom.students],
        assignments=[AssignmentOut.model_validate(assignment) for assignment in classroom.assignments],
    )


def assignment_summary(assignment: Assignment, *, with_classroom: bool = False) -> dict:
    data = AssignmentOut.model_validate(assignment).model_dump()
    data["submission_count"] = sum(1 for row in assignment.student_assignments if row.submitted_at is not None)
    data["assigned_count"] = len(assignment.student_assignments)
    data["total_students"] = len(assignment.classroom.students)
    if with_classroom:
        data["classroom"] = {"id": assignment.classroom.id, "name": assignment.classroom.name}
    return data
