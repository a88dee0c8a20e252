"""Access control predicates keyed by (resource type, action, actor).

Every router goes through :func:`authorize` so ownership and membership rules
live in one place. Predicates only read attributes of the ORM objects they are
given, which keeps them usable with plain stand-in objects in tests.
"""
import enum
from collections.abc import Callable
from typing import Any

from .errors import AuthorizationError
from .models import UserRole


class Resource(str, enum.Enum):
    CLASSROOM = "classroom"
    ASSIGNMENT = "assignment"
    SUBMISSION = "submission"
    FILE = "file"


class Action(str, enum.Enum):
    READ = "read"
    TEACH = "teach"
    MANAGE = "manage"
    WRITE = "write"
    SUBMIT = "submit"
    GRADE = "grade"
    DELETE = "delete"


def _is_admin(actor: Any) -> bool:
    return actor.role == UserRole.ADMIN


def _teaches(actor: Any, classroom: Any) -> bool:
    return classroom.creator_id == actor.id or actor.id in classroom.teacher_ids


def _classroom_policy(actor: Any, classroom: Any, action: Action) -> bool:
    if action == Action.MANAGE:
        return classroom.creator_id == actor.id
    if action == Action.TEACH:
        return _teaches(actor, classroom)
    if action == Action.READ:
        return _teaches(actor, classroom) or actor.id in classroom.student_ids
    return False


def _assignment_policy(actor: Any, assignment: Any, action: Action) -> bool:
    classroom = assignment.classroom
    if action == Action.READ:
        return _teaches(actor, classroom)
    if action == Action.WRITE:
        return _teaches(actor, classroom) or assignment.creator_id == actor.id
    if action == Action.SUBMIT:
        if actor.id not in classroom.student_ids:
            return False
        if assignment.is_class_wide:
            return True
        return any(row.student_id == actor.id for row in assignment.student_assignments)
    return False


def _submission_policy(actor: Any, submission: Any, action: Action) -> bool:
    classroom = submission.assignment.classroom
    if action == Action.READ:
        return submission.student_id == actor.id or _teaches(actor, classroom)
    if action == Action.GRADE:
        return _teaches(actor, classroom)
    return False


def _file_policy(actor: Any, file: Any, action: Action) -> bool:
    submission = file.student_assignment
    if action == Action.READ:
        return _submission_policy(actor, submission, Action.READ)
    if action == Action.DELETE:
        return submission.student_id == actor.id
    return False


POLICIES: dict[Resource, Callable[[Any, Any, Action], bool]] = {
    Resource.CLASSROOM: _classroom_policy,
    Resource.ASSIGNMENT: _assignment_policy,
    Resource.SUBMISSION: _submission_policy,
    Resource.FILE: _file_policy,
}


def is_allowed(actor: Any, resource_type: Resource, action: Action, resource: Any) -> bool:
    if _is_admin(actor):
        return True
    return POLICIES[resource_type](actor, resource, action)


def authorize(
    actor: Any,
    resource_type: Resource,
    action: Action,
    resource: Any,
    message: str | None = None,
) -> None:
    if not is_allowed(actor, resource_type, action, resource):
        raise AuthorizationError(message or f"Not authorized to {action.value} this {resource_type.value}")
