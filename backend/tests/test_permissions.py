from types import SimpleNamespace

import pytest

from backend.classroom_module.errors import AuthorizationError
from backend.classroom_module.models import UserRole
from backend.classroom_module.permissions import Action, Resource, authorize, is_allowed


def _user(user_id, role=UserRole.TEACHER):
    return SimpleNamespace(id=user_id, role=role)


@pytest.fixture
def classroom():
    return SimpleNamespace(id=10, creator_id=1, teacher_ids={2}, student_ids={3, 4})


@pytest.fixture
def assignment(classroom):
    return SimpleNamespace(
        id=20,
        classroom=classroom,
        creator_id=2,
        is_class_wide=False,
        student_assignments=[SimpleNamespace(student_id=3)],
    )


@pytest.fixture
def submission(assignment):
    return SimpleNamespace(id=30, assignment=assignment, student_id=3)


def test_admin_is_allowed_everything(classroom, assignment, submission):
    admin = _user(99, UserRole.ADMIN)
    assert is_allowed(admin, Resource.CLASSROOM, Action.MANAGE, classroom)
    assert is_allowed(admin, Resource.ASSIGNMENT, Action.WRITE, assignment)
    assert is_allowed(admin, Resource.SUBMISSION, Action.GRADE, submission)
    assert is_allowed(admin, Resource.FILE, Action.DELETE, SimpleNamespace(student_assignment=submission))


def test_classroom_rules(classroom):
    creator, member_teacher = _user(1), _user(2)
    student, outsider = _user(3, UserRole.STUDENT), _user(5, UserRole.STUDENT)

    assert is_allowed(creator, Resource.CLASSROOM, Action.MANAGE, classroom)
    assert not is_allowed(member_teacher, Resource.CLASSROOM, Action.MANAGE, classroom)
    assert is_allowed(member_teacher, Resource.CLASSROOM, Action.TEACH, classroom)
    assert not is_allowed(student, Resource.CLASSROOM, Action.TEACH, classroom)
    assert is_allowed(student, Resource.CLASSROOM, Action.READ, classroom)
    assert not is_allowed(outsider, Resource.CLASSROOM, Action.READ, classroom)


def test_targeted_assignment_submit_requires_own_row(assignment):
    assert is_allowed(_user(3, UserRole.STUDENT), Resource.ASSIGNMENT, Action.SUBMIT, assignment)
    assert not is_allowed(_user(4, UserRole.STUDENT), Resource.ASSIGNMENT, Action.SUBMIT, assignment)

    assignment.is_class_wide = True
    assert is_allowed(_user(4, UserRole.STUDENT), Resource.ASSIGNMENT, Action.SUBMIT, assignment)
    assert not is_allowed(_user(5, UserRole.STUDENT), Resource.ASSIGNMENT, Action.SUBMIT, assignment)


def test_submission_and_file_rules(submission):
    owner, classmate, teacher = _user(3, UserRole.STUDENT), _user(4, UserRole.STUDENT), _user(2)
    file = SimpleNamespace(student_assignment=submission)

    assert is_allowed(owner, Resource.SUBMISSION, Action.READ, submission)
    assert not is_allowed(owner, Resource.SUBMISSION, Action.GRADE, submission)
    assert not is_allowed(classmate, Resource.SUBMISSION, Action.READ, submission)
    assert is_allowed(teacher, Resource.SUBMISSION, Action.GRADE, submission)

    assert is_allowed(teacher, Resource.FILE, Action.READ, file)
    assert not is_allowed(teacher, Resource.FILE, Action.DELETE, file)
    assert is_allowed(owner, Resource.FILE, Action.DELETE, file)


def test_authorize_raises_with_message(classroom):
    with pytest.raises(AuthorizationError) as excinfo:
        authorize(_user(5, UserRole.STUDENT), Resource.CLASSROOM, Action.READ, classroom, "Keep out")
    assert excinfo.value.status_code == 403
    assert excinfo.value.detail == "Keep out"
