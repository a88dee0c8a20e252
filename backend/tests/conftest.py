import os
import tempfile

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="classroom-uploads-")
os.environ["SMTP_EMAIL"] = ""
os.environ["SMTP_PASSWORD"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backend.classroom_module.database import Base, build_engine, build_session_factory, get_db_session  # noqa: E402
from backend.classroom_module.models import (  # noqa: E402
    Assignment,
    AssignmentStatus,
    Classroom,
    ClassroomStudent,
    ClassroomTeacher,
    StudentAssignment,
    User,
    UserRole,
)
from backend.classroom_module.security import create_access_token, hash_password  # noqa: E402
from backend.server import app  # noqa: E402

PASSWORD = "secret123"

engine = build_engine("sqlite://", poolclass=StaticPool)
TestingSession = build_session_factory(engine)


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    def override_get_db_session():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = override_get_db_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def upload_dir():
    return os.environ["UPLOAD_DIR"]


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=UserRole.STUDENT, *, email=None, password=PASSWORD, is_active=True, first_name=None):
        counter["n"] += 1
        user = User(
            email=email or f"{role.value.lower()}{counter['n']}@school.test",
            password_hash=hash_password(password),
            first_name=first_name or role.value.title(),
            last_name=f"No{counter['n']}",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def auth():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}

    return _headers


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, email="admin@school.test")


@pytest.fixture
def teacher(make_user):
    return make_user(UserRole.TEACHER, email="teacher@school.test")


@pytest.fixture
def student(make_user):
    return make_user(UserRole.STUDENT, email="student@school.test")


@pytest.fixture
def make_classroom(db):
    def _make(creator, *, teachers=(), students=(), name="Algebra I"):
        classroom = Classroom(name=name, description="Room 101", creator_id=creator.id)
        classroom.teachers = [ClassroomTeacher(teacher_id=user.id) for user in teachers]
        classroom.students = [ClassroomStudent(student_id=user.id) for user in students]
        db.add(classroom)
        db.commit()
        db.refresh(classroom)
        return classroom

    return _make


@pytest.fixture
def make_assignment(db):
    def _make(classroom, creator, *, students=(), title="Homework 1", due_date=None, is_class_wide=True, grades=None):
        assignment = Assignment(
            title=title,
            description="Chapter 3",
            due_date=due_date,
            classroom_id=classroom.id,
            creator_id=creator.id,
            is_class_wide=is_class_wide,
        )
        grades = grades or {}
        assignment.student_assignments = [
            StudentAssignment(
                student_id=user.id,
                status=AssignmentStatus.COMPLETED if grades.get(user.id) is not None else AssignmentStatus.PENDING,
                grade=grades.get(user.id),
            )
            for user in students
        ]
        db.add(assignment)
        db.commit()
        db.refresh(assignment)
        return assignment

    return _make
