from datetime import date as date_type, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import AssignmentStatus, UserRole, to_naive_utc


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class MessageResponse(BaseModel):
    message: str


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    role: UserRole

    @field_validator("role")
    @classmethod
    def staff_roles_only(cls, value: UserRole) -> UserRole:
        if value not in (UserRole.ADMIN, UserRole.TEACHER):
            raise ValueError("Invalid role")
        return value


class ForgotPasswordRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)


class ResetPasswordRequest(BaseModel):
    password: str = Field(min_length=6)


class UserBrief(ORMModel):
    id: int
    first_name: str
    last_name: str
    email: str


class UserListItem(UserBrief):
    role: UserRole


class UserOut(UserListItem):
    is_active: bool
    created_at: datetime


class AuthResponse(BaseModel):
    user: UserOut
    token: str


class UserCreateRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6)
    role: UserRole


class UserUpdateRequest(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=120)
    last_name: str | None = Field(default=None, min_length=1, max_length=120)
    email: str | None = Field(default=None, min_length=3, max_length=255)
    role: UserRole | None = None
    is_active: bool | None = None
    password: str | None = Field(default=None, min_length=6)


class ClassroomCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None


class ClassroomUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    is_active: bool | None = None


class ClassroomOut(ORMModel):
    id: int
    name: str
    description: str | None
    creator_id: int
    is_active: bool
    created_at: datetime


class TeacherMembershipRequest(BaseModel):
    teacher_id: int | None = None
    teacher_email: str | None = None


class StudentMembershipRequest(BaseModel):
    student_id: int | None = None
    student_email: str | None = None


class AssignmentCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    due_date: datetime | None = None
    classroom_id: int
    is_class_wide: bool = True
    student_ids: list[int] | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Assignment title is required")
        return value.strip()

    @field_validator("due_date")
    @classmethod
    def due_date_in_utc(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)


class AssignmentUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    due_date: datetime | None = None
    is_active: bool | None = None

    @field_validator("due_date")
    @classmethod
    def due_date_in_utc(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)


class AssignmentOut(ORMModel):
    id: int
    title: str
    description: str | None
    due_date: datetime | None
    classroom_id: int
    creator_id: int
    is_active: bool
    is_class_wide: bool
    created_at: datetime


class SubmissionUpdateRequest(BaseModel):
    grade: float | None = Field(default=None, ge=0, le=100)
    feedback: str | None = None


class SubmissionFileOut(ORMModel):
    id: int
    filename: str
    file_size: int
    file_type: str
    uploaded_at: datetime


class SubmissionOut(ORMModel):
    id: int
    assignment_id: int
    student_id: int
    status: AssignmentStatus
    grade: float | None
    feedback: str | None
    submission_content: str | None
    submitted_at: datetime | None
    student: UserBrief
    files: list[SubmissionFileOut] = []


class ReminderRequest(BaseModel):
    student_ids: list[int] = Field(default_factory=list)


class AttendanceRecordIn(BaseModel):
    student_id: int
    is_present: bool


class AttendanceSubmitRequest(BaseModel):
    date: date_type
    attendance_records: list[AttendanceRecordIn]


class NotificationOut(ORMModel):
    id: int
    title: str
    message: str
    is_read: bool
    created_at: datetime
    sender_id: int
    receiver_id: int
    sender: UserBrief | None = None


class UserEnvelope(BaseModel):
    user: UserOut


class UserListResponse(BaseModel):
    users: list[UserListItem]


class ClassroomSummary(ClassroomOut):
    creator: UserBrief
    teacher_count: int
    student_count: int


class ClassroomListResponse(BaseModel):
    classrooms: list[ClassroomSummary]


class ClassroomDetail(ClassroomOut):
    creator: UserBrief
    teachers: list[UserListItem]
    students: list[UserListItem]
    assignments: list[AssignmentOut]


class ClassroomEnvelope(BaseModel):
    classroom: ClassroomOut


class MembershipOut(ORMModel):
    id: int
    classroom_id: int
    user: UserBrief
    assigned_at: datetime


class SubmissionEnvelope(BaseModel):
    submission: SubmissionOut


class NotificationEnvelope(BaseModel):
    notification: NotificationOut


class NotificationListResponse(BaseModel):
    notifications: list[NotificationOut]
