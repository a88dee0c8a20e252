from .admin import router as admin_router
from .analytics import router as analytics_router
from .auth import router as auth_router
from .classrooms import router as classrooms_router
from .files import router as files_router
from .notifications import router as notifications_router
from .student import router as student_router
from .teacher import router as teacher_router
from .users import router as users_router

routers = [
    auth_router,
    users_router,
    classrooms_router,
    teacher_router,
    student_router,
    files_router,
    notifications_router,
    admin_router,
    analytics_router,
]

__all__ = ["routers"]
