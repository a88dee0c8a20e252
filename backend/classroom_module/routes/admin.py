from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..admin_service import dashboard_stats, system_stats
from ..database import get_db_session
from ..middleware import require_roles
from ..models import User, UserRole

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/dashboard-stats")
def admin_dashboard(db: Session = Depends(get_db_session), _: User = Depends(require_roles(UserRole.ADMIN))):
    return dashboard_stats(db)


@router.get("/system-stats")
def admin_system_stats(db: Session = Depends(get_db_session), _: User = Depends(require_roles(UserRole.ADMIN))):
    return system_stats(db)
