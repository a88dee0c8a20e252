from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db_session
from ..middleware import get_current_user
from ..models import User
from ..notification_service import list_recent, mark_all_read, mark_read
from ..schemas import NotificationEnvelope, NotificationListResponse, NotificationOut

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("/", response_model=NotificationListResponse)
def recent(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    notifications = list_recent(db, current_user)
    return NotificationListResponse(
        notifications=[NotificationOut.model_validate(notification) for notification in notifications]
    )


@router.put("/read-all")
def read_all(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    updated = mark_all_read(db, current_user)
    return {"message": "All notifications marked as read", "updated": updated}


@router.put("/{notification_id}/read", response_model=NotificationEnvelope)
def read_one(notification_id: int, db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    notification = mark_read(db, notification_id, current_user)
    return NotificationEnvelope(notification=NotificationOut.model_validate(notification))
