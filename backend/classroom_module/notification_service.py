import logging
from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from .database import transaction
from .errors import NotFoundError
from .models import Notification, User

logger = logging.getLogger(__name__)

RECENT_LIMIT = 20


def create_notifications(
    db: Session, sender_id: int, receiver_ids: Iterable[int], *, title: str, message: str
) -> list[Notification]:
    """One notification per receiver, written in a single transaction."""
    notifications = [
        Notification(sender_id=sender_id, receiver_id=receiver_id, title=title, message=message)
        for receiver_id in receiver_ids
    ]
    with transaction(db):
        db.add_all(notifications)
    logger.info(f"User {sender_id} sent {len(notifications)} notification(s)")
    return notifications


def list_recent(db: Session, user: User, limit: int = RECENT_LIMIT) -> list[Notification]:
    query = (
        select(Notification)
        .where(Notification.receiver_id == user.id)
        .options(selectinload(Notification.sender))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(db.scalars(query))


def mark_read(db: Session, notification_id: int, user: User) -> Notification:
    notification = db.get(Notification, notification_id)
    if not notification or notification.receiver_id != user.id:
        raise NotFoundError("Notification not found")
    notification.is_read = True
    with transaction(db):
        db.add(notification)
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, user: User) -> int:
    with transaction(db):
        result = db.execute(
            update(Notification)
            .where(Notification.receiver_id == user.id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
    return result.rowcount or 0
