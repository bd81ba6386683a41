"""
Notification Service - admin message queue
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from prodtrack.core.errors import NotFoundError
from prodtrack.core.security import Principal, ensure_role
from prodtrack.models import Notification
from prodtrack.models.enums import Role

logger = logging.getLogger(__name__)


class NotificationService:

    @staticmethod
    def list_latest(db: Session, actor: Principal, limit: int = 50) -> List[Notification]:
        ensure_role(actor, (Role.ADMIN,), "read notifications")
        return db.query(Notification).order_by(
            Notification.created_at.desc(), Notification.id.desc()
        ).limit(limit).all()

    @staticmethod
    def unread_count(db: Session, actor: Principal) -> int:
        ensure_role(actor, (Role.ADMIN,), "read notifications")
        return db.query(Notification).filter(Notification.is_read.is_(False)).count()

    @staticmethod
    def mark_read(db: Session, actor: Principal, notification_id: int) -> Notification:
        ensure_role(actor, (Role.ADMIN,), "update notifications")
        notification = db.query(Notification).filter(Notification.id == notification_id).first()
        if not notification:
            raise NotFoundError(f"Notification {notification_id} not found")
        notification.is_read = True
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def mark_all_read(db: Session, actor: Principal) -> int:
        ensure_role(actor, (Role.ADMIN,), "update notifications")
        count = db.query(Notification).filter(
            Notification.is_read.is_(False)
        ).update({Notification.is_read: True}, synchronize_session=False)
        db.commit()
        return count

    @staticmethod
    def delete(db: Session, actor: Principal, notification_id: int) -> None:
        ensure_role(actor, (Role.ADMIN,), "delete notifications")
        notification = db.query(Notification).filter(Notification.id == notification_id).first()
        if not notification:
            raise NotFoundError(f"Notification {notification_id} not found")
        db.delete(notification)
        db.commit()
        logger.info(f"Notification {notification_id} deleted by user {actor.id}")

    @staticmethod
    def to_dict(n: Notification) -> dict:
        return {
            "id": n.id,
            "type": n.type,
            "title": n.title,
            "message": n.message,
            "product_id": n.product_id,
            "product_name": n.product_name,
            "system_code": n.system_code,
            "is_read": n.is_read,
            "created_by": n.created_by,
            "created_at": n.created_at,
        }
