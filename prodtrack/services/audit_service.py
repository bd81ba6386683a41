"""
Audit Service - append-only trail of mutating actions
"""
import json
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from prodtrack.core.security import Principal
from prodtrack.models import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Audit trail writer"""

    @staticmethod
    def record(
        db: Session,
        actor: Optional[Principal],
        action: str,
        entity: str,
        entity_id: Any,
        details: Any = None
    ) -> None:
        """
        Write one audit entry in its own commit, after the primary mutation
        has already been committed. A failure here is logged and dropped:
        only the audit write is rolled back.
        """
        if isinstance(details, (dict, list)):
            details = json.dumps(details, ensure_ascii=False, default=str)

        try:
            db.add(AuditLog(
                action=action,
                entity=entity,
                entity_id=str(entity_id),
                user_id=actor.id if actor else None,
                details=details
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Audit write failed for {action} {entity}#{entity_id}: {e}")

    @staticmethod
    def for_entity(db: Session, entity: str, entity_id: Any):
        return db.query(AuditLog).filter(
            AuditLog.entity == entity,
            AuditLog.entity_id == str(entity_id)
        ).order_by(AuditLog.created_at.asc(), AuditLog.id.asc()).all()
