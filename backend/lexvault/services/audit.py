# backend/lexvault/services/audit.py
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..models.audit_log import AuditLog
from ..utils.logging import service_logger


class AuditService:
    """Records what happened; a failure here never fails the caller's request"""

    @staticmethod
    def record(
            db: Session,
            user_id: Optional[int],
            action: str,
            entity_type: str,
            entity_id: Optional[int] = None,
            details: Optional[Dict[str, Any]] = None,
            ip_address: Optional[str] = None
    ) -> Optional[AuditLog]:
        entry = AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
            ip_address=ip_address
        )
        try:
            db.add(entry)
            db.commit()
            db.refresh(entry)
        except SQLAlchemyError as e:
            db.rollback()
            service_logger.error("Failed to write audit log", extra={
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "error": str(e)
            })
            return None

        service_logger.debug("Audit log recorded", extra={
            "audit_id": entry.id,
            "action": action,
            "user_id": user_id
        })
        return entry

    @staticmethod
    def recent(db: Session, limit: int = 100) -> List[Dict[str, Any]]:
        """Newest entries first, joined with the acting user's email and name"""
        logs = db.query(AuditLog) \
            .options(joinedload(AuditLog.user)) \
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc()) \
            .limit(limit) \
            .all()

        return [
            {
                "id": log.id,
                "user_id": log.user_id,
                "action": log.action,
                "entity_type": log.entity_type,
                "entity_id": log.entity_id,
                "details": log.details,
                "ip_address": log.ip_address,
                "created_at": log.created_at,
                "email": log.user.email if log.user else None,
                "full_name": log.user.full_name if log.user else None,
            }
            for log in logs
        ]


audit_service = AuditService()
