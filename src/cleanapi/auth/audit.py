from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from cleanapi.platform.logging import get_logger
from cleanapi.storage.models_audit import AuditLogModel
from cleanapi.storage.repositories.audit_repository import AuditRepository

logger = get_logger(__name__)


class AuditLogger:
    """Records data access events, separate from application logging."""

    def __init__(self, audit_repository: AuditRepository):
        self.audit_repository = audit_repository

    def log_access(
        self,
        session: Session,
        user_id: Optional[str],
        action: str,
        resource: str,
        entity_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditLogModel:
        entry = self.audit_repository.create_log(
            session,
            user_id=user_id,
            action=action,
            resource=resource,
            entity_id=entity_id,
            ip_address=ip_address,
            metadata=metadata,
        )
        logger.info(
            "audit_access",
            user_id=user_id,
            action=action,
            resource=resource,
            entity_id=entity_id,
            ip_address=ip_address,
        )
        return entry
