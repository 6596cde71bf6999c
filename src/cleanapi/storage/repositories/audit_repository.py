from typing import Optional, Dict, Any, List
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from cleanapi.storage.repositories.base import BaseRepository
from cleanapi.storage.models_audit import AuditLogModel

class AuditRepository(BaseRepository[AuditLogModel]):
    """Repository for Audit Logs. Entries are append-only."""

    def create(self, session: Session, entity: AuditLogModel) -> AuditLogModel:
        session.add(entity)
        session.flush()
        return entity

    def get(self, session: Session, id: str) -> Optional[AuditLogModel]:
        return session.get(AuditLogModel, id)

    def update(self, session: Session, id: str, updates: Dict[str, Any]) -> Optional[AuditLogModel]:
        raise NotImplementedError("audit log entries are immutable")

    def delete(self, session: Session, id: str) -> bool:
        raise NotImplementedError("audit log entries are immutable")

    def list(self, session: Session, limit: int = 100, offset: int = 0) -> List[AuditLogModel]:
        stmt = select(AuditLogModel).order_by(AuditLogModel.timestamp.desc()).limit(limit).offset(offset)
        return list(session.scalars(stmt).all())

    def count(self, session: Session) -> int:
        return session.scalar(select(func.count()).select_from(AuditLogModel)) or 0

    def list_by_user(self, session: Session, user_id: str, limit: int = 100) -> List[AuditLogModel]:
        stmt = (
            select(AuditLogModel)
            .where(AuditLogModel.user_id == user_id)
            .order_by(AuditLogModel.timestamp.desc())
            .limit(limit)
        )
        return list(session.scalars(stmt).all())

    def create_log(
        self,
        session: Session,
        user_id: Optional[str],
        action: str,
        resource: str,
        entity_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> AuditLogModel:
        """Helper to create a log entry."""
        log = AuditLogModel(
            user_id=user_id,
            action=action,
            resource=resource,
            entity_id=entity_id,
            ip_address=ip_address,
            metadata_context=metadata
        )
        return self.create(session, log)
