from typing import Any, Dict, Generic, List, Optional, TypeVar

from sqlalchemy.orm import Session

from cleanapi.access_control.constants import (
    ACTION_CREATE,
    ACTION_DELETE,
    ACTION_LIST,
    ACTION_READ,
    ACTION_UPDATE,
    permission_token,
)
from cleanapi.access_control.models import AuthContext
from cleanapi.access_control.service import AuthorizationService
from cleanapi.auth.audit import AuditLogger
from cleanapi.platform.errors import NotFoundError
from .base import BaseRepository

T = TypeVar("T")


class SecuredRepository(Generic[T]):
    """
    CRUD wrapper that authorizes every call and audits every success.

    Instance operations are authorized before the entity is looked up, so a
    caller without the permission is denied whether or not the id exists.

    Permission checks use the ``<resource>:<action>`` token. When
    ``owner_attribute`` is set, the entity's value for it is passed to the
    authorization service as the resource owner.
    """

    def __init__(
        self,
        repository: BaseRepository[T],
        authz: AuthorizationService,
        audit_logger: AuditLogger,
        resource_name: str,
        owner_attribute: Optional[str] = None,
    ):
        self.repository = repository
        self.authz = authz
        self.audit_logger = audit_logger
        self.resource_name = resource_name
        self.owner_attribute = owner_attribute

    def authorize(self, ctx: AuthContext, action: str) -> None:
        """Collection-level check for ``<resource>:<action>``, run before any lookup."""
        self.authz.check_permission(ctx, ctx.user_id, permission_token(self.resource_name, action), action)

    def validate_access(
        self, ctx: AuthContext, action: str, entity: Optional[T] = None, entity_id: str = ""
    ) -> None:
        owner_id = None
        if entity is not None and self.owner_attribute:
            owner = getattr(entity, self.owner_attribute, None)
            owner_id = str(owner) if owner is not None else None

        self.authz.check_resource_permission(
            ctx,
            ctx.user_id,
            permission_token(self.resource_name, action),
            action,
            entity_id,
            resource_owner_id=owner_id,
        )

    def audit(self, session: Session, ctx: AuthContext, action: str, entity_id: Optional[str] = None) -> None:
        self.audit_logger.log_access(
            session,
            user_id=ctx.user_id or None,
            action=action,
            resource=self.resource_name,
            entity_id=entity_id,
            ip_address=ctx.client_ip or None,
        )

    def _load(self, session: Session, id: str) -> T:
        entity = self.repository.get(session, id)
        if entity is None:
            raise NotFoundError(f"{self.resource_name} not found", code=f"{self.resource_name.upper()}_NOT_FOUND")
        return entity

    def create(self, session: Session, ctx: AuthContext, entity: T) -> T:
        self.validate_access(ctx, ACTION_CREATE)
        created = self.repository.create(session, entity)
        self.audit(session, ctx, ACTION_CREATE, getattr(created, "id", None))
        return created

    def get(self, session: Session, ctx: AuthContext, id: str) -> T:
        self.authorize(ctx, ACTION_READ)
        entity = self._load(session, id)
        self.validate_access(ctx, ACTION_READ, entity, id)
        self.audit(session, ctx, ACTION_READ, id)
        return entity

    def update(self, session: Session, ctx: AuthContext, id: str, updates: Dict[str, Any]) -> T:
        self.authorize(ctx, ACTION_UPDATE)
        entity = self._load(session, id)
        self.validate_access(ctx, ACTION_UPDATE, entity, id)
        updated = self.repository.update(session, id, updates)
        self.audit(session, ctx, ACTION_UPDATE, id)
        return updated

    def delete(self, session: Session, ctx: AuthContext, id: str) -> None:
        self.authorize(ctx, ACTION_DELETE)
        entity = self._load(session, id)
        self.validate_access(ctx, ACTION_DELETE, entity, id)
        self.repository.delete(session, id)
        self.audit(session, ctx, ACTION_DELETE, id)

    def list(self, session: Session, ctx: AuthContext, limit: int = 100, offset: int = 0) -> List[T]:
        self.validate_access(ctx, ACTION_LIST)
        items = self.repository.list(session, limit=limit, offset=offset)
        self.audit(session, ctx, ACTION_LIST)
        return items

    def count(self, session: Session, ctx: AuthContext) -> int:
        self.validate_access(ctx, ACTION_LIST)
        return self.repository.count(session)
