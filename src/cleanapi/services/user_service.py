from typing import List, Tuple
from sqlalchemy.orm import Session

from cleanapi.access_control.constants import ACTION_UPDATE
from cleanapi.access_control.models import AuthContext
from cleanapi.access_control.service import AuthorizationService
from cleanapi.services import schemas
from cleanapi.storage.models import UserModel
from cleanapi.storage.repositories.secured_repository import SecuredRepository


class UserService:
    def __init__(self, repository: SecuredRepository[UserModel], authz: AuthorizationService):
        self.repository = repository
        self.authz = authz

    def get_user(self, session: Session, ctx: AuthContext, user_id: str) -> UserModel:
        return self.repository.get(session, ctx, user_id)

    def update_user(
        self, session: Session, ctx: AuthContext, user_id: str, user_update: schemas.UserUpdate
    ) -> UserModel:
        updates = user_update.model_dump(exclude_unset=True, exclude_none=True)
        self.repository.authorize(ctx, ACTION_UPDATE)
        if "role" in updates:
            self.authz.validate_role(updates["role"])
        if not updates:
            return self.repository.get(session, ctx, user_id)
        return self.repository.update(session, ctx, user_id, updates)

    def delete_user(self, session: Session, ctx: AuthContext, user_id: str) -> None:
        self.repository.delete(session, ctx, user_id)

    def list_users(
        self, session: Session, ctx: AuthContext, limit: int = 10, offset: int = 0
    ) -> Tuple[List[UserModel], int]:
        items = self.repository.list(session, ctx, limit=limit, offset=offset)
        return items, self.repository.count(session, ctx)
