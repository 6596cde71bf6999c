from typing import Annotated, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from cleanapi.api.database import get_db
from cleanapi.api.dependencies import get_auth_service, get_authorization_service
from cleanapi.access_control.constants import ROLE_ADMIN, permission_token
from cleanapi.access_control.models import AuthContext
from cleanapi.access_control.service import AuthorizationService
from cleanapi.platform.errors import ForbiddenError, UnauthorizedError
from cleanapi.platform.logging import bind_caller
from cleanapi.services.auth_service import AuthService
from cleanapi.storage.models import UserModel

# Looks up the owner id of a resource instance, or None when unknown
OwnerLookup = Callable[[Session, str], Optional[str]]

bearer_scheme = HTTPBearer(auto_error=False)


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    db: Annotated[Session, Depends(get_db)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> UserModel:
    """Resolve the Bearer access token to an active user."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("authorization header required", code="MISSING_TOKEN")
    return auth_service.validate_token(db, credentials.credentials)


def get_auth_context(
    request: Request,
    user: Annotated[UserModel, Depends(get_current_user)],
    authz: Annotated[AuthorizationService, Depends(get_authorization_service)],
) -> AuthContext:
    """Identity of the caller, threaded explicitly into authorization calls."""
    base = AuthContext(client_ip=get_client_ip(request))
    ctx = authz.create_enriched_context(base, user.id, user.role, user.email)
    bind_caller(ctx.user_id, ctx.role)
    return ctx


class PermissionChecker:
    """
    Callable dependency that authorizes the caller for ``resource:action``.

    With ``resource_id_param`` the check is scoped to the instance named by
    that path parameter, and ``owner_lookup`` supplies its owner for
    ownership conditions.
    """
    def __init__(
        self,
        resource: str,
        action: str,
        resource_id_param: Optional[str] = None,
        owner_lookup: Optional[OwnerLookup] = None,
    ):
        self.resource = resource
        self.action = action
        self.resource_id_param = resource_id_param
        self.owner_lookup = owner_lookup

    def __call__(
        self,
        request: Request,
        ctx: Annotated[AuthContext, Depends(get_auth_context)],
        authz: Annotated[AuthorizationService, Depends(get_authorization_service)],
        db: Annotated[Session, Depends(get_db)],
    ) -> AuthContext:
        token = permission_token(self.resource, self.action)

        if not self.resource_id_param:
            authz.check_permission(ctx, ctx.user_id, token, self.action)
            return ctx

        resource_id = request.path_params.get(self.resource_id_param, "")
        owner_id = None
        if self.owner_lookup and resource_id:
            owner_id = self.owner_lookup(db, resource_id)
        authz.check_resource_permission(
            ctx, ctx.user_id, token, self.action, resource_id, resource_owner_id=owner_id
        )
        return ctx


class RoleChecker:
    """Callable dependency that admits only callers holding ``role``."""
    def __init__(self, role: str):
        self.role = role

    def __call__(self, ctx: Annotated[AuthContext, Depends(get_auth_context)]) -> AuthContext:
        if ctx.role != self.role:
            raise ForbiddenError("insufficient permissions", code="INSUFFICIENT_PERMISSIONS")
        return ctx


def require_permission(resource: str, action: str) -> Callable:
    """Factory for permission dependency."""
    return PermissionChecker(resource, action)


def require_resource_permission(
    resource: str, action: str, owner_lookup: Optional[OwnerLookup] = None, id_param: str = "id"
) -> Callable:
    """Factory for a permission dependency scoped to the ``{id}`` path parameter."""
    return PermissionChecker(resource, action, resource_id_param=id_param, owner_lookup=owner_lookup)


def require_role(role: str) -> Callable:
    return RoleChecker(role)


require_admin = require_role(ROLE_ADMIN)
