from typing import Annotated

from fastapi import APIRouter, Depends, Query

from cleanapi.access_control.models import AuthContext
from cleanapi.access_control.service import AuthorizationService
from cleanapi.api.dependencies import get_authorization_service
from cleanapi.api.dependencies_auth import get_auth_context
from cleanapi.services import schemas


router = APIRouter()

@router.get("/me", response_model=schemas.PermissionListResponse)
def my_permissions(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    authz: Annotated[AuthorizationService, Depends(get_authorization_service)],
):
    """
    Permissions granted to the caller's role by allow statements.
    """
    permissions = authz.get_user_permissions(ctx, ctx.user_id)
    return schemas.PermissionListResponse(
        user_id=ctx.user_id,
        role=ctx.role,
        permissions=[schemas.PermissionSchema.from_domain(p) for p in permissions],
    )

@router.get("/me/effective", response_model=schemas.PermissionListResponse)
def my_effective_permissions(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    authz: Annotated[AuthorizationService, Depends(get_authorization_service)],
):
    """
    The caller's permissions that currently evaluate to allowed, deny statements included.
    """
    permissions = authz.get_effective_permissions(ctx, ctx.user_id)
    return schemas.PermissionListResponse(
        user_id=ctx.user_id,
        role=ctx.role,
        permissions=[schemas.PermissionSchema.from_domain(p) for p in permissions],
    )

@router.get("/roles/{role}/actions", response_model=schemas.RoleActionsResponse)
def role_actions(
    role: str,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    authz: Annotated[AuthorizationService, Depends(get_authorization_service)],
    resource: str = Query(..., min_length=1, description="Resource token e.g. 'product:read'"),
):
    authz.validate_role(role)
    return schemas.RoleActionsResponse(
        role=role,
        resource=resource,
        actions=authz.get_allowed_actions_for_role(role, resource),
    )
