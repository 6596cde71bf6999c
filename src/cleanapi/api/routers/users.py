from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from cleanapi.access_control.constants import (
    ACTION_DELETE,
    ACTION_LIST,
    ACTION_READ,
    ACTION_UPDATE,
    RESOURCE_USER,
)
from cleanapi.access_control.models import AuthContext
from cleanapi.api.dependencies import get_db, get_user_service
from cleanapi.api.dependencies_auth import require_permission, require_resource_permission
from cleanapi.platform.config import settings
from cleanapi.services import schemas
from cleanapi.services.user_service import UserService


router = APIRouter()

def user_owner(session: Session, user_id: str) -> Optional[str]:
    # A user record is owned by the user it describes
    return user_id


@router.get("/", response_model=schemas.UserListResponse)
def list_users(
    service: Annotated[UserService, Depends(get_user_service)],
    session: Annotated[Session, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_permission(RESOURCE_USER, ACTION_LIST))],
    limit: int = Query(settings.DEFAULT_PAGE_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
):
    """
    List users.
    """
    items, total = service.list_users(session, ctx, limit, offset)
    return schemas.UserListResponse(
        items=[schemas.UserResponse.model_validate(user) for user in items],
        total=total,
        limit=limit,
        offset=offset,
    )

@router.get("/{id}", response_model=schemas.UserResponse)
def get_user(
    id: str,
    service: Annotated[UserService, Depends(get_user_service)],
    session: Annotated[Session, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_resource_permission(RESOURCE_USER, ACTION_READ, user_owner))],
):
    return service.get_user(session, ctx, id)

@router.put("/{id}", response_model=schemas.UserResponse)
def update_user(
    id: str,
    user_update: schemas.UserUpdate,
    service: Annotated[UserService, Depends(get_user_service)],
    session: Annotated[Session, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_resource_permission(RESOURCE_USER, ACTION_UPDATE, user_owner))],
):
    """
    Update a user's profile, role or active flag.
    """
    return service.update_user(session, ctx, id, user_update)

@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    id: str,
    service: Annotated[UserService, Depends(get_user_service)],
    session: Annotated[Session, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_resource_permission(RESOURCE_USER, ACTION_DELETE, user_owner))],
):
    service.delete_user(session, ctx, id)
