from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from cleanapi.api.dependencies import get_db, get_auth_service
from cleanapi.services import schemas
from cleanapi.services.auth_service import AuthService


router = APIRouter()

@router.post("/register", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: schemas.RegisterRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
    session: Annotated[Session, Depends(get_db)],
):
    """
    Register a new account. New accounts always get the "user" role.
    """
    return service.register(session, request)

@router.post("/login", response_model=schemas.TokenResponse)
def login(
    request: schemas.LoginRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
    session: Annotated[Session, Depends(get_db)],
):
    """
    Exchange credentials for an access/refresh token pair.
    """
    user, tokens = service.login(session, request)
    return schemas.TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
        user=schemas.UserResponse.model_validate(user),
    )

@router.post("/refresh", response_model=schemas.TokenResponse)
def refresh(
    request: schemas.RefreshRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
    session: Annotated[Session, Depends(get_db)],
):
    tokens = service.refresh(session, request.refresh_token)
    return schemas.TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
    )
