from typing import Tuple
from uuid import uuid4
from sqlalchemy.orm import Session

from cleanapi.access_control.constants import ROLE_USER
from cleanapi.auth.passwords import PasswordHasher
from cleanapi.auth.tokens import ACCESS_TOKEN, REFRESH_TOKEN, TokenPair, TokenService
from cleanapi.platform.errors import ConflictError, UnauthorizedError, ValidationError
from cleanapi.platform.logging import get_logger
from cleanapi.services import schemas
from cleanapi.storage.models import UserModel
from cleanapi.storage.repositories.user_repository import UserRepository

logger = get_logger(__name__)


class AuthService:
    """Registration, login and token handling.

    Works on the plain UserRepository: these flows run before the caller has
    an identity to authorize.
    """

    def __init__(self, repository: UserRepository, password_hasher: PasswordHasher, token_service: TokenService):
        self.repository = repository
        self.password_hasher = password_hasher
        self.token_service = token_service

    def register(self, session: Session, request: schemas.RegisterRequest) -> UserModel:
        email = request.email.lower()
        if self.repository.get_by_email(session, email):
            raise ConflictError("user with this email already exists", code="USER_ALREADY_EXISTS")

        user = UserModel(
            id=str(uuid4()),
            email=email,
            hashed_password=self.password_hasher.hash_password(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
            role=ROLE_USER,
            is_active=True,
        )
        created = self.repository.create(session, user)
        logger.info("user_registered", user_id=created.id)
        return created

    def login(self, session: Session, request: schemas.LoginRequest) -> Tuple[UserModel, TokenPair]:
        user = self.repository.get_by_email(session, request.email.lower())
        if not user or not self.password_hasher.verify_password(request.password, user.hashed_password):
            logger.warning("login_failed", email=request.email)
            raise ValidationError("invalid email or password", code="INVALID_CREDENTIALS")
        if not user.is_active:
            raise UnauthorizedError("user account is deactivated", code="USER_DEACTIVATED")

        tokens = self.token_service.generate_token_pair(user.id, user.email, user.role)
        logger.info("user_logged_in", user_id=user.id)
        return user, tokens

    def refresh(self, session: Session, refresh_token: str) -> TokenPair:
        claims = self.token_service.validate_token(refresh_token, expected_type=REFRESH_TOKEN)
        user = self._active_user(session, claims.user_id)
        # Re-issue from the stored user so role changes take effect
        return self.token_service.generate_token_pair(user.id, user.email, user.role)

    def validate_token(self, session: Session, token: str) -> UserModel:
        """Resolve an access token to its user, who must still exist and be active."""
        claims = self.token_service.validate_token(token, expected_type=ACCESS_TOKEN)
        return self._active_user(session, claims.user_id)

    def _active_user(self, session: Session, user_id: str) -> UserModel:
        user = self.repository.get(session, user_id)
        if not user:
            raise UnauthorizedError("user not found", code="INVALID_TOKEN")
        if not user.is_active:
            raise UnauthorizedError("user account is deactivated", code="USER_DEACTIVATED")
        return user
