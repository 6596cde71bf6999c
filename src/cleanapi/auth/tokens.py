"""
JWT token service.

Issues and validates HS256 access/refresh token pairs with PyJWT. Access
tokens are short lived; refresh tokens only mint new pairs.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt.exceptions import InvalidTokenError

from cleanapi.platform.errors import UnauthorizedError

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


@dataclass
class Claims:
    user_id: str
    email: str
    role: str
    token_type: str
    expires_at: datetime


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int  # seconds until the access token expires
    token_type: str = "Bearer"


class TokenService:
    def __init__(
        self,
        secret_key: str,
        issuer: str,
        access_expire_minutes: int = 15,
        refresh_expire_days: int = 7,
        algorithm: str = "HS256",
    ):
        if not secret_key:
            raise ValueError("JWT secret key is required")
        self._secret_key = secret_key
        self._issuer = issuer
        self._access_ttl = timedelta(minutes=access_expire_minutes)
        self._refresh_ttl = timedelta(days=refresh_expire_days)
        self._algorithm = algorithm

    def _encode(self, user_id: str, email: str, role: str, token_type: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "user_id": user_id,
            "email": email,
            "role": role,
            "type": token_type,
            "iss": self._issuer,
            "iat": now,
            "nbf": now,
            "exp": now + ttl,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def generate_token_pair(self, user_id: str, email: str, role: str) -> TokenPair:
        return TokenPair(
            access_token=self._encode(user_id, email, role, ACCESS_TOKEN, self._access_ttl),
            refresh_token=self._encode(user_id, email, role, REFRESH_TOKEN, self._refresh_ttl),
            expires_in=int(self._access_ttl.total_seconds()),
        )

    def validate_token(self, token: str, expected_type: Optional[str] = None) -> Claims:
        """Decode ``token`` and check signature, issuer, expiry and (optionally) type."""
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except InvalidTokenError as e:
            raise UnauthorizedError("invalid or expired token", code="INVALID_TOKEN", cause=e) from e

        token_type = payload.get("type", "")
        if expected_type and token_type != expected_type:
            raise UnauthorizedError(f"expected {expected_type} token", code="INVALID_TOKEN")

        return Claims(
            user_id=payload.get("user_id") or payload["sub"],
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            token_type=token_type,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

    def refresh_token_pair(self, refresh_token: str) -> TokenPair:
        claims = self.validate_token(refresh_token, expected_type=REFRESH_TOKEN)
        return self.generate_token_pair(claims.user_id, claims.email, claims.role)
