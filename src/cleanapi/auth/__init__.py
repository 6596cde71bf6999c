"""Authentication collaborators: JWT tokens, password hashing and access auditing."""

from .tokens import TokenService, TokenPair, Claims, ACCESS_TOKEN, REFRESH_TOKEN
from .passwords import PasswordHasher
from .audit import AuditLogger

__all__ = [
    "TokenService",
    "TokenPair",
    "Claims",
    "ACCESS_TOKEN",
    "REFRESH_TOKEN",
    "PasswordHasher",
    "AuditLogger",
]
