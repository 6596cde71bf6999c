from cleanapi.api.database import get_db, get_storage_adapter, close_storage_adapter
from cleanapi.access_control.bootstrap import bootstrap_default_policies
from cleanapi.access_control.cache import PolicyCache
from cleanapi.access_control.engine import PolicyEngine
from cleanapi.access_control.service import AuthorizationService
from cleanapi.access_control.constants import RESOURCE_PRODUCT, RESOURCE_USER
from cleanapi.auth.audit import AuditLogger
from cleanapi.auth.passwords import PasswordHasher
from cleanapi.auth.tokens import TokenService
from cleanapi.platform.config import settings
from cleanapi.platform.logging import get_logger
from cleanapi.services.auth_service import AuthService
from cleanapi.services.product_service import ProductService
from cleanapi.services.user_service import UserService
from cleanapi.storage.repositories.audit_repository import AuditRepository
from cleanapi.storage.repositories.policy_repository import PolicyRepository
from cleanapi.storage.repositories.product_repository import ProductRepository
from cleanapi.storage.repositories.secured_repository import SecuredRepository
from cleanapi.storage.repositories.user_repository import UserRepository

logger = get_logger(__name__)

# Singletons
_policy_store: PolicyRepository | None = None
_policy_cache: PolicyCache | None = None
_policy_engine: PolicyEngine | None = None
_authorization_service: AuthorizationService | None = None
_token_service: TokenService | None = None
_password_hasher: PasswordHasher | None = None


def get_policy_store() -> PolicyRepository:
    global _policy_store
    if not _policy_store:
        adapter = get_storage_adapter()
        _policy_store = PolicyRepository(adapter.session_factory)
    return _policy_store

def get_policy_cache() -> PolicyCache:
    global _policy_cache
    if not _policy_cache:
        _policy_cache = PolicyCache(get_policy_store())
    return _policy_cache

def get_policy_engine() -> PolicyEngine:
    global _policy_engine
    if not _policy_engine:
        _policy_engine = PolicyEngine(get_policy_cache(), get_policy_store())
    return _policy_engine

def get_authorization_service() -> AuthorizationService:
    global _authorization_service
    if not _authorization_service:
        _authorization_service = AuthorizationService(get_policy_engine())
    return _authorization_service

def get_token_service() -> TokenService:
    global _token_service
    if not _token_service:
        _token_service = TokenService(
            secret_key=settings.JWT_SECRET,
            issuer=settings.JWT_ISSUER,
            access_expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
            refresh_expire_days=settings.REFRESH_TOKEN_EXPIRE_DAYS,
            algorithm=settings.JWT_ALGORITHM,
        )
    return _token_service

def get_password_hasher() -> PasswordHasher:
    global _password_hasher
    if not _password_hasher:
        _password_hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    return _password_hasher

def get_audit_logger() -> AuditLogger:
    return AuditLogger(AuditRepository())


# --- Services ---

def get_auth_service() -> AuthService:
    return AuthService(UserRepository(), get_password_hasher(), get_token_service())

def get_user_service() -> UserService:
    authz = get_authorization_service()
    repository = SecuredRepository(
        UserRepository(), authz, get_audit_logger(), RESOURCE_USER, owner_attribute="id"
    )
    return UserService(repository, authz)

def get_product_service() -> ProductService:
    repository = SecuredRepository(
        ProductRepository(), get_authorization_service(), get_audit_logger(), RESOURCE_PRODUCT,
        owner_attribute="created_by",
    )
    return ProductService(repository)


# --- Lifecycle ---

def init_resources() -> None:
    """Connect storage, create the schema, seed default policies and warm the policy cache."""
    adapter = get_storage_adapter()
    adapter.connect()
    adapter.create_schema()

    store = get_policy_store()
    if settings.POLICY_BOOTSTRAP_ENABLED:
        bootstrap_default_policies(store)

    get_policy_cache().load()

def close_resources() -> None:
    """Close storage and drop every singleton built on it."""
    global _policy_store, _policy_cache, _policy_engine, _authorization_service
    close_storage_adapter()
    _policy_store = None
    _policy_cache = None
    _policy_engine = None
    _authorization_service = None
    logger.info("resources_closed")


__all__ = [
    "get_db",
    "get_storage_adapter",
    "get_policy_store",
    "get_policy_cache",
    "get_policy_engine",
    "get_authorization_service",
    "get_token_service",
    "get_password_hasher",
    "get_audit_logger",
    "get_auth_service",
    "get_user_service",
    "get_product_service",
    "init_resources",
    "close_resources",
]
