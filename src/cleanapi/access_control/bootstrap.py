from typing import List

from cleanapi.access_control.constants import (
    ADMIN_FULL_ACCESS_POLICY,
    CRUD_ACTIONS,
    DEFAULT_POLICY_VERSION,
    RESOURCE_PRODUCT,
    ROLE_ADMIN,
    ROLE_PREFIX,
    ROLE_USER,
    USER_PRODUCT_ACCESS_POLICY,
    WILDCARD,
    permission_token,
)
from cleanapi.access_control.models import Effect, PolicyDocument, PolicyStatement
from cleanapi.access_control.store import PolicyStore
from cleanapi.platform.logging import get_logger

logger = get_logger(__name__)


def default_policies() -> List[PolicyDocument]:
    """Admins may do anything; users get full CRUD on products."""
    admin = PolicyDocument(
        name=ADMIN_FULL_ACCESS_POLICY,
        version=DEFAULT_POLICY_VERSION,
        statements=[
            PolicyStatement.build(
                effect=Effect.ALLOW,
                principal=f"{ROLE_PREFIX}{ROLE_ADMIN}",
                action=WILDCARD,
                resource=WILDCARD,
            )
        ],
    )
    user = PolicyDocument(
        name=USER_PRODUCT_ACCESS_POLICY,
        version=DEFAULT_POLICY_VERSION,
        statements=[
            PolicyStatement.build(
                effect=Effect.ALLOW,
                principal=f"{ROLE_PREFIX}{ROLE_USER}",
                action=action,
                resource=permission_token(RESOURCE_PRODUCT, action),
            )
            for action in CRUD_ACTIONS
        ],
    )
    return [admin, user]


def bootstrap_default_policies(store: PolicyStore) -> int:
    """Seed the default policies into an empty store. Returns how many were created."""
    existing = store.count_active()
    if existing > 0:
        logger.info("policy_bootstrap_skipped", active_policies=existing)
        return 0

    created = 0
    for policy in default_policies():
        store.create(policy)
        created += 1

    logger.info("policy_bootstrap_completed", created=created)
    return created
