"""Role, resource and action tokens shared by policies, middleware and services."""

WILDCARD = "*"
ROLE_PREFIX = "role:"

# Roles
ROLE_ADMIN = "admin"
ROLE_USER = "user"
KNOWN_ROLES = (ROLE_ADMIN, ROLE_USER)

# Resources
RESOURCE_USER = "user"
RESOURCE_PRODUCT = "product"

# Actions
ACTION_CREATE = "create"
ACTION_READ = "read"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"
ACTION_LIST = "list"
CRUD_ACTIONS = (ACTION_CREATE, ACTION_READ, ACTION_UPDATE, ACTION_DELETE, ACTION_LIST)

# Effects
EFFECT_ALLOW = "allow"
EFFECT_DENY = "deny"

# Condition key that switches on the ownership check
RESOURCE_OWNER_CONDITION = "resource_owner"

# Request context keys
CTX_USER_ID = "user_id"
CTX_USER_ROLE = "user_role"
CTX_USER_EMAIL = "user_email"
CTX_CLIENT_IP = "client_ip"
CTX_RESOURCE_ID = "resource_id"
CTX_RESOURCE_OWNER_ID = "resource_owner_id"

# Default policy names
ADMIN_FULL_ACCESS_POLICY = "admin-full-access"
USER_PRODUCT_ACCESS_POLICY = "user-product-access"
DEFAULT_POLICY_VERSION = "1.0"


def permission_token(resource: str, action: str) -> str:
    """Resource token used in policy statements, e.g. ``product:create``."""
    return f"{resource}:{action}"


# Permission tokens
USER_CREATE = permission_token(RESOURCE_USER, ACTION_CREATE)
USER_READ = permission_token(RESOURCE_USER, ACTION_READ)
USER_UPDATE = permission_token(RESOURCE_USER, ACTION_UPDATE)
USER_DELETE = permission_token(RESOURCE_USER, ACTION_DELETE)
USER_LIST = permission_token(RESOURCE_USER, ACTION_LIST)

PRODUCT_CREATE = permission_token(RESOURCE_PRODUCT, ACTION_CREATE)
PRODUCT_READ = permission_token(RESOURCE_PRODUCT, ACTION_READ)
PRODUCT_UPDATE = permission_token(RESOURCE_PRODUCT, ACTION_UPDATE)
PRODUCT_DELETE = permission_token(RESOURCE_PRODUCT, ACTION_DELETE)
PRODUCT_LIST = permission_token(RESOURCE_PRODUCT, ACTION_LIST)
