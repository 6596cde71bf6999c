import pytest

from cleanapi.access_control.bootstrap import default_policies
from cleanapi.access_control.cache import PolicyCache
from cleanapi.access_control.engine import PolicyEngine
from cleanapi.access_control.models import AuthContext
from cleanapi.access_control.service import AuthorizationService
from cleanapi.auth.audit import AuditLogger
from cleanapi.platform.errors import NotFoundError, PermissionDeniedError
from cleanapi.storage.models import ProductModel, UserModel
from cleanapi.storage.repositories.audit_repository import AuditRepository
from cleanapi.storage.repositories.product_repository import ProductRepository
from cleanapi.storage.repositories.secured_repository import SecuredRepository
from cleanapi.storage.repositories.user_repository import UserRepository


@pytest.fixture
def engine(policy_store):
    for policy in default_policies():
        policy_store.create(policy)
    engine = PolicyEngine(PolicyCache(policy_store), policy_store)
    engine.load_policies()
    return engine


@pytest.fixture
def audit_repo():
    return AuditRepository()


@pytest.fixture
def products(engine, audit_repo):
    return SecuredRepository(
        ProductRepository(),
        AuthorizationService(engine),
        AuditLogger(audit_repo),
        "product",
        owner_attribute="created_by",
    )


@pytest.fixture
def users(engine, audit_repo):
    return SecuredRepository(
        UserRepository(),
        AuthorizationService(engine),
        AuditLogger(audit_repo),
        "user",
        owner_attribute="id",
    )


@pytest.fixture
def user_ctx():
    return AuthContext(user_id="u1", role="user", client_ip="10.0.0.1")


@pytest.fixture
def admin_ctx():
    return AuthContext(user_id="a1", role="admin")


def test_product_crud_as_user(products, user_ctx, db_session, audit_repo):
    created = products.create(db_session, user_ctx, ProductModel(name="Widget", price=5.0, created_by="u1"))
    assert products.get(db_session, user_ctx, created.id).name == "Widget"

    products.update(db_session, user_ctx, created.id, {"price": 7.5})
    assert products.get(db_session, user_ctx, created.id).price == 7.5

    assert len(products.list(db_session, user_ctx)) == 1
    assert products.count(db_session, user_ctx) == 1

    products.delete(db_session, user_ctx, created.id)
    assert products.repository.get(db_session, created.id) is None

    actions = [entry.action for entry in audit_repo.list_by_user(db_session, "u1")]
    assert sorted(actions) == ["create", "delete", "list", "read", "read", "update"]
    assert all(entry.ip_address == "10.0.0.1" for entry in audit_repo.list_by_user(db_session, "u1"))


def test_user_role_cannot_touch_users(users, user_ctx, admin_ctx, db_session, audit_repo):
    target = users.create(db_session, admin_ctx, UserModel(email="bob@example.com", hashed_password="x"))

    with pytest.raises(PermissionDeniedError):
        users.get(db_session, user_ctx, target.id)
    with pytest.raises(PermissionDeniedError):
        users.list(db_session, user_ctx)
    with pytest.raises(PermissionDeniedError):
        users.create(db_session, user_ctx, UserModel(email="eve@example.com", hashed_password="x"))

    assert audit_repo.list_by_user(db_session, "u1") == []


def test_admin_manages_users(users, admin_ctx, db_session):
    target = users.create(db_session, admin_ctx, UserModel(email="carol@example.com", hashed_password="x"))

    users.update(db_session, admin_ctx, target.id, {"role": "admin"})
    assert users.get(db_session, admin_ctx, target.id).role == "admin"

    users.delete(db_session, admin_ctx, target.id)
    assert users.repository.get(db_session, target.id) is None


def test_missing_entity_is_not_found_for_authorized_caller(products, user_ctx, db_session):
    with pytest.raises(NotFoundError) as exc:
        products.get(db_session, user_ctx, "missing")
    assert exc.value.code == "PRODUCT_NOT_FOUND"

    with pytest.raises(NotFoundError):
        products.update(db_session, user_ctx, "missing", {"price": 1.0})
    with pytest.raises(NotFoundError):
        products.delete(db_session, user_ctx, "missing")


def test_unauthorized_caller_is_denied_before_lookup(users, user_ctx, admin_ctx, db_session):
    existing = users.create(db_session, admin_ctx, UserModel(email="dave@example.com", hashed_password="x"))

    # Missing and existing ids are refused alike, so existence does not leak
    for user_id in ("missing", existing.id):
        with pytest.raises(PermissionDeniedError):
            users.get(db_session, user_ctx, user_id)
        with pytest.raises(PermissionDeniedError):
            users.update(db_session, user_ctx, user_id, {"role": "admin"})
        with pytest.raises(PermissionDeniedError):
            users.delete(db_session, user_ctx, user_id)

    assert users.repository.get(db_session, existing.id).role == "user"


def test_ownership_policy_uses_owner_attribute(policy_store, make_policy, audit_repo, db_session):
    policy_store.create(make_policy("own-products", [
        {"effect": "allow", "principal": "role:user", "action": "create", "resource": "product:create"},
        {
            "effect": "allow", "principal": "role:user", "action": "update", "resource": "product:update",
            "conditions": {"resource_owner": True},
        },
    ]))
    engine = PolicyEngine(PolicyCache(policy_store), policy_store)
    engine.load_policies()
    repo = SecuredRepository(
        ProductRepository(), AuthorizationService(engine), AuditLogger(audit_repo), "product", "created_by"
    )
    owner = AuthContext(user_id="u1", role="user")
    other = AuthContext(user_id="u2", role="user")

    product = repo.create(db_session, owner, ProductModel(name="Widget", price=5.0, created_by="u1"))

    repo.update(db_session, owner, product.id, {"stock": 4})
    with pytest.raises(PermissionDeniedError):
        repo.update(db_session, other, product.id, {"stock": 0})
    assert repo.repository.get(db_session, product.id).stock == 4
