import pytest

from cleanapi.access_control.models import (
    ANY,
    AttributeEquals,
    AuthContext,
    Effect,
    Exact,
    PolicyDocument,
    PolicyStatement,
    Principal,
    ResourceOwnership,
    conditions_from_mapping,
    conditions_to_mapping,
    parse_pattern,
)
from cleanapi.platform.errors import InvalidPolicyError
from cleanapi.storage.models_access_control import from_policy_document, to_policy_document


def test_parse_pattern():
    assert parse_pattern("*") is ANY
    assert parse_pattern("product:read") == Exact("product:read")
    assert str(ANY) == "*"
    assert str(Exact("create")) == "create"

    with pytest.raises(InvalidPolicyError):
        parse_pattern("")


def test_exact_wildcard_literal_is_not_the_wildcard():
    literal = Exact("*")
    assert literal != ANY
    assert literal.matches("*")
    assert not literal.matches("product:read")
    assert ANY.matches("product:read")


def test_principal_parse():
    assert Principal.parse("*") == Principal(ANY)
    assert Principal.parse("role:admin") == Principal(Exact("admin"))
    assert str(Principal.parse("role:user")) == "role:user"
    assert str(Principal.parse("*")) == "*"
    assert Principal.parse("*").is_wildcard

    for bad in ("admin", "role:", "", "user:admin"):
        with pytest.raises(InvalidPolicyError):
            Principal.parse(bad)


def test_principal_matches():
    assert Principal.parse("*").matches("anything")
    assert Principal.parse("role:user").matches("user")
    assert not Principal.parse("role:user").matches("admin")


def test_effect_parse():
    assert Effect.parse("allow") is Effect.ALLOW
    assert Effect.parse(Effect.DENY) is Effect.DENY
    with pytest.raises(InvalidPolicyError):
        Effect.parse("maybe")


def test_conditions_mapping():
    conditions = conditions_from_mapping({"resource_owner": True, "department": "sales"})
    assert ResourceOwnership(True) in conditions
    assert AttributeEquals("department", "sales") in conditions
    assert conditions_to_mapping(conditions) == {"resource_owner": True, "department": "sales"}

    assert conditions_from_mapping({}) == ()
    assert conditions_from_mapping(None) == ()
    assert conditions_to_mapping(()) == {}


def test_statement_build_rejects_invalid_effect():
    with pytest.raises(InvalidPolicyError):
        PolicyStatement.build(effect="permit", principal="*", action="*", resource="*")


def test_document_validate():
    with pytest.raises(InvalidPolicyError):
        PolicyDocument(name="  ").validate()

    statement = PolicyStatement.build(effect="allow", principal="*", action="read", resource="product:read")
    statement.effect = "sometimes"
    with pytest.raises(InvalidPolicyError):
        PolicyDocument(name="broken", statements=[statement]).validate()

    ok = PolicyDocument(
        name="ok",
        statements=[PolicyStatement.build(effect="deny", principal="role:user", action="*", resource="*")],
    )
    ok.validate()


def test_document_principal_roles_are_distinct():
    policy = PolicyDocument(
        name="mixed",
        statements=[
            PolicyStatement.build(effect="allow", principal="role:user", action="read", resource="product:read"),
            PolicyStatement.build(effect="allow", principal="role:user", action="list", resource="product:list"),
            PolicyStatement.build(effect="allow", principal="*", action="read", resource="catalog:read"),
        ],
    )
    assert policy.principal_roles() == [Exact("user"), ANY]


@pytest.mark.parametrize("conditions", [
    {},
    {"resource_owner": True},
    {"department": "sales", "level": 3},
    {"tags": ["a", "b"], "nested": {"k": {"v": None}}, "resource_owner": "yes"},
])
def test_storage_round_trip(conditions):
    policy = PolicyDocument(
        name="round-trip",
        version="2.1",
        is_active=False,
        statements=[
            PolicyStatement.build(
                effect="deny", principal="role:user", action="delete", resource="product:delete",
                conditions=conditions,
            ),
            PolicyStatement.build(effect="allow", principal="*", action="*", resource="*"),
        ],
    )

    restored = to_policy_document(from_policy_document(policy))

    assert restored.id == policy.id
    assert restored.name == "round-trip"
    assert restored.version == "2.1"
    assert restored.is_active is False
    assert len(restored.statements) == 2
    for original, copy in zip(policy.statements, restored.statements):
        assert copy.effect == original.effect
        assert copy.principal == original.principal
        assert copy.action == original.action
        assert copy.resource == original.resource
        assert copy.condition_map() == original.condition_map()
        assert copy.policy_id == policy.id


def test_auth_context_as_context():
    ctx = AuthContext(user_id="u1", role="user", email="", client_ip="10.0.0.1")
    assert ctx.as_context() == {"user_id": "u1", "user_role": "user", "client_ip": "10.0.0.1"}

    enriched = ctx.with_attributes(resource_owner_id="u1")
    assert enriched.as_context()["resource_owner_id"] == "u1"
    assert "resource_owner_id" not in ctx.attributes
