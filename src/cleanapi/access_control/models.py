"""
Policy data model.

A PolicyDocument is a named, versioned bundle of PolicyStatements. Each
statement pairs a principal, an action and a resource pattern with optional
conditions and an allow/deny effect.

Patterns are a closed set: ``ANY`` (the wildcard, written ``"*"``) or
``Exact(value)``. ``Exact("*")`` matches only a resource literally named
``"*"``; it is never treated as the wildcard.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from cleanapi.access_control.constants import (
    CTX_CLIENT_IP,
    CTX_USER_EMAIL,
    CTX_USER_ID,
    CTX_USER_ROLE,
    DEFAULT_POLICY_VERSION,
    RESOURCE_OWNER_CONDITION,
    ROLE_PREFIX,
    WILDCARD,
)
from cleanapi.platform.errors import InvalidPolicyError


def new_id() -> str:
    return str(uuid.uuid4())


class Effect(str, Enum):
    ALLOW = "allow"
    DENY = "deny"

    @classmethod
    def parse(cls, value: Union[str, "Effect"]) -> "Effect":
        try:
            return cls(value)
        except ValueError:
            raise InvalidPolicyError(f"invalid policy effect: {value!r}") from None


# --- Patterns ---

@dataclass(frozen=True)
class AnyPattern:
    """Matches every value."""

    def matches(self, candidate: str) -> bool:
        return True

    def __str__(self) -> str:
        return WILDCARD


@dataclass(frozen=True)
class Exact:
    value: str

    def matches(self, candidate: str) -> bool:
        return candidate == self.value

    def __str__(self) -> str:
        return self.value


ANY = AnyPattern()

Pattern = Union[AnyPattern, Exact]


def parse_pattern(raw: Union[str, AnyPattern, Exact]) -> Pattern:
    if isinstance(raw, (AnyPattern, Exact)):
        return raw
    if not isinstance(raw, str) or not raw:
        raise InvalidPolicyError(f"invalid pattern: {raw!r}")
    return ANY if raw == WILDCARD else Exact(raw)


@dataclass(frozen=True)
class Principal:
    """Statement subject: every role (``"*"``) or one role (``"role:<name>"``)."""

    role: Pattern

    @classmethod
    def parse(cls, raw: Union[str, "Principal"]) -> "Principal":
        if isinstance(raw, Principal):
            return raw
        if raw == WILDCARD:
            return cls(ANY)
        if isinstance(raw, str) and raw.startswith(ROLE_PREFIX) and len(raw) > len(ROLE_PREFIX):
            return cls(Exact(raw[len(ROLE_PREFIX):]))
        raise InvalidPolicyError(f"invalid principal: {raw!r}")

    @classmethod
    def for_role(cls, role: str) -> "Principal":
        return cls(Exact(role))

    @property
    def is_wildcard(self) -> bool:
        return isinstance(self.role, AnyPattern)

    def matches(self, role: str) -> bool:
        return self.role.matches(role)

    def __str__(self) -> str:
        if self.is_wildcard:
            return WILDCARD
        return f"{ROLE_PREFIX}{self.role.value}"


# --- Conditions ---

@dataclass(frozen=True)
class AttributeEquals:
    """Request context value under ``key`` must equal ``value``."""

    key: str
    value: Any


@dataclass(frozen=True)
class ResourceOwnership:
    """The caller must own the targeted resource instance.

    ``value`` is the marker stored with the policy; it carries no meaning for
    evaluation and is kept so documents round-trip unchanged.
    """

    value: Any = True

    @property
    def key(self) -> str:
        return RESOURCE_OWNER_CONDITION


Condition = Union[AttributeEquals, ResourceOwnership]


def conditions_from_mapping(mapping: Optional[Mapping[str, Any]]) -> Tuple[Condition, ...]:
    if not mapping:
        return ()
    if not isinstance(mapping, Mapping):
        raise InvalidPolicyError("conditions must be a mapping")

    conditions: List[Condition] = []
    for key, value in mapping.items():
        if key == RESOURCE_OWNER_CONDITION:
            conditions.append(ResourceOwnership(value))
        else:
            conditions.append(AttributeEquals(str(key), value))
    return tuple(conditions)


def conditions_to_mapping(conditions: Tuple[Condition, ...]) -> Dict[str, Any]:
    return {condition.key: condition.value for condition in conditions}


# --- Documents ---

@dataclass
class PolicyStatement:
    effect: Effect
    principal: Principal
    action: Pattern
    resource: Pattern
    conditions: Tuple[Condition, ...] = ()
    id: str = field(default_factory=new_id)
    policy_id: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def build(
        cls,
        effect: Union[str, Effect],
        principal: Union[str, Principal],
        action: Union[str, Pattern],
        resource: Union[str, Pattern],
        conditions: Optional[Mapping[str, Any]] = None,
        id: Optional[str] = None,
        policy_id: str = "",
    ) -> "PolicyStatement":
        """Build a statement from its string forms, validating each part."""
        return cls(
            effect=Effect.parse(effect),
            principal=Principal.parse(principal),
            action=parse_pattern(action),
            resource=parse_pattern(resource),
            conditions=conditions_from_mapping(conditions),
            id=id or new_id(),
            policy_id=policy_id,
        )

    def condition_map(self) -> Dict[str, Any]:
        return conditions_to_mapping(self.conditions)

    def validate(self) -> None:
        if not isinstance(self.effect, Effect):
            # Raises InvalidPolicyError for anything outside allow/deny
            self.effect = Effect.parse(self.effect)
        if not isinstance(self.principal, Principal):
            raise InvalidPolicyError(f"invalid principal: {self.principal!r}")
        for pattern in (self.action, self.resource):
            if not isinstance(pattern, (AnyPattern, Exact)):
                raise InvalidPolicyError(f"invalid pattern: {pattern!r}")
        for condition in self.conditions:
            if not isinstance(condition, (AttributeEquals, ResourceOwnership)):
                raise InvalidPolicyError(f"unsupported condition: {condition!r}")


@dataclass
class PolicyDocument:
    name: str
    statements: List[PolicyStatement] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    version: str = DEFAULT_POLICY_VERSION
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise InvalidPolicyError("policy name is required")
        for statement in self.statements:
            statement.validate()

    def principal_roles(self) -> List[Pattern]:
        """Distinct principal role patterns referenced by this document, in statement order."""
        seen: List[Pattern] = []
        for statement in self.statements:
            if statement.principal.role not in seen:
                seen.append(statement.principal.role)
        return seen


# --- Evaluation ---

@dataclass
class PermissionRequest:
    user_id: str
    role: str
    resource: str
    action: str
    resource_id: str = ""
    context: Dict[str, Any] = field(default_factory=dict)

    def is_well_formed(self) -> bool:
        return all(
            isinstance(value, str) and value
            for value in (self.role, self.resource, self.action)
        ) and isinstance(self.context, dict)


@dataclass
class PermissionResponse:
    allowed: bool
    reason: str
    policies: List[str] = field(default_factory=list)


@dataclass
class Permission:
    resource: str
    action: str
    role: str
    resource_id: str = ""


@dataclass(frozen=True)
class AuthContext:
    """Request-scoped identity passed explicitly to authorization calls."""

    user_id: str = ""
    role: str = ""
    email: str = ""
    client_ip: str = ""
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def with_attributes(self, **attributes: Any) -> "AuthContext":
        merged = dict(self.attributes)
        merged.update(attributes)
        return replace(self, attributes=merged)

    def as_context(self) -> Dict[str, Any]:
        """Flatten into the string-keyed map carried by a PermissionRequest."""
        data: Dict[str, Any] = {}
        if self.user_id:
            data[CTX_USER_ID] = self.user_id
        if self.role:
            data[CTX_USER_ROLE] = self.role
        if self.email:
            data[CTX_USER_EMAIL] = self.email
        if self.client_ip:
            data[CTX_CLIENT_IP] = self.client_ip
        data.update(self.attributes)
        return data
