"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from typing import Dict, List, Optional

import pytest

sys.path.append(os.path.join(os.getcwd(), "src"))

# Settings are read once at import time, so the test environment must be in
# place before anything from cleanapi is imported.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE_BACKEND", "sqlite")
os.environ.setdefault("SQLITE_PATH", ":memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("POLICY_BOOTSTRAP_ENABLED", "true")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cleanapi.access_control.models import PolicyDocument, PolicyStatement
from cleanapi.access_control.store import PolicyStore
from cleanapi.platform.errors import ConflictError, DatabaseError, NotFoundError
from cleanapi.storage.models import Base
import cleanapi.storage  # noqa: F401  registers every table on Base


class InMemoryPolicyStore(PolicyStore):
    """Dict-backed PolicyStore. Set ``fail`` to make reads raise DatabaseError."""

    def __init__(self, policies: Optional[List[PolicyDocument]] = None):
        self.policies: Dict[str, PolicyDocument] = {}
        self.fail = False
        for policy in policies or []:
            self.create(policy)

    def _check(self):
        if self.fail:
            raise DatabaseError("policy store unavailable")

    def create(self, policy):
        self._check()
        if any(p.name == policy.name for p in self.policies.values()):
            raise ConflictError("policy with this name already exists")
        for statement in policy.statements:
            statement.policy_id = policy.id
        self.policies[policy.id] = policy
        return policy

    def get(self, policy_id):
        self._check()
        return self.policies.get(policy_id)

    def get_by_role(self, role):
        self._check()
        return [
            p for p in self.get_active()
            if any(s.principal.matches(role) for s in p.statements)
        ]

    def get_active(self):
        self._check()
        return [p for p in self.policies.values() if p.is_active]

    def get_all(self):
        self._check()
        return list(self.policies.values())

    def update(self, policy):
        self._check()
        if policy.id not in self.policies:
            raise NotFoundError(f"policy {policy.id} not found")
        self.policies[policy.id] = policy
        return policy

    def delete(self, policy_id):
        self._check()
        if policy_id not in self.policies:
            raise NotFoundError(f"policy {policy_id} not found")
        del self.policies[policy_id]

    def count_active(self):
        self._check()
        return len(self.get_active())


@pytest.fixture
def make_policy():
    """Build a PolicyDocument from statement dicts in their string form."""
    def _make(name: str, statements: List[dict], is_active: bool = True) -> PolicyDocument:
        return PolicyDocument(
            name=name,
            is_active=is_active,
            statements=[PolicyStatement.build(**statement) for statement in statements],
        )
    return _make


@pytest.fixture
def policy_store() -> InMemoryPolicyStore:
    return InMemoryPolicyStore()


# Use in-memory SQLite for repository tests without an external DB
@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()
