import logging
from contextlib import contextmanager
from typing import Generator, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from cleanapi.access_control.constants import ROLE_PREFIX, WILDCARD
from cleanapi.access_control.models import PolicyDocument, new_id
from cleanapi.access_control.store import PolicyStore
from cleanapi.platform.errors import ConflictError, DatabaseError, NotFoundError
from cleanapi.storage.models_access_control import (
    PolicyDocumentModel,
    PolicyStatementModel,
    from_policy_document,
    statement_to_model,
    to_policy_document,
)

logger = logging.getLogger(__name__)


class PolicyRepository(PolicyStore):
    """SQLAlchemy-backed policy store. Every call runs in its own transaction."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def _transaction(self, operation: str) -> Generator[Session, None, None]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            raise ConflictError("policy with this name already exists", code="POLICY_CONFLICT", cause=e) from e
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Policy store {operation} failed: {e}")
            raise DatabaseError(f"failed to {operation} policy", cause=e) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create(self, policy: PolicyDocument) -> PolicyDocument:
        with self._transaction("create") as session:
            model = from_policy_document(policy)
            session.add(model)
            session.flush()
            return to_policy_document(model)

    def get(self, policy_id: str) -> Optional[PolicyDocument]:
        with self._transaction("get") as session:
            model = session.get(PolicyDocumentModel, policy_id)
            return to_policy_document(model) if model else None

    def get_by_role(self, role: str) -> List[PolicyDocument]:
        principals = [WILDCARD, f"{ROLE_PREFIX}{role}"]
        stmt = (
            select(PolicyDocumentModel)
            .join(PolicyDocumentModel.statements)
            .where(
                PolicyDocumentModel.is_active.is_(True),
                PolicyStatementModel.principal.in_(principals),
            )
            .order_by(PolicyDocumentModel.created_at, PolicyDocumentModel.name)
        )
        with self._transaction("query") as session:
            # unique() collapses documents joined once per matching statement
            models = session.scalars(stmt).unique().all()
            return [to_policy_document(model) for model in models]

    def get_active(self) -> List[PolicyDocument]:
        stmt = (
            select(PolicyDocumentModel)
            .where(PolicyDocumentModel.is_active.is_(True))
            .order_by(PolicyDocumentModel.created_at, PolicyDocumentModel.name)
        )
        with self._transaction("query") as session:
            return [to_policy_document(model) for model in session.scalars(stmt).all()]

    def get_all(self) -> List[PolicyDocument]:
        stmt = select(PolicyDocumentModel).order_by(PolicyDocumentModel.created_at, PolicyDocumentModel.name)
        with self._transaction("query") as session:
            return [to_policy_document(model) for model in session.scalars(stmt).all()]

    def update(self, policy: PolicyDocument) -> PolicyDocument:
        with self._transaction("update") as session:
            model = session.get(PolicyDocumentModel, policy.id)
            if not model:
                raise NotFoundError(f"policy {policy.id} not found", code="POLICY_NOT_FOUND")

            model.name = policy.name
            model.version = policy.version
            model.is_active = policy.is_active

            # Old statements are removed before the replacements are inserted
            model.statements.clear()
            session.flush()
            for position, statement in enumerate(policy.statements):
                row = statement_to_model(statement, model.id, position)
                row.id = new_id()
                model.statements.append(row)
            session.flush()
            return to_policy_document(model)

    def delete(self, policy_id: str) -> None:
        with self._transaction("delete") as session:
            model = session.get(PolicyDocumentModel, policy_id)
            if not model:
                raise NotFoundError(f"policy {policy_id} not found", code="POLICY_NOT_FOUND")
            session.delete(model)

    def count_active(self) -> int:
        stmt = select(func.count()).select_from(PolicyDocumentModel).where(PolicyDocumentModel.is_active.is_(True))
        with self._transaction("count") as session:
            return session.scalar(stmt) or 0
