from datetime import datetime
from typing import List, Dict, Any
from sqlalchemy import String, ForeignKey, Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cleanapi.access_control.models import (
    Effect,
    PolicyDocument,
    PolicyStatement,
    Principal,
    conditions_from_mapping,
    new_id,
    parse_pattern,
)
from cleanapi.storage.models import Base, JSON_TYPE, TIMESTAMP_TYPE, utcnow


class PolicyDocumentModel(Base):
    __tablename__ = "policy_documents"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    version: Mapped[str] = mapped_column(String, nullable=False, default="1.0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, default=utcnow, onupdate=utcnow)

    # Statements live and die with their document
    statements: Mapped[List["PolicyStatementModel"]] = relationship(
        back_populates="policy",
        cascade="all, delete-orphan",
        order_by="PolicyStatementModel.position",
        lazy="selectin",
    )


class PolicyStatementModel(Base):
    __tablename__ = "policy_statements"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    policy_id: Mapped[str] = mapped_column(
        ForeignKey("policy_documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    effect: Mapped[str] = mapped_column(String, nullable=False)  # "allow" | "deny"
    principal: Mapped[str] = mapped_column(String, nullable=False, index=True)  # "*" | "role:<name>"
    action: Mapped[str] = mapped_column(String, nullable=False)
    resource: Mapped[str] = mapped_column(String, nullable=False)
    conditions: Mapped[Dict[str, Any]] = mapped_column(JSON_TYPE, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, default=utcnow, onupdate=utcnow)

    policy: Mapped["PolicyDocumentModel"] = relationship(back_populates="statements")


# --- Mapping between domain documents and rows ---

def statement_to_model(statement: PolicyStatement, policy_id: str, position: int) -> PolicyStatementModel:
    return PolicyStatementModel(
        id=statement.id or new_id(),
        policy_id=policy_id,
        position=position,
        effect=Effect.parse(statement.effect).value,
        principal=str(statement.principal),
        action=str(statement.action),
        resource=str(statement.resource),
        conditions=statement.condition_map(),
    )


def from_policy_document(policy: PolicyDocument) -> PolicyDocumentModel:
    model = PolicyDocumentModel(
        id=policy.id or new_id(),
        name=policy.name,
        version=policy.version,
        is_active=policy.is_active,
    )
    model.statements = [
        statement_to_model(statement, model.id, position)
        for position, statement in enumerate(policy.statements)
    ]
    return model


def to_policy_statement(model: PolicyStatementModel) -> PolicyStatement:
    return PolicyStatement(
        id=model.id,
        policy_id=model.policy_id,
        effect=Effect.parse(model.effect),
        principal=Principal.parse(model.principal),
        action=parse_pattern(model.action),
        resource=parse_pattern(model.resource),
        conditions=conditions_from_mapping(model.conditions),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def to_policy_document(model: PolicyDocumentModel) -> PolicyDocument:
    return PolicyDocument(
        id=model.id,
        name=model.name,
        version=model.version,
        is_active=model.is_active,
        statements=[to_policy_statement(statement) for statement in model.statements],
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
