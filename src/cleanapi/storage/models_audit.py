import datetime
import uuid
from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from cleanapi.storage.models import Base

class AuditLogModel(Base):
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.datetime.now(datetime.timezone.utc), index=True
    )

    # Nullable for system actions and unauthenticated attempts
    user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)

    action: Mapped[str] = mapped_column(String, nullable=False)  # e.g., "create"
    resource: Mapped[str] = mapped_column(String, nullable=False)  # e.g., "product"
    entity_id: Mapped[str | None] = mapped_column(String, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String, nullable=True)

    metadata_context: Mapped[dict | None] = mapped_column(JSON, nullable=True)
