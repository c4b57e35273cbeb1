"""
AuditLog ORM Model
Maps to audit_logs table
"""
from typing import Any

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shared.infrastructure.database.base_model import Base


class AuditLogModel(Base):
    """
    SQLAlchemy model for audit_logs table.

    Immutable audit trail: rows are inserted, never updated or deleted.
    """

    __tablename__ = "audit_logs"

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    # Action Fields
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    resource_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Context Fields
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    # "metadata" is reserved on declarative classes
    details: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<AuditLogModel(id={self.id}, action={self.action})>"
