"""
Organization ORM Model
Maps to organizations table
"""
from datetime import datetime
from typing import Any

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from shared.infrastructure.database.base_model import Base, utcnow


class OrganizationModel(Base):
    """
    SQLAlchemy model for organizations table.

    Tenant root. ``settings`` holds the dashboard's JSON configuration
    (security.accessControl, twoFactorAuth, departments.list).
    """

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    plan_type: Mapped[str] = mapped_column(String(50), nullable=False, default="basic")
    settings: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)

    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<OrganizationModel(id={self.id}, name={self.name})>"
