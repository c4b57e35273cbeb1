"""
Shared Database Infrastructure
Declarative base for ORM models
"""
from shared.infrastructure.database.base_model import Base, utcnow

__all__ = ["Base", "utcnow"]
