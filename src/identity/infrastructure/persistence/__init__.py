"""Identity Infrastructure - Persistence"""
from identity.infrastructure.persistence.memory_store import InMemoryIdentityDataStore
from identity.infrastructure.persistence.sql_store import (
    SqlAlchemyIdentityDataStore,
    create_identity_schema,
)

__all__ = [
    "InMemoryIdentityDataStore",
    "SqlAlchemyIdentityDataStore",
    "create_identity_schema",
]
