"""Identity API dependencies"""
from identity.api.dependencies.auth import CurrentIdentity, get_current_identity
from identity.api.dependencies.context import get_identity_provider, get_invitation_service

__all__ = [
    "CurrentIdentity",
    "get_current_identity",
    "get_identity_provider",
    "get_invitation_service",
]
