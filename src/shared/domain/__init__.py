"""Shared domain primitives"""
from shared.domain.domain_event import DomainEvent

__all__ = ["DomainEvent"]
