"""
Identity Infrastructure Layer
ORM models, stores, identity-provider and HTTP adapters
"""
