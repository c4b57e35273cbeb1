"""
Shared Infrastructure Layer
Database base model, messaging, and observability
"""
