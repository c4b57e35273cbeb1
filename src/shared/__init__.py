"""
Shared Layer - Cross-Cutting Concerns
Configuration, error contract, logging, event bus, database plumbing
"""
