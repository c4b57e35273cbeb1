"""
Identity Domain Layer
Pure domain logic: entities, value objects, permission matrix, protocols
"""
