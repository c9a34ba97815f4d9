# meetlingo/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Application initialization and default admin creation
- db: Database configuration and connection management
- errors: Application error types
- pubsub: Room-scoped transcript broadcasting
- security: Authentication, password hashing and session tokens
"""
