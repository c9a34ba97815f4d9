# meetlingo/models/__init__.py
"""
Database models module initialization.
Exports all Tortoise ORM models for convenient imports throughout the application.

Models exported:
- User: User account and authentication model
- Room: Video-call room, owned by one user
- Participant: A user's membership in a room (unique per user + room)
- Transcript: Finalized utterance spoken in a room
"""
from .user import User
from .room import Room, Participant
from .transcript import Transcript
