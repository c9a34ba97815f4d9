# meetlingo/models/user.py
"""
Database model for users.
Represents a user account in the system, containing authentication credentials,
profile information, and role-based access control.
"""
import uuid
from tortoise import fields, models

class User(models.Model):
    """
    User database model.

    Relationships:
    - Owns many Rooms (via related_name="owned_rooms")
    - Joins many Rooms through Participant (via related_name="participations")
    - Has many Transcripts (via related_name="transcripts")

    Security:
    - Password is stored as a hash (never store plain text passwords)
    - Username must be unique across all users
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    username = fields.CharField(max_length=256, unique=True, index=True)
    name = fields.CharField(max_length=256, null=True)  # Display name shown next to captions
    email = fields.CharField(max_length=256, null=True)
    password_hash = fields.CharField(max_length=255)
    role = fields.CharField(max_length=16, default="user")  # "user" or "admin"
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "users"

    @property
    def display_name(self) -> str:
        return self.name or self.username or "Anonymous"
