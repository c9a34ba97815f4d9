# meetlingo/models/room.py
"""
Database models for rooms and their participants.
A room is created by its owner; every user who joins is recorded once as a participant.
"""
import secrets
import uuid
from tortoise import fields, models


def generate_room_name() -> str:
    """Short URL-safe room slug, e.g. 'k3v9-xq2b-7mtd'."""
    alphabet = "abcdefghijkmnpqrstuvwxyz23456789"
    raw = "".join(secrets.choice(alphabet) for _ in range(12))
    return "-".join(raw[i:i + 4] for i in range(0, 12, 4))


class Room(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    name = fields.CharField(max_length=64, unique=True, index=True, default=generate_room_name)
    owner = fields.ForeignKeyField("models.User", related_name="owned_rooms", on_delete=fields.CASCADE)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "rooms"


class Participant(models.Model):
    id = fields.IntField(pk=True)
    user = fields.ForeignKeyField("models.User", related_name="participations", on_delete=fields.CASCADE)
    room = fields.ForeignKeyField("models.Room", related_name="participants", on_delete=fields.CASCADE)
    joined_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "participants"
        unique_together = (("user", "room"),)
