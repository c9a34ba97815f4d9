# meetlingo/models/transcript.py
from tortoise import fields, models

class Transcript(models.Model):
    """One finalized utterance spoken in a room; read back for end-of-call summaries."""
    id = fields.IntField(pk=True)
    room = fields.ForeignKeyField("models.Room", related_name="transcripts", on_delete=fields.CASCADE)
    user = fields.ForeignKeyField("models.User", related_name="transcripts", on_delete=fields.CASCADE)
    text = fields.TextField()
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "transcripts"
        ordering = ["created_at", "id"]
