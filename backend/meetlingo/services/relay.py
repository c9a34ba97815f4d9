"""
Hosted channel relay

Mirrors transcript messages to a Pusher channel named after the room so that
clients connected to the hosted service (rather than to our WebSockets) still
receive captions. Optional: enabled only when all PUSHER_* settings are set.
"""
import asyncio
import logging
from typing import Optional

import pusher

from meetlingo.config import Settings

logger = logging.getLogger("meetlingo.relay")

TRANSCRIPT_EVENT = "transcript"


class PusherRelay:
    def __init__(self, client: "pusher.Pusher"):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["PusherRelay"]:
        if not settings.pusher_enabled:
            return None
        client = pusher.Pusher(
            app_id=settings.pusher_app_id,
            key=settings.pusher_key,
            secret=settings.pusher_secret,
            cluster=settings.pusher_cluster,
            ssl=True,
        )
        return cls(client)

    async def publish(self, room_name: str, payload: dict) -> bool:
        """Trigger the transcript event; failures are logged and reported as False."""
        loop = asyncio.get_running_loop()
        try:
            # the SDK is synchronous (requests), keep it off the event loop
            await loop.run_in_executor(None, self.client.trigger, room_name, TRANSCRIPT_EVENT, payload)
            return True
        except Exception:
            logger.exception("[relay] failed to relay transcript to room %s", room_name)
            return False


_relay: Optional[PusherRelay] = None
_relay_loaded = False


def get_relay() -> Optional[PusherRelay]:
    """Shared relay, or None when the hosted channel service is not configured."""
    global _relay, _relay_loaded
    if not _relay_loaded:
        from meetlingo.config import settings
        _relay = PusherRelay.from_settings(settings)
        _relay_loaded = True
    return _relay
