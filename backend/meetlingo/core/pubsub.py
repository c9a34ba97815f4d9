# meetlingo/core/pubsub.py
"""
PubSub (Publish-Subscribe) module for room-scoped message broadcasting.
Transcript messages published by a speaker are fanned out to every subscriber
of the same room (viewer caption pipelines, relays, sockets).
"""
import json
import logging
from typing import Dict, Protocol, Set

logger = logging.getLogger("meetlingo.pubsub")


class TextSubscriber(Protocol):
    async def send_text(self, data: str) -> None: ...


class Channel:
    """
    Simple PubSub channel keyed by room name.

    Topics:
      - transcripts: JSON transcript messages {sender, message, senderId, isFinal}

    Architecture:
    - Routers accept sockets and build subscribers; this module only routes
    - Payloads are delivered to subscribers in publish order, one subscriber at a time
    - A subscriber that fails to receive is dropped

    Data structure:
    - _topics: Dict[topic_name, Dict[room_name, Set[subscriber]]]
    """
    def __init__(self):
        # Example: {"transcripts": {"room-abc": {sub1, sub2}}}
        self._topics: Dict[str, Dict[str, Set[TextSubscriber]]] = {
            "transcripts": {},
        }

    # -------- subscribe / unsubscribe (no accept, only register) --------
    async def sub_transcripts(self, room: str, subscriber: TextSubscriber):
        """
        Subscribe to transcript messages of a room.

        Args:
            room: Room name to subscribe to
            subscriber: Object with an async send_text(str)
        """
        self._topics["transcripts"].setdefault(room, set()).add(subscriber)

    def unsub_transcripts(self, room: str, subscriber: TextSubscriber):
        rooms = self._topics["transcripts"]
        subs = rooms.get(room)
        if subs is None:
            return
        subs.discard(subscriber)
        if not subs:
            rooms.pop(room, None)

    def subscriber_count(self, room: str) -> int:
        return len(self._topics["transcripts"].get(room, ()))

    # -------- publish --------
    async def pub_transcript(self, room: str, payload: dict) -> int:
        """
        Publish a transcript message to all subscribers of a room.

        Returns:
            Number of subscribers that received the message
        """
        conns = list(self._topics["transcripts"].get(room, set()))
        msg = json.dumps(payload)
        delivered = 0
        for s in conns:
            try:
                await s.send_text(msg)
                delivered += 1
            except Exception as e:
                logger.debug("[pubsub] dropping subscriber of %s: %r", room, e)
                self.unsub_transcripts(room, s)
        return delivered


# Global channel instance (singleton pattern)
# Import this instance in other modules to publish/subscribe messages
channel = Channel()
