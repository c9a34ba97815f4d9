"""
Transcript publishing

The single path every finalized utterance takes out of a speaker: it is
recorded for the end-of-call summary, fanned out to the room's subscribers
and mirrored to the hosted channel service when one is configured.
"""
import logging
from typing import Optional

from meetlingo.core.pubsub import Channel, channel as default_channel
from meetlingo.models.room import Room
from meetlingo.models.transcript import Transcript
from meetlingo.models.user import User
from meetlingo.services.relay import PusherRelay, get_relay

logger = logging.getLogger("meetlingo.transcripts")


async def record_transcript(room_name: str, user: User, text: str) -> Optional[Transcript]:
    """Persist an utterance. Failures are logged and swallowed: the call goes on without the record."""
    try:
        room = await Room.get_or_none(name=room_name)
        if room is None:
            logger.warning("[transcripts] room %s not in database, transcript not recorded", room_name)
            return None
        return await Transcript.create(room=room, user=user, text=text)
    except Exception:
        logger.exception("[transcripts] database error when recording transcript for room %s", room_name)
        return None


async def publish_transcript(
    room_name: str,
    user: User,
    message: str,
    *,
    pubsub: Optional[Channel] = None,
    relay: Optional[PusherRelay] = None,
    persist: bool = True,
) -> dict:
    """
    Publish one finalized utterance to a room.

    Returns:
        The wire payload {sender, message, senderId, isFinal}
    """
    payload = {
        "sender": user.display_name,
        "message": message,
        "senderId": str(user.id),
        "isFinal": True,
    }
    if persist:
        await record_transcript(room_name, user, message)

    delivered = await (pubsub or default_channel).pub_transcript(room_name, payload)
    logger.debug("[transcripts] %s -> %s (%d subscriber(s))", user.display_name, room_name, delivered)

    relay = relay if relay is not None else get_relay()
    if relay is not None:
        await relay.publish(room_name, payload)
    return payload
