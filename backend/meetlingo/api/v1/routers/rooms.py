# meetlingo/api/v1/routers/rooms.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from tortoise.expressions import Q

from meetlingo.api.v1.deps import get_current_user
from meetlingo.config import settings
from meetlingo.core.errors import TokenIssueError
from meetlingo.models.room import Participant, Room
from meetlingo.models.transcript import Transcript
from meetlingo.models.user import User
from meetlingo.services.livekit import RoomServiceClient, create_token, join_grants
from meetlingo.services.summary import SummaryService

logger = logging.getLogger("meetlingo.rooms")

router = APIRouter(prefix="/rooms", tags=["rooms"])

room_service = RoomServiceClient(settings)
summary_service = SummaryService(settings)


def _room_out(room: Room) -> dict:
    return {"name": room.name, "ownerId": str(room.owner_id), "createdAt": room.created_at.isoformat()}


async def _record_participant(user: User, room_name: str) -> None:
    """Idempotently record that `user` joined. Database errors never block joining."""
    try:
        room = await Room.get_or_none(name=room_name)
        if room is None:
            logger.warning("[rooms] room %s not in database, participant not recorded", room_name)
            return
        _, created = await Participant.get_or_create(user=user, room=room)
        logger.info("[rooms] participant %s", "added to database" if created else "already in database")
    except Exception:
        logger.exception("[rooms] database error when recording participant")


async def _can_read_room(user: User, room: Room) -> bool:
    if user.role == "admin" or room.owner_id == user.id:
        return True
    return await Participant.filter(user_id=user.id, room_id=room.id).exists()


@router.post("")
async def create_room(user: User = Depends(get_current_user)):
    """
    Create a room owned by the current user.

    The database row is created first; the media-service room is created
    next, and a failure there is only logged because the media service also
    creates rooms on demand when the first participant connects.

    Returns:
        dict: {"success": True, "data": {"roomName": str}}
    """
    room = await Room.create(owner=user)
    logger.info("[rooms] room created in database: %s", room.name)
    try:
        await room_service.create_room(room.name)
        logger.info("[rooms] LiveKit room creation successful: %s", room.name)
    except Exception:
        logger.exception("[rooms] failed to create LiveKit room %s, proceeding anyway", room.name)
    return {"success": True, "data": {"roomName": room.name}}


@router.get("")
async def list_rooms(user: User = Depends(get_current_user)):
    """Rooms the current user owns or has joined, newest first."""
    rooms = await (
        Room.filter(Q(owner_id=user.id) | Q(participants__user_id=user.id))
        .distinct()
        .order_by("-created_at")
    )
    return {"success": True, "data": {"items": [_room_out(r) for r in rooms]}}


@router.get("/{room_name}/join")
async def join_room(room_name: str, user: User = Depends(get_current_user)):
    """
    Issue a media-service access token for `room_name`.

    Returns:
        dict: {"success": True, "data": {"identity", "accessToken", "url"}}

    Raises:
        HTTPException (400): Missing room name
        HTTPException (500): TOKEN_ISSUE_FAILED when the token cannot be signed
    """
    if not room_name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ROOM_NAME_REQUIRED")
    identity = str(user.id)
    try:
        token = create_token(settings, identity=identity, name=user.display_name,
                             grants=join_grants(room_name), ttl_sec=settings.livekit_token_ttl_sec)
    except TokenIssueError:
        logger.exception("[rooms] could not issue token for room %s", room_name)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="TOKEN_ISSUE_FAILED")

    await _record_participant(user, room_name)
    return {"success": True, "data": {"identity": identity, "accessToken": token, "url": settings.livekit_url}}


@router.get("/{room_name}/summary")
async def get_room_summary(room_name: str, user: User = Depends(get_current_user)):
    """
    Summarize everything said in a room.

    Returns `data: null` when nothing was said or the summarization call failed.

    Raises:
        HTTPException (404): ROOM_NOT_FOUND
        HTTPException (403): ROOM_FORBIDDEN unless the caller owns the room,
            has joined it, or is an admin
    """
    room = await Room.get_or_none(name=room_name)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="ROOM_NOT_FOUND")
    if not await _can_read_room(user, room):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="ROOM_FORBIDDEN")

    transcripts = await Transcript.filter(room=room).prefetch_related("user").order_by("created_at", "id")
    chat_log = [
        {
            "speaker": t.user.display_name,
            "utterance": t.text,
            "timestamp": t.created_at.isoformat(),
        }
        for t in transcripts
    ]
    if not chat_log:
        return {"success": True, "data": None}

    summary = await summary_service.summarize(chat_log)
    return {"success": True, "data": summary}
