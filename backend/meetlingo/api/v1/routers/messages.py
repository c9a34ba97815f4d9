# meetlingo/api/v1/routers/messages.py
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from meetlingo.api.v1.deps import get_current_user
from meetlingo.models.user import User
from meetlingo.services.transcripts import publish_transcript

router = APIRouter(prefix="/messages", tags=["messages"])


class SendMessageIn(BaseModel):
    message: str
    roomName: str
    isFinal: bool = True


@router.post("")
async def send_message(body: SendMessageIn, user: User = Depends(get_current_user)):
    """
    Publish a finalized utterance to a room.

    For speakers that run recognition entirely client-side and post each
    finalized utterance over HTTP instead of using /ws/speech. Interim text
    is never published.

    Returns:
        dict: {"success": True, "data": {sender, message, senderId, isFinal}}

    Raises:
        HTTPException (400): NOT_FINAL for interim messages, EMPTY_MESSAGE for blank text
    """
    if not body.isFinal:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="NOT_FINAL")
    text = body.message.strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="EMPTY_MESSAGE")
    payload = await publish_transcript(body.roomName, user, text)
    return {"success": True, "data": payload}
