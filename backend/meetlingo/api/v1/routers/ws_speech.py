import json
import logging

from fastapi import APIRouter, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from meetlingo.api.v1.deps import WS_AUTH_FAILED, language_code, user_from_token
from meetlingo.models.user import User
from meetlingo.services.producer import RemoteRecognizer, TranscriptProducer
from meetlingo.services.transcripts import publish_transcript

logger = logging.getLogger("meetlingo.ws.speech")

router = APIRouter()


def _make_publisher(room_name: str, user: User):
    async def publish(payload: dict) -> None:
        await publish_transcript(room_name, user, payload["message"])
    return publish


@router.websocket("/ws/speech")
async def ws_speech(ws: WebSocket):
    """
    WebSocket endpoint for a speaker's speech recognition session.

    Recognition runs in the browser; this endpoint decides when it listens
    and in which language, and publishes each finalized utterance.

    Message flow:
    1. Client sends: {"type": "hello", "roomName", "accessToken", "languageCode",
                      "audioEnabled", "speechRecognition"}
    2. Server replies {"type": "ready"} then {"type": "listen", "language"} when audio is on
       (or {"type": "unsupported"} when the browser cannot recognize speech)
    3. Client streams {"type": "interim", "text"} and {"type": "final", "text"}
    4. Client sends {"type": "configure", "audioEnabled", "languageCode"} on mute or language change;
       the server answers with stop_listening (and listen again when audio stays on)
    """
    await ws.accept()
    producer = None
    try:
        while True:
            raw = await ws.receive_text()
            msg = json.loads(raw)
            kind = msg.get("type")

            if kind == "hello":
                try:
                    user = await user_from_token(msg.get("accessToken"))
                except HTTPException as e:
                    await ws.send_text(json.dumps({"type": "error", "code": e.detail}))
                    await ws.close(code=WS_AUTH_FAILED)
                    return
                room_name = msg.get("roomName")
                if not room_name:
                    await ws.send_text(json.dumps({"type": "error", "code": "ROOM_NAME_REQUIRED"}))
                    continue
                if producer is not None:
                    await producer.close()
                recognizer = RemoteRecognizer(ws, supported=bool(msg.get("speechRecognition", True)))
                producer = TranscriptProducer(
                    recognizer,
                    _make_publisher(room_name, user),
                    room_name=room_name,
                    sender=user.display_name,
                    sender_id=str(user.id),
                )
                await ws.send_text(json.dumps({"type": "ready", "roomName": room_name}))
                await producer.configure(bool(msg.get("audioEnabled", True)), language_code(msg))
                if producer.inert:
                    await ws.send_text(json.dumps({"type": "unsupported"}))
            elif producer is None:
                await ws.send_text(json.dumps({"type": "error", "code": "HELLO_REQUIRED"}))
            elif kind == "configure":
                await producer.configure(bool(msg.get("audioEnabled", True)), language_code(msg))
            elif kind == "interim":
                producer.handle_interim(msg.get("text") or "")
            elif kind == "final":
                await producer.handle_final(msg.get("text"))
    except WebSocketDisconnect:
        logger.info("[ws_speech] disconnected")
    except Exception as e:
        logger.warning("[ws_speech] error: %r", e)
    finally:
        if producer is not None:
            await producer.close()
