import asyncio
import json
import logging

from fastapi import APIRouter, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from meetlingo.api.v1.deps import WS_AUTH_FAILED, language_code, user_from_token
from meetlingo.config import settings
from meetlingo.core.pubsub import channel
from meetlingo.services.captions import Caption, CaptionPipeline
from meetlingo.services.speech import SpeechSynthesizer
from meetlingo.services.translation import get_translation_client, language_name

logger = logging.getLogger("meetlingo.ws.captions")

router = APIRouter()


class SocketSink:
    """Serializes sends: captions and speech audio share one socket."""

    def __init__(self, ws: WebSocket):
        self.ws = ws
        self._lock = asyncio.Lock()

    async def send_json(self, data: dict) -> None:
        async with self._lock:
            await self.ws.send_text(json.dumps(data))

    async def send_bytes(self, data: bytes) -> None:
        async with self._lock:
            await self.ws.send_bytes(data)


class PipelineFeed:
    """Transcript-topic subscriber that feeds a viewer's caption pipeline."""

    def __init__(self, pipeline: CaptionPipeline):
        self.pipeline = pipeline

    async def send_text(self, data: str) -> None:
        self.pipeline.push_payload(json.loads(data))


class CaptionSession:
    """Everything one viewer subscription owns; torn down as a unit."""

    def __init__(self, room: str, language_code: str, sink: SocketSink):
        self.room = room
        self.sink = sink
        self.speaker = SpeechSynthesizer.from_settings(settings, sink=sink)
        self.pipeline = CaptionPipeline(
            get_translation_client(),
            self.speaker,
            language_code=language_code,
            on_caption=self.send_caption,
            display_seconds=settings.caption_display_seconds,
        )
        self.feed = PipelineFeed(self.pipeline)

    async def send_caption(self, caption: Caption) -> None:
        await self.sink.send_json({"type": "caption", **caption.to_dict()})

    async def open(self) -> None:
        self.pipeline.start()
        await channel.sub_transcripts(self.room, self.feed)

    async def close(self) -> None:
        channel.unsub_transcripts(self.room, self.feed)
        await self.pipeline.close()
        await self.speaker.close()


@router.websocket("/ws/captions")
async def ws_captions(ws: WebSocket):
    """
    WebSocket endpoint delivering translated captions (and their speech) to one viewer.

    Message flow:
    1. Client connects to WebSocket
    2. Client sends: {"type": "subscribe", "roomName": "...", "languageCode": "kn-IN"}
    3. Server replies: {"type": "ready", "roomName": "...", "language": "Kannada"}
    4. Server sends {"type": "caption", sender, message, error, untranslated} per
       caption change, plus tts_start / binary audio / tts_stop frames
    5. Client may send {"type": "language", "languageCode": "..."} at any time

    Note:
        Clients are unsubscribed and their pipeline closed when the connection closes.
    """
    await ws.accept()
    sink = SocketSink(ws)
    session = None
    try:
        while True:
            raw = await ws.receive_text()
            msg = json.loads(raw)
            kind = msg.get("type")
            if kind == "subscribe":
                try:
                    user = await user_from_token(msg.get("accessToken"))
                except HTTPException as e:
                    await sink.send_json({"type": "error", "code": e.detail})
                    await ws.close(code=WS_AUTH_FAILED)
                    return
                room = msg.get("roomName")
                if not room or not isinstance(room, str):
                    await sink.send_json({"type": "error", "code": "ROOM_NAME_REQUIRED"})
                    continue
                if session is not None:
                    await session.close()
                lang = language_code(msg) or "en"
                session = CaptionSession(room, lang, sink)
                await session.open()
                logger.info("[ws_captions] %s subscribed to %s (%s)", user.username, room, lang)
                await sink.send_json({"type": "ready", "roomName": room, "language": language_name(lang)})
            elif kind == "language" and session is not None:
                session.pipeline.set_language(language_code(msg))
                await sink.send_json({"type": "language", "language": language_name(session.pipeline.language_code)})
    except WebSocketDisconnect:
        logger.info("[ws_captions] disconnected")
    except Exception as e:
        logger.warning("[ws_captions] error: %r", e)
    finally:
        if session is not None:
            await session.close()
