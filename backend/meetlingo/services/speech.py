import asyncio
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import AsyncGenerator, Deque, Dict, Optional, Protocol

import httpx

from meetlingo.config import Settings
from meetlingo.services.translation import primary_subtag

logger = logging.getLogger("meetlingo.speech")


class AudioSink(Protocol):
    """Where synthesized audio goes (a viewer's WebSocket in practice)."""

    async def send_json(self, data: dict) -> None: ...

    async def send_bytes(self, data: bytes) -> None: ...


class SpeechBackend(ABC):
    """Plays one utterance. Cancellation must stop playback promptly."""

    @abstractmethod
    async def play(self, text: str, voice_id: str, language: str) -> None:
        pass

    async def aclose(self) -> None:
        pass


class NullBackend(SpeechBackend):
    """Used when no synthesis service is configured."""

    def __init__(self):
        self._warned = False

    async def play(self, text: str, voice_id: str, language: str) -> None:
        if not self._warned:
            logger.warning("[tts] no speech backend configured, captions will not be spoken")
            self._warned = True


async def _stream_elevenlabs(
    client: httpx.AsyncClient,
    settings: Settings,
    text: str,
    voice_id: str,
    stability: float = 0.88,
    similarity_boost: float = 0.73,
    style: float = 0.73,
    use_speaker_boost: bool = True,
) -> AsyncGenerator[bytes, None]:
    """
    Call ElevenLabs API for streaming TTS

    Parameters:
    - text: Text to synthesize
    - voice_id: ElevenLabs voice ID
    - stability: Stability (0-1), higher = more stable, lower = more expressive
    - similarity_boost: Similarity boost (0-1), similarity to original voice
    - style: Style exaggeration (0-1), speech expressiveness
    - use_speaker_boost: Whether to enable speaker boost
    """
    if not text or not text.strip():
        return
    if not settings.eleven_api_key:
        raise RuntimeError("ELEVENLABS_API_KEY is missing")

    url = f"{settings.eleven_api_base}/text-to-speech/{voice_id}/stream?optimize_streaming_latency=4"
    headers = {
        "xi-api-key": settings.eleven_api_key,
        "accept": "audio/mpeg",
        "content-type": "application/json",
    }
    payload = {
        "text": text,
        # multilingual turbo model: captions may be in any supported language
        "model_id": "eleven_turbo_v2_5",
        "output_format": "mp3_44100_64",
        "voice_settings": {
            "stability": stability,
            "similarity_boost": similarity_boost,
            "style": style,
            "use_speaker_boost": use_speaker_boost,
        },
    }

    logger.debug("[tts] HTTP POST %s voice=%s", url, voice_id)
    async with client.stream("POST", url, headers=headers, json=payload) as resp:
        resp.raise_for_status()
        async for chunk in resp.aiter_bytes():
            if chunk:
                yield chunk
            await asyncio.sleep(0)


class ElevenLabsBackend(SpeechBackend):
    """Streams ElevenLabs audio to a sink framed by start/stop control messages."""

    def __init__(self, sink: AudioSink, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.sink = sink
        self.settings = settings
        self._client = httpx.AsyncClient(timeout=None, transport=transport)

    async def play(self, text: str, voice_id: str, language: str) -> None:
        # 1) Notify the viewer a clip starts
        await self.sink.send_json({"type": "tts_start", "mime": "audio/mpeg", "language": language})
        try:
            # 2) Stream chunks
            got_any = False
            async for chunk in _stream_elevenlabs(self._client, self.settings, text, voice_id):
                got_any = True
                await self.sink.send_bytes(chunk)
            logger.debug("[tts] stream done, got_any=%s", got_any)
        finally:
            # 3) Always close the clip, also when interrupted
            await self.sink.send_json({"type": "tts_stop"})

    async def aclose(self) -> None:
        await self._client.aclose()


@dataclass
class SpeechItem:
    text: str
    voice_id: str
    language: str


class SpeechSynthesizer:
    """
    Speech Synthesis Trigger.

    `speak()` never blocks: it hands the text to a playback worker. With
    `interrupt_previous` the current clip is cancelled and anything pending is
    dropped. Otherwise the text waits behind the current clip; at most
    `max_pending` waiting items are kept, oldest dropped first.
    """

    def __init__(
        self,
        backend: SpeechBackend,
        voices: Optional[Dict[str, str]] = None,
        default_voice: str = "21m00Tcm4TlvDq8ikWAM",
        max_pending: int = 2,
    ):
        self.backend = backend
        self.voices = {k.lower(): v for k, v in (voices or {}).items()}
        self.default_voice = default_voice
        self._pending: Deque[SpeechItem] = deque(maxlen=max_pending)
        self._wakeup = asyncio.Event()
        self._current: Optional[asyncio.Task] = None
        self._worker: Optional[asyncio.Task] = None
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings, sink: Optional[AudioSink] = None) -> "SpeechSynthesizer":
        if settings.eleven_api_key and sink is not None:
            backend: SpeechBackend = ElevenLabsBackend(sink, settings)
        else:
            backend = NullBackend()
        return cls(backend, voices=settings.voice_ids, default_voice=settings.default_voice_id)

    @property
    def pending(self) -> tuple:
        return tuple(item.text for item in self._pending)

    @property
    def speaking(self) -> bool:
        return self._current is not None and not self._current.done()

    def pick_voice(self, language_hint: Optional[str]) -> str:
        """Full code first ('pt-br'), then primary subtag ('pt'), then the default voice."""
        if language_hint:
            full = language_hint.replace("_", "-").lower()
            if full in self.voices:
                return self.voices[full]
            lang = primary_subtag(full)
            if lang in self.voices:
                return self.voices[lang]
        return self.default_voice

    def speak(self, text: str, interrupt_previous: bool, language_hint: Optional[str] = None) -> None:
        if self._closed or not text or not text.strip():
            return
        item = SpeechItem(text=text, voice_id=self.pick_voice(language_hint), language=language_hint or "en")
        if interrupt_previous:
            self._pending.clear()
            if self.speaking:
                self._current.cancel()
        self._pending.append(item)
        self._ensure_worker()
        self._wakeup.set()

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while not self._closed:
            if not self._pending:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue
            item = self._pending.popleft()
            self._current = asyncio.create_task(self.backend.play(item.text, item.voice_id, item.language))
            try:
                await self._current
            except asyncio.CancelledError:
                if self._closed:
                    raise
                # interrupted by a newer utterance
            except Exception:
                logger.exception("[tts] playback failed")
            finally:
                self._current = None

    async def close(self) -> None:
        self._closed = True
        self._pending.clear()
        for task in (self._current, self._worker):
            if task is not None and not task.done():
                task.cancel()
        for task in (self._current, self._worker):
            if task is not None:
                try:
                    await task
                except (asyncio.CancelledError, Exception):
                    pass
        await self.backend.aclose()
