"""
Transcript Producer

Turns speech recognition events for one speaker into transcript messages.
Interim text is only held locally; each finalized utterance is published
exactly once as {message, roomName, isFinal, sender, senderId}.

State machine:
    IDLE -> LISTENING -> (interim, self-loop) -> FINALIZED -> LISTENING / IDLE
    any  -> INERT  when the recognition capability is missing (permanent)
"""
import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Protocol

logger = logging.getLogger("meetlingo.producer")

DEFAULT_RECOGNITION_LANGUAGE = "en-US"


class Recognizer(ABC):
    """Speech recognition capability (browser Web Speech API behind a socket, or similar)."""

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    async def start(self, language: str, continuous: bool = True) -> None:
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Return only once the recognizer has stopped emitting results."""
        pass


class ControlSocket(Protocol):
    async def send_json(self, data: dict) -> None: ...


class RemoteRecognizer(Recognizer):
    """Drives recognition running in the speaker's browser over its WebSocket."""

    def __init__(self, ws: ControlSocket, supported: bool):
        self.ws = ws
        self.supported = supported

    def is_available(self) -> bool:
        return self.supported

    async def start(self, language: str, continuous: bool = True) -> None:
        await self.ws.send_json({"type": "listen", "language": language, "continuous": continuous})

    async def stop(self) -> None:
        await self.ws.send_json({"type": "stop_listening"})


class ProducerState(enum.Enum):
    IDLE = "idle"
    LISTENING = "listening"
    FINALIZED = "finalized"
    INERT = "inert"


Publisher = Callable[[dict], Awaitable[None]]


class TranscriptProducer:
    def __init__(
        self,
        recognizer: Optional[Recognizer],
        publish: Publisher,
        room_name: str,
        sender: str,
        sender_id: str,
    ):
        self.recognizer = recognizer
        self.publish = publish
        self.room_name = room_name
        self.sender = sender
        self.sender_id = sender_id

        self.state = ProducerState.IDLE
        self.interim = ""
        self.language: Optional[str] = None
        self.audio_enabled = False
        self._transition = asyncio.Lock()  # stop must finish before the next start

    @property
    def inert(self) -> bool:
        return self.state is ProducerState.INERT

    def _check_capability(self) -> bool:
        if self.inert:
            return False
        if self.recognizer is None or not self.recognizer.is_available():
            logger.error("[producer] speech recognition is not supported for %s, transcription disabled", self.sender)
            self.state = ProducerState.INERT
            return False
        return True

    async def configure(self, audio_enabled: bool, language_code: Optional[str] = None) -> ProducerState:
        """
        Apply the speaker's audio toggle and recognition language.

        Any change restarts the recognition session: the running session is
        stopped (awaited) before a new one starts, so two sessions never
        overlap and no utterance is emitted twice.
        """
        if not self._check_capability():
            return self.state

        async with self._transition:
            await self.recognizer.stop()
            self.interim = ""
            self.audio_enabled = audio_enabled
            if not audio_enabled:
                self.state = ProducerState.IDLE
                return self.state

            self.language = language_code or DEFAULT_RECOGNITION_LANGUAGE
            logger.info("[producer] starting speech recognition with language: %s", self.language)
            await self.recognizer.start(self.language, continuous=True)
            self.state = ProducerState.LISTENING
            return self.state

    def handle_interim(self, text: str) -> None:
        if self.state is not ProducerState.LISTENING:
            return
        self.interim = text or ""

    async def handle_final(self, text: Optional[str] = None) -> Optional[dict]:
        """
        Commit the current utterance and publish it.

        `text` is the recognizer's final transcript; without it the last
        interim text is committed. Returns the published message, or None
        when nothing was emitted.
        """
        if self.state is not ProducerState.LISTENING:
            return None
        message = (text if text is not None else self.interim).strip()
        if not message:
            self.interim = ""
            return None

        self.state = ProducerState.FINALIZED
        payload = {
            "message": message,
            "roomName": self.room_name,
            "isFinal": True,
            "sender": self.sender,
            "senderId": self.sender_id,
        }
        try:
            await self.publish(payload)
        except Exception:
            logger.exception("[producer] failed to publish transcript for room %s", self.room_name)
            payload = None
        finally:
            self.interim = ""
            self.state = ProducerState.LISTENING if self.audio_enabled else ProducerState.IDLE
        return payload

    async def close(self) -> None:
        if self.recognizer is None or self.inert:
            return
        async with self._transition:
            try:
                await self.recognizer.stop()
            except Exception:
                logger.debug("[producer] recognizer stop failed during close", exc_info=True)
            self.audio_enabled = False
            self.state = ProducerState.IDLE
