"""
Caption Pipeline (transcript consumer)

Each viewer owns one CaptionPipeline. Finalized utterances arrive from the
room's transcript topic and are appended to the caption queue. A single worker
task drains the queue head-first:

    peek head -> translate -> update caption -> trigger speech -> pop head

The head is popped whether translation succeeded or not, so the queue always
makes forward progress. Only the worker pops; only `push()` appends.
"""
import asyncio
import enum
import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Awaitable, Callable, Deque, Optional, Protocol

from meetlingo.services.translation import TranslationResult, primary_subtag

logger = logging.getLogger("meetlingo.captions")

DEGRADED_MESSAGE = "Translation failed - using original text"
ERROR_MESSAGE = "Translation error - using original text"


@dataclass(frozen=True)
class Utterance:
    """One unit of transcribed speech as carried on the transcript topic."""
    sender: str
    message: str
    sender_id: str = ""
    is_final: bool = True

    @classmethod
    def from_payload(cls, payload: dict) -> "Utterance":
        return cls(
            sender=str(payload.get("sender") or ""),
            message=str(payload.get("message") or ""),
            sender_id=str(payload.get("senderId") or ""),
            is_final=bool(payload.get("isFinal", False)),
        )

    def to_payload(self) -> dict:
        return {
            "sender": self.sender,
            "message": self.message,
            "senderId": self.sender_id,
            "isFinal": self.is_final,
        }


@dataclass(frozen=True)
class Caption:
    """The caption currently on screen."""
    sender: str
    message: str
    error: Optional[str] = None
    untranslated: bool = False

    @classmethod
    def empty(cls) -> "Caption":
        return cls(sender="", message="")

    @property
    def visible(self) -> bool:
        return bool(self.message)

    def to_dict(self) -> dict:
        return asdict(self)


class Translator(Protocol):
    async def translate(self, text: str, target: str, source: str = "auto") -> TranslationResult: ...


class Speaker(Protocol):
    def speak(self, text: str, interrupt_previous: bool, language_hint: Optional[str] = None) -> None: ...


class DrainState(enum.Enum):
    IDLE = "idle"
    DRAINING = "draining"
    CLOSED = "closed"


CaptionCallback = Callable[[Caption], Awaitable[None]]


class CaptionPipeline:
    def __init__(
        self,
        translator: Translator,
        speaker: Speaker,
        language_code: str = "en",
        on_caption: Optional[CaptionCallback] = None,
        display_seconds: float = 5.0,
    ):
        self.translator = translator
        self.speaker = speaker
        self.set_language(language_code)
        self.on_caption = on_caption
        self.display_seconds = display_seconds

        self._queue: Deque[Utterance] = deque()
        self._caption = Caption.empty()
        self._state = DrainState.IDLE
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._inflight = asyncio.Lock()  # at most one translation at a time
        self._worker: Optional[asyncio.Task] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._notify_tasks: set = set()
        self._last_notify: Optional[asyncio.Task] = None

    # ---- read-only views ----
    @property
    def caption(self) -> Caption:
        return self._caption

    @property
    def pending(self) -> tuple:
        return tuple(self._queue)

    @property
    def state(self) -> DrainState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._inflight.locked()

    @property
    def target_language(self) -> str:
        return primary_subtag(self.language_code)

    # ---- lifecycle ----
    def start(self) -> None:
        if self._state is DrainState.CLOSED:
            raise RuntimeError("caption pipeline is closed")
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run())

    async def close(self) -> None:
        self._state = DrainState.CLOSED
        self._cancel_timer()
        self._queue.clear()
        self._wakeup.set()
        self._idle.set()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        for task in list(self._notify_tasks):
            task.cancel()

    async def join(self) -> None:
        """Wait until every queued utterance has been drained and its caption delivered."""
        await self._idle.wait()
        if self._last_notify is not None and not self._last_notify.done():
            await asyncio.wait([self._last_notify])

    # ---- input ----
    def set_language(self, language_code: Optional[str]) -> None:
        if not isinstance(language_code, str) or not language_code.strip():
            language_code = "en"
        self.language_code = language_code.strip()

    def push(self, utterance: Utterance) -> bool:
        """
        Append a finalized utterance to the tail of the queue.

        Returns False (and does nothing) for interim utterances or after close().
        """
        if self._state is DrainState.CLOSED or not utterance.is_final:
            return False
        self._queue.append(utterance)
        self._idle.clear()
        self._restart_timer()
        self.start()
        self._wakeup.set()
        return True

    def push_payload(self, payload: dict) -> bool:
        return self.push(Utterance.from_payload(payload))

    # ---- drain ----
    async def _run(self) -> None:
        while self._state is not DrainState.CLOSED:
            if not self._queue:
                self._state = DrainState.IDLE
                self._idle.set()
                self._wakeup.clear()
                await self._wakeup.wait()
                continue
            self._state = DrainState.DRAINING
            await self._drain_one()

    async def _drain_one(self) -> None:
        head = self._queue[0]
        language = self.language_code
        try:
            target = primary_subtag(language)
            if head.message.strip():
                async with self._inflight:
                    result = await self.translator.translate(head.message, target, source="auto")
                text = result.text or head.message
                if result.degraded:
                    caption = Caption(sender=head.sender, message=text, error=DEGRADED_MESSAGE)
                else:
                    caption = Caption(
                        sender=head.sender,
                        message=text,
                        untranslated=result.untranslated(head.message),
                    )
                    if caption.untranslated:
                        logger.info("[captions] translation to %s left text unchanged", target)
            else:
                caption = None
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[captions] error while translating utterance from %s", head.sender)
            caption = Caption(sender=head.sender, message=head.message, error=ERROR_MESSAGE)

        try:
            if caption is not None:
                self._set_caption(caption)
                self.speaker.speak(caption.message, interrupt_previous=len(self._queue) <= 1, language_hint=language)
        except Exception:
            logger.exception("[captions] speech trigger failed")
        finally:
            if self._queue and self._queue[0] is head:
                self._queue.popleft()
            if self._state is not DrainState.CLOSED:
                self._restart_timer()

    # ---- caption state ----
    def _set_caption(self, caption: Caption) -> None:
        self._caption = caption
        if self.on_caption is None:
            return
        # each notification waits for the previous one so viewers see captions in order
        task = asyncio.get_running_loop().create_task(self._notify(caption, self._last_notify))
        self._last_notify = task
        self._notify_tasks.add(task)
        task.add_done_callback(self._notify_tasks.discard)

    async def _notify(self, caption: Caption, previous: Optional[asyncio.Task]) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        try:
            await self.on_caption(caption)
        except Exception:
            logger.exception("[captions] caption callback failed")

    def _restart_timer(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.display_seconds, self._clear_caption)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _clear_caption(self) -> None:
        self._timer = None
        if self._state is DrainState.CLOSED:
            return
        self._set_caption(Caption.empty())
