"""
Translation Client

Wraps one or more MarianMT-compatible HTTP endpoints behind a single
`translate()` call. Endpoints are tried in order, each with its own timeout.
When every endpoint fails the original text comes back with `degraded=True`;
callers never see an exception from here.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

import httpx

from meetlingo.config import Settings

logger = logging.getLogger("meetlingo.translation")

# Language codes offered in the UI
LANGUAGES = {
    "auto": "Automatic",
    "en": "English",
    "fr": "French",
    "de": "German",
    "ja": "Japanese",
    "es": "Spanish",
    "hi": "Hindi",
    "kn": "Kannada",
    "ru": "Russian",
    "ar": "Arabic",
    "zh": "Chinese",
    "pt": "Portuguese",
}

# Response keys that may carry the translated text, in priority order
TEXT_KEYS = ("translated_text", "translatedText", "text")


def primary_subtag(code: Optional[str], default: str = "en") -> str:
    """'kn-IN' -> 'kn'; empty or missing -> default."""
    if not code:
        return default
    return code.replace("_", "-").split("-")[0].strip().lower() or default


def language_name(code: Optional[str]) -> str:
    lang = primary_subtag(code)
    return LANGUAGES.get(lang, lang)


@dataclass(frozen=True)
class TranslationEndpoint:
    url: str
    api_key: Optional[str] = None
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or self.url


@dataclass
class TranslationRequest:
    text: str
    target_language: str
    source_language: str = "auto"
    model: Optional[str] = None
    format: str = "text"

    def to_payload(self, default_model: str) -> dict:
        return {
            "text": self.text,
            "source_language": self.source_language or "auto",
            "target_language": self.target_language,
            "model": self.model or default_model,
            "format": self.format or "text",
        }


@dataclass
class TranslationResult:
    text: str
    detected_language: str
    raw: Any = field(default_factory=dict)
    degraded: bool = False  # True when every endpoint failed and `text` is the source
    endpoint: Optional[str] = None  # label of the endpoint that answered

    def untranslated(self, source_text: str) -> bool:
        """Soft signal: the backend answered but returned the input unchanged."""
        return not self.degraded and self.text.strip() == (source_text or "").strip()


class TranslationFailed(Exception):
    """One endpoint attempt failed. Never escapes TranslationClient.translate()."""


def _extract_text(data: Any) -> str:
    if not isinstance(data, dict):
        raise TranslationFailed("response is not a JSON object")
    for key in TEXT_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    raise TranslationFailed("response has none of " + ", ".join(TEXT_KEYS))


class TranslationClient:
    """Multi-endpoint translation client with graceful degradation."""

    def __init__(
        self,
        endpoints: Sequence[TranslationEndpoint],
        timeout: float = 5.0,
        max_length: int = 512,
        batch_size: int = 8,
        default_model: str = "opus-mt",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoints: List[TranslationEndpoint] = list(endpoints)
        self.timeout = timeout
        self.max_length = max_length
        self.batch_size = max(1, batch_size)
        self.default_model = default_model
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "TranslationClient":
        endpoints = []
        if settings.translation_endpoint:
            endpoints.append(TranslationEndpoint(
                url=settings.translation_endpoint,
                api_key=settings.translation_api_key,
                name="primary",
            ))
        for i, url in enumerate(settings.translation_fallback_endpoints, start=1):
            endpoints.append(TranslationEndpoint(
                url=url,
                api_key=settings.translation_api_key,
                name=f"fallback-{i}",
            ))
        return cls(
            endpoints,
            timeout=settings.translation_timeout,
            max_length=settings.translation_max_length,
            batch_size=settings.translation_batch_size,
            default_model=settings.translation_default_model,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _attempt(self, endpoint: TranslationEndpoint, request: TranslationRequest) -> TranslationResult:
        headers = {"Content-Type": "application/json"}
        if endpoint.api_key:
            headers["Authorization"] = f"Bearer {endpoint.api_key}"
        try:
            resp = await asyncio.wait_for(
                self._client.post(endpoint.url, json=request.to_payload(self.default_model), headers=headers),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except asyncio.TimeoutError:
            raise TranslationFailed(f"timed out after {self.timeout}s")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # httpx.InvalidURL and friends are not HTTPError subclasses
            raise TranslationFailed(f"{type(e).__name__}: {e}")

        text = _extract_text(data)
        detected = data.get("detected_source_language") or request.source_language or "auto"
        return TranslationResult(text=text, detected_language=detected, raw=data, endpoint=endpoint.label)

    async def translate(
        self,
        text: str,
        target: str,
        source: str = "auto",
        model: Optional[str] = None,
        format: str = "text",
    ) -> TranslationResult:
        """
        Translate `text` into `target`.

        Parameters:
        - text: Source text
        - target: Target language code (region suffix allowed)
        - source: Source language code, "auto" lets the backend detect it
        - model: Model name sent to the backend (defaults to the configured one)

        Returns:
        - TranslationResult. On total failure `text` is the original input,
          `degraded` is True and `raw["error"]` describes the last failure.
        """
        source = source or "auto"
        if not text or not text.strip():
            return TranslationResult(text="", detected_language=source, raw={"skipped": "empty"})

        if source != "auto" and primary_subtag(source) == primary_subtag(target):
            return TranslationResult(text=text, detected_language=source, raw={"skipped": "same-language"})

        if len(text) > self.max_length:
            logger.info("[translate] truncating input from %d to %d chars", len(text), self.max_length)
        request = TranslationRequest(
            text=text[: self.max_length],
            target_language=target,
            source_language=source,
            model=model,
            format=format,
        )

        attempts = []
        for index, endpoint in enumerate(self.endpoints):
            try:
                result = await self._attempt(endpoint, request)
            except TranslationFailed as e:
                logger.warning("[translate] endpoint %s failed: %s", endpoint.label, e)
                attempts.append({"endpoint": endpoint.label, "error": str(e)})
                continue

            if index > 0:
                logger.warning("[translate] fallback endpoint %s used after %d failure(s)", endpoint.label, index)
            if result.untranslated(text):
                logger.info("[translate] text unchanged for target=%s (language may be unsupported)", target)
            return result

        error = attempts[-1]["error"] if attempts else "no translation endpoints configured"
        logger.error("[translate] all endpoints failed, using original text: %s", error)
        return TranslationResult(
            text=text,
            detected_language=source,
            raw={"error": error, "attempts": attempts},
            degraded=True,
        )

    async def translate_many(
        self, texts: Sequence[str], target: str, source: str = "auto"
    ) -> List[TranslationResult]:
        """Translate several texts, `batch_size` concurrent requests at a time. Order is preserved."""
        results: List[TranslationResult] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start:start + self.batch_size]
            results.extend(await asyncio.gather(*(self.translate(t, target, source) for t in batch)))
        return results


# Process-wide client built from settings on first use
_translation_client: Optional[TranslationClient] = None


def get_translation_client() -> TranslationClient:
    """
    Get the shared translation client.

    Note:
    - Endpoints come from MARIAN_MT_API_ENDPOINT / MARIAN_MT_FALLBACK_ENDPOINTS in .env
    """
    global _translation_client
    if _translation_client is None:
        from meetlingo.config import settings
        _translation_client = TranslationClient.from_settings(settings)
        logger.info("[translate] using %d endpoint(s)", len(_translation_client.endpoints))
    return _translation_client


async def close_translation_client() -> None:
    global _translation_client
    if _translation_client is not None:
        await _translation_client.aclose()
        _translation_client = None
