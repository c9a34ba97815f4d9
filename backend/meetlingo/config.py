# meetlingo/config.py
import os
from typing import Mapping

import httpx
from pydantic import BaseModel, ConfigDict, Field
from dotenv import load_dotenv

from meetlingo.core.errors import ConfigError

load_dotenv()  # Load environment variables from .env file

# Variables that must be present before the app accepts traffic
REQUIRED_ENV = {
    "MARIAN_MT_API_ENDPOINT": "translation_endpoint",
    "LIVEKIT_API_KEY": "livekit_api_key",
    "LIVEKIT_API_SECRET": "livekit_api_secret",
    "LIVEKIT_URL": "livekit_url",
}

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def _get(env: Mapping[str, str], name: str, default: str | None = None) -> str | None:
    """Read a variable, treating empty strings as unset."""
    value = env.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _get_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = _get(env, name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


def _get_number(env: Mapping[str, str], name: str, default, cast):
    value = _get(env, name)
    if value is None:
        return default
    try:
        return cast(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}")


def _get_list(env: Mapping[str, str], name: str) -> list[str]:
    value = _get(env, name)
    if value is None:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _check_url(name: str, value: str | None) -> str | None:
    """Reject values that are not absolute http(s) URLs."""
    if value is None:
        return None
    if any(ch.isspace() for ch in value):
        raise ConfigError(f"{name} must be a valid URL, got {value!r}")
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError):
        raise ConfigError(f"{name} must be a valid URL, got {value!r}")
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigError(f"{name} must be an http(s) URL, got {value!r}")
    return value


def _get_url(env: Mapping[str, str], name: str) -> str | None:
    return _check_url(name, _get(env, name))


def _get_url_list(env: Mapping[str, str], name: str) -> list[str]:
    return [_check_url(name, item) for item in _get_list(env, name)]


def _get_voice_map(env: Mapping[str, str], name: str) -> dict[str, str]:
    """Parse `en:voiceA,fr-FR:voiceB` into a language -> voice id mapping."""
    voices: dict[str, str] = {}
    for item in _get_list(env, name):
        lang, sep, voice = item.partition(":")
        if not sep or not lang.strip() or not voice.strip():
            raise ConfigError(f"{name} entries must look like 'lang:voice_id', got {item!r}")
        voices[lang.strip().lower()] = voice.strip()
    return voices


class Settings(BaseModel):
    """
    Immutable application settings.

    Built once at process start (see `Settings.from_env`) and handed to the
    components that need it. Nothing else in the package reads os.environ.
    """
    model_config = ConfigDict(frozen=True)

    # General app settings
    APP_NAME: str = "MeetLingo API"
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    skip_env_validation: bool = False

    database_url: str = "sqlite://meetlingo.sqlite3"

    # Session tokens
    jwt_secret: str = "dev-secret"
    access_token_expire_minutes: int = 60

    # Default admin account created on first start
    admin_username: str = "admin"
    admin_email: str = "admin@example.com"
    admin_password: str | None = None

    # Translation (MarianMT-compatible HTTP endpoints)
    translation_endpoint: str | None = None
    translation_api_key: str | None = None
    translation_fallback_endpoints: list[str] = Field(default_factory=list)
    translation_timeout: float = 5.0
    translation_max_length: int = 512
    translation_batch_size: int = 8
    translation_default_model: str = "opus-mt"

    # LiveKit media service
    livekit_api_key: str | None = None
    livekit_api_secret: str | None = None
    livekit_url: str | None = None
    livekit_api_url: str | None = None
    livekit_token_ttl_sec: int = 300

    # Hosted channel messaging (optional relay)
    pusher_app_id: str | None = None
    pusher_key: str | None = None
    pusher_secret: str | None = None
    pusher_cluster: str | None = None

    # End-of-call summarization
    oneai_api_key: str | None = None
    oneai_api_url: str = "https://api.oneai.com/api/v0/pipeline"

    # ElevenLabs API Settings (for TTS)
    eleven_api_key: str | None = None
    eleven_api_base: str = "https://api.elevenlabs.io/v1"
    default_voice_id: str = "21m00Tcm4TlvDq8ikWAM"
    voice_ids: dict[str, str] = Field(default_factory=dict)

    # Captions
    caption_display_seconds: float = 5.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        livekit_url = _get(env, "LIVEKIT_URL") or _get(env, "NEXT_PUBLIC_LIVEKIT_URL")
        livekit_api_url = _get(env, "LIVEKIT_API_URL")
        if livekit_api_url is None and livekit_url:
            livekit_api_url = livekit_url.replace("wss://", "https://").replace("ws://", "http://")

        return cls(
            APP_NAME=_get(env, "APP_NAME", "MeetLingo API"),
            CORS_ORIGINS=_get_list(env, "CORS_ORIGINS") or list(DEFAULT_CORS_ORIGINS),
            skip_env_validation=_get_bool(env, "SKIP_ENV_VALIDATION"),
            database_url=_get(env, "DATABASE_URL", "sqlite://meetlingo.sqlite3"),
            jwt_secret=_get(env, "JWT_SECRET", "dev-secret"),
            access_token_expire_minutes=_get_number(env, "ACCESS_TOKEN_EXPIRE_MINUTES", 60, int),
            admin_username=_get(env, "ADMIN_USERNAME", "admin"),
            admin_email=_get(env, "ADMIN_EMAIL", "admin@example.com"),
            admin_password=_get(env, "ADMIN_PASSWORD"),
            translation_endpoint=_get_url(env, "MARIAN_MT_API_ENDPOINT"),
            translation_api_key=_get(env, "MARIAN_MT_API_KEY"),
            translation_fallback_endpoints=_get_url_list(env, "MARIAN_MT_FALLBACK_ENDPOINTS"),
            translation_timeout=_get_number(env, "MARIAN_MT_TIMEOUT", 5.0, float),
            translation_max_length=_get_number(env, "MARIAN_MT_MAX_LENGTH", 512, int),
            translation_batch_size=_get_number(env, "MARIAN_MT_BATCH_SIZE", 8, int),
            translation_default_model=_get(env, "MARIAN_MT_DEFAULT_MODEL", "opus-mt"),
            livekit_api_key=_get(env, "LIVEKIT_API_KEY"),
            livekit_api_secret=_get(env, "LIVEKIT_API_SECRET"),
            livekit_url=livekit_url,
            livekit_api_url=livekit_api_url,
            pusher_app_id=_get(env, "PUSHER_APP_ID"),
            pusher_key=_get(env, "PUSHER_KEY"),
            pusher_secret=_get(env, "PUSHER_SECRET"),
            pusher_cluster=_get(env, "PUSHER_CLUSTER"),
            oneai_api_key=_get(env, "ONEAI_API_KEY"),
            oneai_api_url=_get(env, "ONEAI_API_URL", "https://api.oneai.com/api/v0/pipeline"),
            eleven_api_key=_get(env, "ELEVENLABS_API_KEY"),
            eleven_api_base=_get(env, "ELEVENLABS_API_URL", "https://api.elevenlabs.io/v1"),
            default_voice_id=_get(env, "DEFAULT_VOICE_ID", "21m00Tcm4TlvDq8ikWAM"),
            voice_ids=_get_voice_map(env, "TTS_VOICE_MAP"),
            caption_display_seconds=_get_number(env, "CAPTION_DISPLAY_SECONDS", 5.0, float),
        )

    @property
    def pusher_enabled(self) -> bool:
        return all((self.pusher_app_id, self.pusher_key, self.pusher_secret, self.pusher_cluster))

    def missing_required(self) -> list[str]:
        """Names of required environment variables that are not set."""
        return [name for name, field in REQUIRED_ENV.items() if not getattr(self, field)]

    def ensure_valid(self) -> None:
        """
        Fail fast on missing credentials.

        Raises:
            ConfigError: listing every missing required variable
        """
        missing = self.missing_required()
        if missing:
            raise ConfigError("Invalid environment variables, missing: " + ", ".join(missing))


settings = Settings.from_env()  # Instantiate configuration
