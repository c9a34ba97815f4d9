"""
Services Module

Provides the caption path and its external services:
- Translation: MarianMT-compatible HTTP endpoints with fallback
- Captions: per-viewer caption queue and display state
- Speech: caption speech synthesis (ElevenLabs)
- Producer: speaker-side speech recognition control
- LiveKit: media-service access tokens and rooms
- Summary: end-of-call summaries (OneAI)
- Relay: hosted channel mirroring (Pusher)
"""

# Translation
from .translation import (
    TranslationClient,
    TranslationEndpoint,
    TranslationResult,
    get_translation_client,
    close_translation_client,
)

# Caption consumer
from .captions import Caption, CaptionPipeline, Utterance

# Speech synthesis
from .speech import ElevenLabsBackend, NullBackend, SpeechSynthesizer

# Transcript producer
from .producer import RemoteRecognizer, TranscriptProducer

# Transcript publishing
from .transcripts import publish_transcript

__all__ = [
    # Translation
    "TranslationClient",
    "TranslationEndpoint",
    "TranslationResult",
    "get_translation_client",
    "close_translation_client",
    # Captions
    "Caption",
    "CaptionPipeline",
    "Utterance",
    # Speech
    "ElevenLabsBackend",
    "NullBackend",
    "SpeechSynthesizer",
    # Producer
    "RemoteRecognizer",
    "TranscriptProducer",
    # Publishing
    "publish_transcript",
]
