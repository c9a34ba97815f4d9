"""
End-of-call Summary Service

Sends a room's full transcript, as a speaker-attributed conversation, to the
OneAI pipeline API and returns its JSON output (topics, numbers, names,
emotions, summary).
"""
import logging
from typing import Dict, List, Optional

import httpx

from meetlingo.config import Settings

logger = logging.getLogger("meetlingo.summary")

SUMMARY_SKILLS = ("article-topics", "numbers", "names", "emotions", "summarize")


class SummaryService:
    """Conversation summarization via a hosted NLP pipeline."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = settings.oneai_api_key
        self.api_url = settings.oneai_api_url
        self.transport = transport

    def is_available(self) -> bool:
        return bool(self.api_key)

    def build_request(self, chat_log: List[Dict]) -> dict:
        return {
            "input": chat_log,
            "input_type": "conversation",
            "content_type": "application/json",
            "output_type": "json",
            "multilingual": {"enabled": True},
            "steps": [{"skill": skill} for skill in SUMMARY_SKILLS],
        }

    async def summarize(self, chat_log: List[Dict]) -> Optional[dict]:
        """
        Summarize a conversation.

        Parameters:
            chat_log: [{"speaker": ..., "utterance": ..., "timestamp": ISO-8601}, ...]

        Returns:
            Pipeline output, or None when the log is empty, the service is
            not configured, or the call fails.
        """
        if not chat_log:
            return None
        if not self.is_available():
            logger.warning("[summary] ONEAI_API_KEY not set -> summaries disabled")
            return None

        headers = {"api-key": self.api_key, "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=60, transport=self.transport) as client:
                resp = await client.post(self.api_url, headers=headers, json=self.build_request(chat_log))
                resp.raise_for_status()
                logger.info("[summary] pipeline responded %s for %d utterances", resp.status_code, len(chat_log))
                return resp.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("[summary] summarization failed")
            return None
