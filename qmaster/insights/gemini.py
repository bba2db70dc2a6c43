"""Gemini calls behind the analytics report and spoken announcements."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from qmaster.queue.models import VoicePreference

from .announcements import build_tts_prompt, voice_name

logger = logging.getLogger(__name__)

REPORT_FALLBACK = "Failed to generate AI insights at this time."


class GeminiError(RuntimeError):
    """Raised when the Gemini API returns an unusable response."""


def _first_parts(data: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    candidates = data.get("candidates") or []
    if not candidates:
        raise GeminiError("Response did not contain any candidates")
    content = candidates[0].get("content") or {}
    return list(content.get("parts") or [])


@dataclass(slots=True)
class GeminiClient:
    """Small client for the ``generateContent`` endpoint."""

    api_key: str | None
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    report_model: str = "gemini-3-flash-preview"
    tts_model: str = "gemini-2.5-flash-preview-tts"
    timeout: float = 30.0
    transport: httpx.AsyncBaseTransport | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _generate(self, model: str, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        headers = {"x-goog-api-key": self.api_key or "", "Content-Type": "application/json"}
        async with httpx.AsyncClient(
            base_url=self.base_url.rstrip("/"), timeout=self.timeout, transport=self.transport
        ) as client:
            response = await client.post(f"/models/{model}:generateContent", json=payload, headers=headers)
            response.raise_for_status()
            return response.json()

    async def generate_report(self, prompt: str) -> str:
        if not self.configured:
            logger.warning("Gemini API key is not configured; skipping report generation")
            return REPORT_FALLBACK

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"thinkingConfig": {"thinkingBudget": 0}},
        }
        try:
            data = await self._generate(self.report_model, payload)
            text = "".join(str(part.get("text", "")) for part in _first_parts(data))
        except (httpx.HTTPError, GeminiError, ValueError, AttributeError) as exc:
            logger.error("AI report generation failed: %s", exc)
            return REPORT_FALLBACK
        return text or REPORT_FALLBACK

    async def generate_calling_audio(
        self, ticket_number: int, counter_name: str, voice: VoicePreference | None = None
    ) -> str | None:
        """Return base64 encoded 24 kHz mono PCM, or ``None`` when unavailable."""

        if not self.configured:
            logger.warning("Gemini API key is not configured; no announcement audio")
            return None

        payload = {
            "contents": [{"parts": [{"text": build_tts_prompt(ticket_number, counter_name)}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice_name(voice)}},
                },
            },
        }
        try:
            data = await self._generate(self.tts_model, payload)
            parts = _first_parts(data)
            inline = parts[0].get("inlineData") if parts else None
        except (httpx.HTTPError, GeminiError, ValueError, AttributeError) as exc:
            logger.error("TTS generation failed: %s", exc)
            return None
        if not inline or not inline.get("data"):
            logger.error("TTS response did not contain audio data")
            return None
        return str(inline["data"])
