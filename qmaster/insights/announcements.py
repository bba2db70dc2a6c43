from __future__ import annotations

import io
import wave

from qmaster.queue.models import VoicePreference

TTS_SAMPLE_RATE = 24000

_VOICE_NAMES: dict[VoicePreference, str] = {
    VoicePreference.MAN: "Puck",
    VoicePreference.WOMAN: "Kore",
}


def announcement_text(ticket_number: int, counter_name: str) -> str:
    return f"Ticket number {ticket_number}, please proceed to {counter_name}."


def build_tts_prompt(ticket_number: int, counter_name: str) -> str:
    return f"Announce clearly and professionally: {announcement_text(ticket_number, counter_name)}"


def voice_name(voice: VoicePreference | None) -> str:
    return _VOICE_NAMES[voice or VoicePreference.MAN]


def pcm_to_wav(pcm: bytes, *, sample_rate: int = TTS_SAMPLE_RATE, channels: int = 1) -> bytes:
    """Wrap raw little-endian 16-bit PCM in a WAV container."""

    if len(pcm) % (2 * channels):
        raise ValueError("PCM payload is not aligned to 16-bit frames")
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as writer:
        writer.setnchannels(channels)
        writer.setsampwidth(2)
        writer.setframerate(sample_rate)
        writer.writeframes(pcm)
    return buffer.getvalue()
