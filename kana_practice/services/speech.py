from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path

import httpx

from kana_practice.config import AUDIO_DIR

logger = logging.getLogger(__name__)

VOICE_PRESETS = {
    "ja-JP": [
        {"id": "ja-JP-NanamiNeural", "label": "Japanese - Nanami"},
        {"id": "ja-JP-KeitaNeural", "label": "Japanese - Keita"},
    ],
}
DEFAULT_LOCALE = "ja-JP"
OPENAI_VOICE_FALLBACK = "alloy"


class SpeechService:
    def __init__(self, audio_dir: Path = AUDIO_DIR) -> None:
        self.audio_dir = audio_dir
        self.openai_api_key = os.getenv("OPENAI_API_KEY")
        self.openai_base = os.getenv("KANA_PRACTICE_OPENAI_BASE_URL", "https://api.openai.com/v1")
        self.tts_model = os.getenv("KANA_PRACTICE_TTS_MODEL", "gpt-4o-mini-tts")

    def list_voices(self) -> dict:
        return VOICE_PRESETS

    def audio_path(self, text: str, voice: str) -> Path:
        digest = hashlib.sha1(f"{voice}:{text}".encode("utf-8")).hexdigest()[:16]
        return self.audio_dir / f"tts_{digest}.mp3"

    async def synthesize(self, *, text: str, voice: str | None = None) -> Path:
        """Speak ``text`` with edge-tts, falling back to an OpenAI-compatible endpoint.

        Files are keyed by voice and text, so repeated requests for the same
        kana reuse the cached clip.
        """
        text = str(text or "").strip()
        if not text:
            raise ValueError("text is empty")

        final_voice = voice or VOICE_PRESETS[DEFAULT_LOCALE][0]["id"]
        out = self.audio_path(text, final_voice)
        if out.exists() and out.stat().st_size > 0:
            return out
        out.parent.mkdir(parents=True, exist_ok=True)

        edge_error = None
        try:
            import edge_tts

            communicator = edge_tts.Communicate(text=text, voice=final_voice)
            await communicator.save(str(out))
            return out
        except Exception as exc:
            logger.warning("edge-tts failed for %r: %s", text, exc)
            edge_error = exc

        if self.openai_api_key:
            self._openai_tts(text=text, out=out)
            return out

        raise RuntimeError(f"TTS unavailable. edge_tts={edge_error}")

    def _openai_tts(self, *, text: str, out: Path) -> None:
        url = self.openai_base.rstrip("/") + "/audio/speech"
        headers = {
            "Authorization": f"Bearer {self.openai_api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.tts_model,
            "voice": OPENAI_VOICE_FALLBACK,
            "input": text,
            "format": "mp3",
        }
        with httpx.Client(timeout=90) as client:
            resp = client.post(url, headers=headers, json=payload)
            resp.raise_for_status()
            out.write_bytes(resp.content)
