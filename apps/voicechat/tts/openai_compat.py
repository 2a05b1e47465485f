from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from apps.voicechat.core.types import SpeechResult, Voice


@dataclass
class OpenAICompatTTS:
    """Speech via an OpenAI-compatible /v1/audio/speech server.

    Usually a self-hosted server, so the API key may be a placeholder and the
    client carries its own short timeout.
    """

    base_url: str = "http://localhost:5173/v1"
    api_key: str = "not-needed"
    model: str = "tts-1"
    timeout: float = 10.0
    provider: str = "openai"
    _client: Any = field(default=None, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(
                api_key=(self.api_key or "").strip() or "not-needed",
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def synthesize(self, *, text: str, voice: Voice, speed: float = 1.0) -> SpeechResult:
        resp = self._get_client().audio.speech.create(
            model=self.model,
            voice=voice.provider_voice,
            input=text,
            speed=float(speed),
            response_format="mp3",
        )
        audio = getattr(resp, "content", None)
        if audio is None:
            audio = resp.read()
        return SpeechResult(audio=bytes(audio or b""), media_type="audio/mpeg")
