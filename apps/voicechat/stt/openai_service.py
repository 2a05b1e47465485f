from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from apps.voicechat.core.types import TranscriptionResult
from apps.voicechat.llm.openai_chat import make_openai_client
from apps.voicechat.stt.audio import EXTENSIONS, sniff_audio_format


def _normalize_language(lang: Optional[str]) -> Optional[str]:
    # Whisper wants ISO-639-1 ("en"), not a locale ("en-US").
    s = (lang or "").strip().lower()
    return s.split("-")[0] or None


@dataclass
class OpenAISTT:
    api_key: str
    model: str = "whisper-1"
    language: Optional[str] = None
    base_url: str = ""
    timeout: float = 60.0
    provider: str = "openai"
    _client: Any = field(default=None, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = make_openai_client(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    def transcribe(self, *, audio_bytes: bytes) -> TranscriptionResult:
        if not audio_bytes:
            return TranscriptionResult(text="")
        ext = EXTENSIONS.get(sniff_audio_format(audio_bytes), "webm")
        file_obj = io.BytesIO(audio_bytes)
        file_obj.name = f"audio.{ext}"

        kwargs: Dict[str, Any] = {"model": self.model, "file": file_obj}
        lang = _normalize_language(self.language)
        if lang:
            kwargs["language"] = lang
        resp = self._get_client().audio.transcriptions.create(**kwargs)
        return TranscriptionResult(text=(getattr(resp, "text", "") or "").strip())
