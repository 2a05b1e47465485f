from __future__ import annotations

from typing import Protocol

from apps.voicechat.core.types import TranscriptionResult


class ISpeechToTextClient(Protocol):
    provider: str

    def transcribe(self, *, audio_bytes: bytes) -> TranscriptionResult:
        raise NotImplementedError
