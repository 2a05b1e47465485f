from __future__ import annotations

from typing import Protocol

from apps.voicechat.core.types import SpeechResult, Voice


class ISpeechClient(Protocol):
    """Adapter interface so speech services can be swapped without touching routing."""

    provider: str

    def synthesize(self, *, text: str, voice: Voice, speed: float = 1.0) -> SpeechResult:
        raise NotImplementedError
