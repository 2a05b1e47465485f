from __future__ import annotations

from dataclasses import dataclass

from apps.voicechat.core.errors import InvalidVoiceError
from apps.voicechat.core.types import SpeechResult, VoiceCatalog
from apps.voicechat.core.voices import find_voice
from apps.voicechat.tts.base import ISpeechClient


@dataclass
class VoiceRouter:
    """Dispatch a synthesis request to the service that owns the voice id.

    The two catalogs are disjoint, so each request reaches exactly one service.
    """

    primary: ISpeechClient
    secondary: ISpeechClient

    def synthesize(self, *, text: str, voice_id: str, speed: float = 1.0) -> SpeechResult:
        voice = find_voice(voice_id)
        if voice is None:
            raise InvalidVoiceError(voice_id)
        if voice.catalog is VoiceCatalog.secondary:
            return self.secondary.synthesize(text=text, voice=voice, speed=speed)
        return self.primary.synthesize(text=text, voice=voice, speed=speed)
