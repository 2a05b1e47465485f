from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from apps.voicechat.core.errors import ProviderError
from apps.voicechat.core.types import TranscriptionResult
from apps.voicechat.stt.audio import sniff_audio_format, wav_to_mono_pcm16

# Browser MediaRecorder output (Opus) is always 48 kHz.
OPUS_SAMPLE_RATE = 48000


@dataclass
class GoogleSTT:
    """Transcribe audio bytes using Google Cloud Speech-to-Text.

    WAV input is downmixed to mono LINEAR16; WebM/Ogg Opus from the browser is
    passed through with the matching encoding.
    """

    language_code: str = "en-US"
    provider: str = "google"
    _client: Any = field(default=None, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            from google.cloud import speech

            self._client = speech.SpeechClient()
        return self._client

    def _build_request(self, audio_bytes: bytes) -> Dict[str, Any]:
        from google.cloud import speech

        fmt = sniff_audio_format(audio_bytes)
        enc = speech.RecognitionConfig.AudioEncoding
        if fmt == "wav":
            try:
                content, sample_rate = wav_to_mono_pcm16(audio_bytes)
            except ValueError as e:
                raise ProviderError(str(e)) from e
            encoding = enc.LINEAR16
        elif fmt == "webm":
            content, sample_rate, encoding = audio_bytes, OPUS_SAMPLE_RATE, enc.WEBM_OPUS
        elif fmt == "ogg":
            content, sample_rate, encoding = audio_bytes, OPUS_SAMPLE_RATE, enc.OGG_OPUS
        elif fmt == "flac":
            content, sample_rate, encoding = audio_bytes, None, enc.FLAC
        else:
            raise ProviderError(f"unsupported_audio_format:{fmt}")

        cfg: Dict[str, Any] = {
            "encoding": encoding,
            "language_code": self.language_code or "en-US",
            "enable_automatic_punctuation": True,
        }
        if sample_rate:
            cfg["sample_rate_hertz"] = sample_rate
        return {
            "config": speech.RecognitionConfig(**cfg),
            "audio": speech.RecognitionAudio(content=content),
        }

    def transcribe(self, *, audio_bytes: bytes) -> TranscriptionResult:
        if not audio_bytes:
            return TranscriptionResult(text="")
        request = self._build_request(audio_bytes)
        resp = self._get_client().recognize(**request)

        parts: list[str] = []
        for r in (resp.results or []):
            alt = r.alternatives[0] if getattr(r, "alternatives", None) else None
            if alt and getattr(alt, "transcript", None):
                parts.append(str(alt.transcript).strip())
        return TranscriptionResult(text=" ".join(p for p in parts if p).strip())
