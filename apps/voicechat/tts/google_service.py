from __future__ import annotations

import array
import io
import wave
from dataclasses import dataclass, field
from typing import Any

from apps.voicechat.core.types import SpeechResult, Voice


def apply_pcm_fade(pcm: bytes, *, sample_rate: int, fade_in_ms: int = 8, fade_out_ms: int = 8) -> bytes:
    """Apply a short linear fade-in/out to mono 16-bit PCM.

    This suppresses audible clicks when playback starts/ends at a non-zero
    sample value (common with synthesized audio).
    """
    samples = array.array("h")
    samples.frombytes(pcm)
    total = len(samples)
    if total <= 1 or sample_rate <= 0:
        return pcm

    fi = max(0, min(int(sample_rate * max(0, fade_in_ms) / 1000), total))
    fo = max(0, min(int(sample_rate * max(0, fade_out_ms) / 1000), total))

    if fi >= 2:
        for i in range(fi):
            samples[i] = int(samples[i] * (i / float(fi - 1)))

    if fo >= 2:
        start = total - fo
        for j in range(fo):
            # j=0 => gain=1, j=fo-1 => gain=0
            samples[start + j] = int(samples[start + j] * (1.0 - j / float(fo - 1)))

    return samples.tobytes()


def pcm_to_wav(pcm: bytes, *, sample_rate: int) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buf.getvalue()


def language_code_for(voice_name: str) -> str:
    # "en-US-Neural2-D" -> "en-US"
    return "-".join(voice_name.split("-")[:2])


@dataclass
class GoogleTTS:
    sample_rate_hz: int = 24000
    provider: str = "google"
    _client: Any = field(default=None, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            from google.cloud import texttospeech

            self._client = texttospeech.TextToSpeechClient()
        return self._client

    def synthesize(self, *, text: str, voice: Voice, speed: float = 1.0) -> SpeechResult:
        from google.cloud import texttospeech

        voice_params = texttospeech.VoiceSelectionParams(
            language_code=language_code_for(voice.provider_voice),
            name=voice.provider_voice,
        )
        # LINEAR16 PCM, wrap into WAV
        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.LINEAR16,
            sample_rate_hertz=int(self.sample_rate_hz),
            speaking_rate=float(speed),
        )
        response = self._get_client().synthesize_speech(
            input=texttospeech.SynthesisInput(text=text),
            voice=voice_params,
            audio_config=audio_config,
        )

        pcm = response.audio_content or b""
        # LINEAR16 responses already carry a WAV header; keep only the samples.
        if pcm[:4] == b"RIFF":
            with wave.open(io.BytesIO(pcm), "rb") as wf:
                pcm = wf.readframes(wf.getnframes())
        if len(pcm) % 2 == 1:
            pcm = pcm[:-1]
        if not pcm:
            return SpeechResult(audio=b"", media_type="audio/wav")

        pcm = apply_pcm_fade(pcm, sample_rate=int(self.sample_rate_hz))
        return SpeechResult(audio=pcm_to_wav(pcm, sample_rate=int(self.sample_rate_hz)), media_type="audio/wav")
