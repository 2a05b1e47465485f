from __future__ import annotations

import base64
import binascii
import io
import wave
from typing import Tuple

import numpy as np

# Container -> filename extension understood by upload-based STT APIs.
EXTENSIONS = {
    "wav": "wav",
    "webm": "webm",
    "ogg": "ogg",
    "flac": "flac",
    "mp3": "mp3",
    "mp4": "m4a",
}


def strip_data_url(s: str) -> str:
    """Return the base64 payload of a data URL (or the input unchanged)."""
    t = (s or "").strip()
    if "base64," in t:
        return t.split("base64,", 1)[1]
    return t


def decode_audio_b64(s: str) -> bytes:
    payload = "".join(strip_data_url(s).split())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("invalid_base64") from e


def sniff_audio_format(data: bytes) -> str:
    head = data[:12]
    if head[:4] == b"RIFF" and head[8:12] == b"WAVE":
        return "wav"
    if head[:4] == b"\x1a\x45\xdf\xa3":
        return "webm"
    if head[:4] == b"OggS":
        return "ogg"
    if head[:4] == b"fLaC":
        return "flac"
    if head[:3] == b"ID3" or (len(head) >= 2 and head[0] == 0xFF and (head[1] & 0xE0) == 0xE0):
        return "mp3"
    if head[4:8] == b"ftyp":
        return "mp4"
    return "unknown"


def wav_to_mono_pcm16(audio_bytes: bytes) -> Tuple[bytes, int]:
    """Parse a 16-bit PCM WAV and downmix to mono.

    Returns (pcm_bytes, sample_rate).
    """
    try:
        with wave.open(io.BytesIO(audio_bytes), "rb") as wf:
            channels = int(wf.getnchannels())
            sampwidth = int(wf.getsampwidth())
            sample_rate = int(wf.getframerate())
            frames = wf.readframes(int(wf.getnframes()))
    except (wave.Error, EOFError) as e:
        raise ValueError(f"invalid_wav:{type(e).__name__}") from e

    if sampwidth != 2:
        raise ValueError(f"unsupported_sampwidth:{sampwidth}")

    audio_i16 = np.frombuffer(frames, dtype=np.int16)
    if channels > 1:
        usable = (audio_i16.size // channels) * channels
        audio_i16 = audio_i16[:usable].reshape(-1, channels).mean(axis=1).astype(np.int16)
    return audio_i16.tobytes(), sample_rate
