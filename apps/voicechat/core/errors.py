from __future__ import annotations


class GatewayError(Exception):
    """Base error raised by gateway code; carries the HTTP status to return."""

    status_code = 500


class ProviderError(GatewayError):
    """The upstream service failed, returned nothing, or is not configured."""

    status_code = 500


class InvalidVoiceError(GatewayError):
    status_code = 400

    def __init__(self, voice: str) -> None:
        super().__init__("Invalid voice")
        self.voice = voice
