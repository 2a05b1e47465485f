from __future__ import annotations

from typing import Protocol

from apps.voicechat.core.types import ImageResult


class IImageClient(Protocol):
    provider: str

    def generate(self, *, prompt: str, size: str) -> ImageResult:
        raise NotImplementedError
