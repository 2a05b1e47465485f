from __future__ import annotations

from typing import Dict, List, Protocol

from apps.voicechat.core.types import ChatResult


class IChatClient(Protocol):
    """Chat completion interface so providers can be swapped per configuration."""

    provider: str

    def generate(self, *, messages: List[Dict[str, str]]) -> ChatResult:
        raise NotImplementedError
