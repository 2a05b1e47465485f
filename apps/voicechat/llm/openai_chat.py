from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from apps.voicechat.core.errors import ProviderError
from apps.voicechat.core.types import ChatResult


def make_openai_client(*, api_key: str, base_url: str = "", timeout: float = 60.0) -> Any:
    if not (api_key or "").strip():
        raise ProviderError("missing_openai_api_key")
    from openai import OpenAI

    return OpenAI(api_key=api_key, base_url=(base_url or "").strip() or None, timeout=timeout)


@dataclass
class OpenAIChat:
    api_key: str
    model: str
    base_url: str = ""
    timeout: float = 60.0
    generation_config: Optional[Dict[str, Any]] = None
    provider: str = "openai"
    _client: Any = field(default=None, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = make_openai_client(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    def _map_generation_config(self) -> Dict[str, Any]:
        cfg = self.generation_config or {}
        out: Dict[str, Any] = {}
        for key in ("temperature", "top_p"):
            val = cfg.get(key)
            if val is not None:
                out[key] = val
        val = cfg.get("max_output_tokens")
        if val is not None:
            out["max_tokens"] = val
        return out

    def generate(self, *, messages: List[Dict[str, str]]) -> ChatResult:
        resp = self._get_client().chat.completions.create(
            model=self.model,
            messages=messages,
            **self._map_generation_config(),
        )
        choices = getattr(resp, "choices", None) or []
        if not choices:
            return ChatResult(text="")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None) or ""
        return ChatResult(text=str(content))
