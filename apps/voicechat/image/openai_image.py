from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from apps.voicechat.core.types import ImageResult
from apps.voicechat.image.sizes import nearest_openai_size
from apps.voicechat.llm.openai_chat import make_openai_client


@dataclass
class OpenAIImage:
    api_key: str
    model: str = "gpt-image-1"
    base_url: str = ""
    timeout: float = 120.0
    provider: str = "openai"
    _client: Any = field(default=None, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = make_openai_client(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    def generate(self, *, prompt: str, size: str) -> ImageResult:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "size": nearest_openai_size(size, model=self.model),
            "n": 1,
        }
        # gpt-image-* always returns base64; dall-e models need it requested.
        if self.model.startswith("dall-e"):
            kwargs["response_format"] = "b64_json"
        resp = self._get_client().images.generate(**kwargs)
        data = getattr(resp, "data", None) or []
        b64 = getattr(data[0], "b64_json", None) if data else None
        return ImageResult(base64=b64 or "", mime_type="image/png")
