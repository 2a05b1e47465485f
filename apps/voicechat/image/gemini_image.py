from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any

from apps.voicechat.core.errors import ProviderError
from apps.voicechat.core.types import ImageResult
from apps.voicechat.image.sizes import nearest_aspect_ratio


@dataclass
class GeminiImage:
    """Imagen through the google-genai SDK.

    Imagen takes an aspect ratio instead of pixel dimensions, so the requested
    size is mapped to the closest supported ratio.
    """

    api_key: str
    model: str = "imagen-3.0-generate-002"
    provider: str = "gemini"
    _client: Any = field(default=None, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            if not (self.api_key or "").strip():
                raise ProviderError("missing_gemini_api_key")
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def generate(self, *, prompt: str, size: str) -> ImageResult:
        resp = self._get_client().models.generate_images(
            model=self.model,
            prompt=prompt,
            config={"number_of_images": 1, "aspect_ratio": nearest_aspect_ratio(size)},
        )
        images = getattr(resp, "generated_images", None) or []
        if not images:
            return ImageResult(base64="")
        image = getattr(images[0], "image", None)
        raw = getattr(image, "image_bytes", None) or b""
        mime = getattr(image, "mime_type", None) or "image/png"
        return ImageResult(base64=base64.b64encode(raw).decode("ascii"), mime_type=mime)
