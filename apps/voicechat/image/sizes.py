from __future__ import annotations

import math
from typing import Sequence, Tuple

DEFAULT_SIZE = "1024x1024"

SUPPORTED_SIZES: Tuple[str, ...] = (
    "1024x1024",
    "768x1344",
    "864x1152",
    "1344x768",
    "1152x864",
    "1440x720",
    "720x1440",
)

IMAGEN_ASPECT_RATIOS: Tuple[str, ...] = ("1:1", "3:4", "4:3", "9:16", "16:9")


def parse_size(size: str) -> Tuple[int, int]:
    w, h = size.lower().split("x", 1)
    return int(w), int(h)


def _ratio(spec: str, sep: str) -> float:
    a, b = spec.split(sep, 1)
    return float(a) / float(b)


def nearest_aspect_ratio(size: str, choices: Sequence[str] = IMAGEN_ASPECT_RATIOS) -> str:
    """Pick the aspect ratio closest to WxH (compared on a log scale)."""
    w, h = parse_size(size)
    target = math.log(w / h)
    return min(choices, key=lambda c: abs(math.log(_ratio(c, ":")) - target))


def nearest_openai_size(size: str, *, model: str) -> str:
    """Map a WxH request onto the fixed sizes the OpenAI image models accept."""
    w, h = parse_size(size)
    if w == h or (model or "").startswith("dall-e-2"):
        return "1024x1024"
    if (model or "").startswith("dall-e-3"):
        return "1792x1024" if w > h else "1024x1792"
    return "1536x1024" if w > h else "1024x1536"
