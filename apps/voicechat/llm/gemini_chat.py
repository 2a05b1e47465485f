from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from apps.voicechat.core.errors import ProviderError
from apps.voicechat.core.types import ChatResult


def _as_dict(x: Any) -> Optional[Dict[str, Any]]:
    if isinstance(x, dict):
        return x
    md = getattr(x, "model_dump", None)
    if callable(md):
        out = md()
        return out if isinstance(out, dict) else None
    return None


def _is_seq(x: Any) -> bool:
    return isinstance(x, Sequence) and not isinstance(x, (str, bytes, bytearray))


def resp_to_text(resp: Any) -> str:
    """Best-effort extraction of response text.

    Some google-genai SDK versions / response shapes can yield an incomplete
    `resp.text` (e.g., only the first part). Prefer concatenating all text
    parts when available.
    """
    t = getattr(resp, "text", None)
    text0 = t.strip() if isinstance(t, str) else ""

    # candidates[*].content.parts[*].text
    parts_text: list[str] = []
    resp_dict = _as_dict(resp)
    candidates = resp_dict.get("candidates") if resp_dict is not None else getattr(resp, "candidates", None)
    if candidates and _is_seq(candidates):
        for cand in candidates:
            cand_dict = _as_dict(cand)
            content = cand_dict.get("content") if cand_dict is not None else getattr(cand, "content", None)
            content_dict = _as_dict(content)
            if content_dict is not None:
                parts = content_dict.get("parts")
            else:
                parts = getattr(content, "parts", None) if content is not None else None
            if parts and _is_seq(parts):
                for p in parts:
                    p_dict = _as_dict(p)
                    pt = p_dict.get("text") if p_dict is not None else getattr(p, "text", None)
                    if isinstance(pt, str) and pt:
                        parts_text.append(pt)

    text1 = "".join(parts_text).strip()
    # Prefer the longer non-empty extraction.
    if text1 and (not text0 or len(text1) > len(text0)):
        return text1
    return text0


def to_gemini_contents(messages: List[Dict[str, str]]) -> Tuple[str, List[Dict[str, Any]]]:
    """Split chat messages into (system_instruction, contents).

    Gemini has no "assistant" role; replies are sent back as "model".
    Contents must open with a user turn, so leading model turns (left behind
    when history trimming cut their user turn) are dropped, and consecutive
    turns of the same role are merged into one turn with several parts.
    """
    system_parts: list[str] = []
    contents: list[Dict[str, Any]] = []
    for m in messages:
        role = m.get("role")
        text = m.get("content") or ""
        if role == "system":
            if text.strip():
                system_parts.append(text)
            continue
        g_role = "model" if role == "assistant" else "user"
        if not contents and g_role == "model":
            continue
        if contents and contents[-1]["role"] == g_role:
            contents[-1]["parts"].append({"text": text})
            continue
        contents.append({"role": g_role, "parts": [{"text": text}]})
    return "\n\n".join(system_parts), contents


@dataclass
class GeminiChat:
    api_key: str
    model: str
    generation_config: Optional[Dict[str, Any]] = None
    provider: str = "gemini"
    _client: Any = field(default=None, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            if not (self.api_key or "").strip():
                raise ProviderError("missing_gemini_api_key")
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def generate(self, *, messages: List[Dict[str, str]]) -> ChatResult:
        system_instruction, contents = to_gemini_contents(messages)
        config: Dict[str, Any] = dict(self.generation_config or {})
        if system_instruction:
            config["system_instruction"] = system_instruction

        kwargs: Dict[str, Any] = {"model": self.model, "contents": contents}
        if config:
            kwargs["config"] = config
        resp = self._get_client().models.generate_content(**kwargs)
        return ChatResult(text=resp_to_text(resp))
