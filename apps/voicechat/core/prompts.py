from __future__ import annotations

from typing import Optional

DEFAULT_SYSTEM_PROMPT = (
    "You are ROMAN, a voice-first assistant. "
    "Answer in short, spoken-style sentences without markdown, "
    "because every reply may be read aloud by a speech engine."
)


def resolve_system_prompt(configured: Optional[str]) -> str:
    """Return the configured prompt, or the built-in default when blank."""
    return (configured or "").strip() or DEFAULT_SYSTEM_PROMPT
