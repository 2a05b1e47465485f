from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List

from apps.voicechat.core.types import ConversationMessage, Role

DEFAULT_SESSION_ID = "default"


@dataclass
class ConversationHistory:
    """Bounded turn buffer with the system prompt pinned at index 0.

    Once the buffer holds more than ``max_messages`` entries, the oldest
    user/assistant turns after the system prompt are dropped so that the
    system prompt plus the newest ``max_messages - 1`` turns remain.
    """

    system_prompt: str
    max_messages: int = 20
    _items: List[ConversationMessage] = field(default_factory=list, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_messages < 2:
            raise ValueError("max_messages must be >= 2")
        self._items = [ConversationMessage(role="system", content=self.system_prompt)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def append(self, *, role: Role, content: str) -> None:
        msg = ConversationMessage(role=role, content=content)
        with self._lock:
            self._items.append(msg)
            overflow = len(self._items) - self.max_messages
            if overflow > 0:
                del self._items[1 : 1 + overflow]

    def extend(self, turns: List[ConversationMessage]) -> None:
        with self._lock:
            self._items.extend(turns)
            overflow = len(self._items) - self.max_messages
            if overflow > 0:
                del self._items[1 : 1 + overflow]

    def reset(self) -> None:
        with self._lock:
            del self._items[1:]

    def snapshot(self) -> List[ConversationMessage]:
        with self._lock:
            return list(self._items)

    def messages(self) -> List[Dict[str, str]]:
        return [m.to_wire() for m in self.snapshot()]


@dataclass
class SessionRegistry:
    """Per-session conversation contexts owned by one app instance.

    Holds at most ``max_sessions`` contexts; the least recently used one is
    evicted when a new session would exceed the cap.
    """

    system_prompt: str
    max_messages: int = 20
    max_sessions: int = 256
    _sessions: "OrderedDict[str, ConversationHistory]" = field(default_factory=OrderedDict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_sessions < 1:
            raise ValueError("max_sessions must be >= 1")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def get(self, session_id: str = DEFAULT_SESSION_ID) -> ConversationHistory:
        sid = _normalize_session_id(session_id)
        with self._lock:
            hist = self._sessions.get(sid)
            if hist is not None:
                self._sessions.move_to_end(sid)
                return hist
            while len(self._sessions) >= self.max_sessions:
                self._sessions.popitem(last=False)
            hist = ConversationHistory(system_prompt=self.system_prompt, max_messages=self.max_messages)
            self._sessions[sid] = hist
            return hist

    def reset(self, session_id: str = DEFAULT_SESSION_ID) -> bool:
        """Clear a known session back to the system prompt.

        Unknown ids are left alone so a reset never allocates a session.
        """
        sid = _normalize_session_id(session_id)
        with self._lock:
            hist = self._sessions.get(sid)
        if hist is None:
            return False
        hist.reset()
        return True


def _normalize_session_id(session_id: str) -> str:
    return (session_id or "").strip() or DEFAULT_SESSION_ID
