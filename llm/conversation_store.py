"""
ConversationStore protocol for the Jirung elder-care assistant.

Tracks per-session turn counts, recent history and how often each topic's
fallback reply has been served, so the pipeline can feed the escalation
advisor and the fallback catalog.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, runtime_checkable

from triage.topics import Topic

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    turn_count: int = 0
    history: List[Dict[str, str]] = field(default_factory=list)
    fallback_usage: Dict[Topic, int] = field(default_factory=dict)


@runtime_checkable
class ConversationStore(Protocol):
    """Protocol for conversation state."""

    async def record_user_turn(self, session_id: str, message: str) -> int:
        """Store a user message; return the session's turn count including it."""
        ...

    async def record_reply(self, session_id: str, reply: str) -> None:
        """Store an assistant reply."""
        ...

    async def record_fallback(self, session_id: str, topic: Topic) -> int:
        """Count one fallback reply for a topic in this session; return the new count."""
        ...

    async def get_history(self, session_id: str) -> List[Dict[str, str]]:
        """Get message history for a session."""
        ...

    async def clear(self, session_id: str) -> None:
        """Forget a session."""
        ...


class InMemoryConversationStore:
    """Process-local ConversationStore with bounded history and session count."""

    MAX_HISTORY = 20
    MAX_SESSIONS = 1000

    def __init__(self, max_history: Optional[int] = None, max_sessions: Optional[int] = None):
        self.max_history = max_history or self.MAX_HISTORY
        self.max_sessions = max_sessions or self.MAX_SESSIONS
        self._sessions: "OrderedDict[str, SessionState]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def record_user_turn(self, session_id: str, message: str) -> int:
        async with self._lock:
            state = self._touch(session_id)
            state.turn_count += 1
            self._append(state, "user", message)
            return state.turn_count

    async def record_reply(self, session_id: str, reply: str) -> None:
        async with self._lock:
            self._append(self._touch(session_id), "assistant", reply)

    async def record_fallback(self, session_id: str, topic: Topic) -> int:
        async with self._lock:
            state = self._touch(session_id)
            state.fallback_usage[topic] = state.fallback_usage.get(topic, 0) + 1
            return state.fallback_usage[topic]

    async def get_history(self, session_id: str) -> List[Dict[str, str]]:
        async with self._lock:
            state = self._sessions.get(session_id)
            return list(state.history) if state else []

    async def clear(self, session_id: str) -> None:
        async with self._lock:
            self._sessions.pop(session_id, None)

    def _touch(self, session_id: str) -> SessionState:
        state = self._sessions.get(session_id)
        if state is None:
            state = SessionState()
            self._sessions[session_id] = state
            if len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.debug(f"Evicted conversation state for session {evicted[:8]}")
        else:
            self._sessions.move_to_end(session_id)
        return state

    def _append(self, state: SessionState, role: str, content: str):
        state.history.append({"role": role, "content": content})
        if len(state.history) > self.max_history:
            state.history = state.history[-self.max_history:]
