"""
Conversation Memory

Per-session carry-over of the previous raw question, used to expand very
short follow-ups ("fees" after "school" -> "school fees").

Contexts belong to one conversation. The server keeps them in a
SessionStore keyed by session id; callers without a session id get a fresh
context, so nothing leaks between users.
"""

import logging
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger("askbase.resolver.memory")

SHORT_UTTERANCE_CHARS = 4


@dataclass
class ConversationContext:
    """Follow-up state for one conversation"""
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    last_question: str = ""
    created_at: float = field(default_factory=time.monotonic)
    last_seen: float = field(default_factory=time.monotonic)


def merge_follow_up(
    question: str,
    context: ConversationContext,
    short_chars: int = SHORT_UTTERANCE_CHARS,
) -> str:
    """
    Expand a short follow-up with the previous question and record this turn.

    A question of at most ``short_chars`` characters is prefixed with the
    previous raw question when there is one. The context always stores the
    raw question, not the merged text, so chained short follow-ups each
    attach to the literal turn before them.
    """
    previous = context.last_question
    context.last_question = question

    if previous and len(question) <= short_chars:
        return f"{previous} {question}"
    return question


class SessionStore:
    """
    Conversation contexts keyed by session id.

    Idle sessions expire after ``ttl`` seconds; when ``max_sessions`` is
    reached the least recently used session is dropped.
    """

    def __init__(self, ttl: float = 1800.0, max_sessions: int = 10000, clock=time.monotonic):
        self._ttl = ttl
        self._max_sessions = max(1, max_sessions)
        self._clock = clock
        self._sessions: "OrderedDict[str, ConversationContext]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: Optional[str]) -> ConversationContext:
        """Context for ``session_id``, created on first use.

        No session id means a one-off context that is not stored.
        """
        now = self._clock()
        if not session_id:
            return ConversationContext(created_at=now, last_seen=now)

        with self._lock:
            self._expire(now)
            context = self._sessions.get(session_id)
            if context is None:
                context = ConversationContext(session_id=session_id, created_at=now, last_seen=now)
                self._sessions[session_id] = context
                while len(self._sessions) > self._max_sessions:
                    dropped, _ = self._sessions.popitem(last=False)
                    logger.debug("Dropped session %s (capacity)", dropped)
            else:
                context.last_seen = now
                self._sessions.move_to_end(session_id)
            return context

    def discard(self, session_id: str) -> bool:
        """End a session. Returns False if it did not exist."""
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def _expire(self, now: float) -> None:
        # Sessions are ordered by last use, so stop at the first live one
        while self._sessions:
            session_id, context = next(iter(self._sessions.items()))
            if now - context.last_seen < self._ttl:
                break
            self._sessions.popitem(last=False)
            logger.debug("Expired session %s", session_id)
