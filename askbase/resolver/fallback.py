"""
Fallback and Response Shaping

Every request ends in a Resolution tagged with how it was reached. Fallbacks
share one user-visible message; only the tag tells them apart.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..common.config import DEFAULT_FALLBACK_MESSAGE

QUESTION_REQUIRED = "question is required"
BULLET = "• "

_URL_RE = re.compile(r"https?://([^/\s]+)")


class Via(str, Enum):
    """How an answer was reached"""
    SEMANTIC = "semantic"
    MULTI_MATCH = "multi-match"
    LLM_VALIDATED = "llm-validated"
    SEMANTIC_LLM_UNAVAILABLE = "semantic-llm-unavailable"
    # Fallback reasons
    NO_VECTOR = "no-vector"
    NO_MATCH = "no-match"
    LLM_REJECT = "llm-reject"
    LLM_UNAVAILABLE = "llm-unavailable"
    ERROR = "error"

    @property
    def is_fallback(self) -> bool:
        return self in FALLBACK_REASONS


FALLBACK_REASONS = frozenset({
    Via.NO_VECTOR,
    Via.NO_MATCH,
    Via.LLM_REJECT,
    Via.LLM_UNAVAILABLE,
    Via.ERROR,
})


@dataclass
class Resolution:
    """Outcome of one resolve call"""
    answer: Optional[str] = None
    via: Optional[Via] = None
    intent: Optional[str] = None
    target: Optional[str] = None
    score: Optional[float] = None  # best candidate score, diagnostics only

    @property
    def is_routed(self) -> bool:
        return self.intent is not None

    @property
    def is_fallback(self) -> bool:
        return self.via is not None and self.via.is_fallback

    def to_response(self) -> Dict[str, str]:
        """Public response shape: {intent, target} or {answer, via}."""
        if self.is_routed:
            return {"intent": self.intent, "target": self.target}
        return {"answer": self.answer or "", "via": self.via.value if self.via else Via.ERROR.value}


def fallback(reason: Via, message: str = DEFAULT_FALLBACK_MESSAGE, score: Optional[float] = None) -> Resolution:
    """The canned 'insufficient information' answer, tagged with its cause."""
    if not reason.is_fallback:
        raise ValueError(f"{reason.value} is not a fallback reason")
    return Resolution(answer=message, via=reason, score=score)


def accept(answer: str, via: Via, score: Optional[float] = None) -> Resolution:
    return Resolution(answer=answer, via=via, score=score)


def render_multi_match(candidates, threshold: float) -> str:
    """Bullet every candidate scoring at least ``threshold``, in the given order.

    Entries are separated by a blank line. Returns "" when none qualify.
    """
    lines: List[str] = [
        f"{BULLET}{c.entry.answer}"
        for c in candidates
        if c.score >= threshold
    ]
    return "\n\n".join(lines)


def disclaimer_markers(message: str) -> List[str]:
    """Phrases that identify a reply echoing the fallback message.

    The first sentence of the message plus any host names it links to.
    """
    markers: List[str] = []
    if not message:
        return markers
    first = message.strip().split(".")[0].strip()
    if first:
        markers.append(first)
    markers.extend(_URL_RE.findall(message))
    return markers
