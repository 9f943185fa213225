"""
Intent Router

Non-semantic pre-filter for navigation requests. When a question names a
known panorama or project, the caller navigates to it instead of getting a
knowledge base answer.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

INTENT_PANO = "pano"
INTENT_PROJECT = "project"
INTENT_NONE = "none"

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class RoutedIntent:
    intent: str = INTENT_NONE
    target: Optional[str] = None

    @property
    def is_routed(self) -> bool:
        return self.intent != INTENT_NONE


def _normalize(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", (text or "").lower()).strip()


def _find_name(question: str, names: Iterable[str]) -> Optional[str]:
    """Longest known name occurring in the question on word boundaries."""
    best: Optional[str] = None
    best_len = 0
    for name in names or ():
        if not isinstance(name, str):
            continue
        needle = _normalize(name)
        if not needle:
            continue
        pattern = r"(?<!\w)" + re.escape(needle) + r"(?!\w)"
        if re.search(pattern, question) and len(needle) > best_len:
            best, best_len = name, len(needle)
    return best


def route_intent(
    question: str,
    pano_names: Iterable[str] = (),
    project_names: Iterable[str] = (),
) -> RoutedIntent:
    """
    Route a question to a panorama or project by name.

    Matching is case-insensitive and whitespace-normalized. Panorama names
    are checked before project names; the returned target keeps the caller's
    original spelling.
    """
    normalized = _normalize(question)
    if not normalized:
        return RoutedIntent()

    pano = _find_name(normalized, pano_names)
    if pano is not None:
        return RoutedIntent(intent=INTENT_PANO, target=pano)

    project = _find_name(normalized, project_names)
    if project is not None:
        return RoutedIntent(intent=INTENT_PROJECT, target=project)

    return RoutedIntent()
