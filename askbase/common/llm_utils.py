"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

from typing import Iterable, Optional


def strip_code_fences(raw: str) -> str:
    """Remove markdown code fence lines (```json ... ```) from a reply."""
    if not raw:
        return ""
    text = raw.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        text = "\n".join(lines).strip()
    return text


def parse_yes_no(raw: Optional[str]) -> Optional[str]:
    """Map a model reply to "yes", "no" or None.

    Only an exact answer counts after trimming and lowercasing. Punctuation,
    quotes, fences or extra words ("Yes.", "yes, they match") give None.
    """
    if not raw:
        return None

    text = raw.strip().lower()
    if text in ("yes", "no"):
        return text
    return None


def looks_like_disclaimer(text: Optional[str], markers: Iterable[str]) -> bool:
    """Check whether a reply echoes the canned fallback disclaimer.

    Some models answer rate-limited or confusing prompts by repeating the
    system's own "I don't have that information" text. Such a reply carries
    no signal about the question that was asked.
    """
    if not text:
        return False

    normalized = text.strip().lower().replace("’", "'")
    for marker in markers:
        marker = (marker or "").strip().lower().replace("’", "'")
        if not marker:
            continue
        if normalized.startswith(marker) or marker in normalized:
            return True
    return False
