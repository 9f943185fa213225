"""
Normalization Pipeline

Spelling correction, then meaning normalization. Each stage feeds the next;
a failed or empty stage passes its input through unchanged.
"""

import re

_WHITESPACE_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


class NormalizationPipeline:
    """Produces the canonical query text used as cache key and matcher input."""

    def __init__(self, services):
        """
        Args:
            services: Object exposing async ``correct_spelling`` and
                ``normalize_to_meaning`` (see LanguageServices)
        """
        self._services = services

    async def normalize(self, text: str) -> str:
        text = collapse_whitespace(text)

        corrected = collapse_whitespace(await self._services.correct_spelling(text)) or text
        normalized = collapse_whitespace(await self._services.normalize_to_meaning(corrected)) or corrected
        return normalized
