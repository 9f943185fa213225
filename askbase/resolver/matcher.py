"""
Semantic Matcher

Ranks knowledge entries against a query vector.

Score = cosine similarity + lexical boost, clamped to [0, 1]:
- exact question match (case/punctuation-insensitive): +EXACT_BOOST
- otherwise: +OVERLAP_BOOST * share of query tokens found in the question

Scores are only comparable within one rank() call.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..common.embedding_service import batch_cosine_similarity
from ..common.knowledge_store import KnowledgeEntry, KnowledgeSnapshot, build_snapshot

EXACT_BOOST = 0.15
OVERLAP_BOOST = 0.05

_TOKEN_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class MatchCandidate:
    """A knowledge entry scored for one request"""
    entry: KnowledgeEntry
    score: float

    @property
    def question(self) -> str:
        return self.entry.question

    @property
    def answer(self) -> str:
        return self.entry.answer


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall((text or "").lower())


def lexical_boost(query_text: str, question: str) -> float:
    """Boost for textual overlap between the normalized query and a stored question."""
    query_tokens = tokenize(query_text)
    if not query_tokens:
        return 0.0

    question_tokens = tokenize(question)
    if query_tokens == question_tokens:
        return EXACT_BOOST

    question_set = frozenset(question_tokens)
    query_set = frozenset(query_tokens)
    overlap = len(query_set & question_set) / len(query_set)
    return OVERLAP_BOOST * overlap


class SemanticMatcher:
    """Scores every entry and returns the top k, best first."""

    def rank(
        self,
        query_vector: Sequence[float],
        entries,
        normalized_text: str,
        k: int = 5,
    ) -> List[MatchCandidate]:
        """
        Rank entries against the query.

        Args:
            query_vector: Embedding of the normalized query
            entries: KnowledgeSnapshot, or any sequence of KnowledgeEntry
            normalized_text: Normalized query text for lexical boosts
            k: Maximum number of candidates

        Returns:
            Up to k candidates by descending score. Equal scores keep the
            knowledge base order.
        """
        snapshot = self._as_snapshot(entries)
        if k <= 0 or len(snapshot) == 0 or len(query_vector) == 0:
            return []

        similarities = batch_cosine_similarity(query_vector, snapshot.matrix)
        boosts = np.array(
            [lexical_boost(normalized_text, e.question) for e in snapshot.entries],
            dtype=float,
        )
        scores = np.clip(similarities + boosts, 0.0, 1.0)

        # Stable sort on negated scores keeps knowledge base order for ties
        order = np.argsort(-scores, kind="stable")[:k]
        return [
            MatchCandidate(entry=snapshot.entries[i], score=float(scores[i]))
            for i in order
        ]

    @staticmethod
    def _as_snapshot(entries) -> KnowledgeSnapshot:
        if isinstance(entries, KnowledgeSnapshot):
            return entries
        entries = list(entries or [])
        if not entries:
            return build_snapshot([])
        dims = {len(e.embedding) for e in entries}
        if len(dims) > 1:
            # Ragged input: align to the first entry, others score 0 on vectors
            width = len(entries[0].embedding)
            matrix = np.array(
                [e.embedding if len(e.embedding) == width else (0.0,) * width for e in entries],
                dtype=float,
            )
            return KnowledgeSnapshot(entries=tuple(entries), matrix=matrix)
        return build_snapshot(entries)


def best_two(candidates: Sequence[MatchCandidate]):
    """(best, second) from a ranked list; either may be None."""
    best: Optional[MatchCandidate] = candidates[0] if len(candidates) > 0 else None
    second: Optional[MatchCandidate] = candidates[1] if len(candidates) > 1 else None
    return best, second
