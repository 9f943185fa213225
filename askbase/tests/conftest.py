"""
Shared fakes for resolver tests.

FakeServices stands in for LanguageServices: every external call is recorded
and answered from dictionaries configured per test.
"""

from typing import Dict, List, Optional

import pytest

from askbase.common.knowledge_store import KnowledgeEntry, KnowledgeStore
from askbase.resolver.collaborators import AnswerStatus, GeneralAnswer
from askbase.resolver.matcher import MatchCandidate


class FakeServices:
    """Records calls; answers spelling/normalize/embed/completion from config."""

    def __init__(
        self,
        spelling: Optional[Dict[str, str]] = None,
        normalized: Optional[Dict[str, str]] = None,
        vectors: Optional[Dict[str, List[float]]] = None,
        default_vector: Optional[List[float]] = None,
        reply: Optional[GeneralAnswer] = None,
    ):
        self.spelling = spelling or {}
        self.normalized = normalized or {}
        self.vectors = vectors or {}
        self.default_vector = default_vector if default_vector is not None else [1.0, 0.0, 0.0]
        self.reply = reply or GeneralAnswer(status=AnswerStatus.OK, text="yes")
        self.spell_calls: List[str] = []
        self.normalize_calls: List[str] = []
        self.embed_calls: List[str] = []
        self.llm_calls: List[str] = []
        self.llm_available = True
        self.embedding_available = True

    async def correct_spelling(self, text: str) -> str:
        self.spell_calls.append(text)
        return self.spelling.get(text, text)

    async def normalize_to_meaning(self, text: str) -> str:
        self.normalize_calls.append(text)
        return self.normalized.get(text, text)

    async def embed_text(self, text: str) -> List[float]:
        self.embed_calls.append(text)
        return list(self.vectors.get(text, self.default_vector))

    async def answer_general_question(self, prompt: str) -> GeneralAnswer:
        self.llm_calls.append(prompt)
        return self.reply


class StubMatcher:
    """Returns a fixed candidate list regardless of input."""

    def __init__(self, candidates: List[MatchCandidate]):
        self.candidates = candidates
        self.calls = []

    def rank(self, query_vector, entries, normalized_text, k=5):
        self.calls.append((list(query_vector), normalized_text, k))
        return self.candidates[:k]


def make_entry(question: str, answer: str, embedding=(1.0, 0.0, 0.0)) -> KnowledgeEntry:
    return KnowledgeEntry(question=question, answer=answer, embedding=tuple(embedding))


def make_candidate(answer: str, score: float, question: Optional[str] = None) -> MatchCandidate:
    return MatchCandidate(entry=make_entry(question or f"Q: {answer}", answer), score=score)


@pytest.fixture
def school_entries() -> List[KnowledgeEntry]:
    return [
        make_entry("What are the school fees?", "Tuition is 40,000 per year.", (1.0, 0.0, 0.0)),
        make_entry("What are the hostel fees?", "Hostel fees are 25,000 per term.", (0.8, 0.6, 0.0)),
        make_entry("What is the school timing?", "Classes run 8:30 to 3:30.", (0.0, 0.0, 1.0)),
    ]


@pytest.fixture
def school_store(school_entries) -> KnowledgeStore:
    return KnowledgeStore.from_entries(school_entries)


@pytest.fixture
def fake_services() -> FakeServices:
    return FakeServices()
