"""
Answer Resolution Pipeline

Per request:
    route -> memory merge -> normalize -> embed (cached) -> rank
      -> multi-match (single-token queries)
      -> confidence check -> [LLM arbitration] -> accept | fallback

Any unexpected exception ends in the `error` fallback, so callers always get
a well-formed response.
"""

import logging
from typing import Iterable, List, Optional

from ..common.config import AskbaseConfig, ResolverConfig
from ..common.events import EventSink, NullEventSink
from ..common.knowledge_store import KnowledgeStore
from .arbiter import ConfidenceArbiter, LLMArbiter, decide_after_verdict
from .collaborators import LanguageServices
from .embedding_cache import EmbeddingCache
from .fallback import QUESTION_REQUIRED, Resolution, Via, accept, fallback, render_multi_match
from .intent_router import route_intent
from .matcher import SemanticMatcher, best_two
from .memory import ConversationContext, SessionStore, merge_follow_up
from .normalizer import NormalizationPipeline

logger = logging.getLogger("askbase.resolver.pipeline")


def _as_names(value) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if isinstance(v, str)]


class AnswerResolver:
    """
    Resolves questions against a KnowledgeStore.

    Shared across requests: the knowledge store, the embedding cache and the
    language services. Per request: the ConversationContext passed in.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        services: LanguageServices,
        *,
        settings: Optional[ResolverConfig] = None,
        cache: Optional[EmbeddingCache] = None,
        matcher: Optional[SemanticMatcher] = None,
        sink: Optional[EventSink] = None,
    ):
        self._store = store
        self._services = services
        self._settings = settings or ResolverConfig()
        self._cache = cache or EmbeddingCache(max_size=self._settings.embedding_cache_size)
        self._matcher = matcher or SemanticMatcher()
        self._sink = sink or NullEventSink()
        self._normalizer = NormalizationPipeline(services)
        self._confidence = ConfidenceArbiter(
            min_score=self._settings.min_score,
            gap=self._settings.gap,
        )
        self._llm_arbiter = LLMArbiter(services)

    @classmethod
    def from_config(cls, config: AskbaseConfig, sink: Optional[EventSink] = None) -> "AnswerResolver":
        store = KnowledgeStore(config.knowledge.embeddings_path)
        store.load()
        services = LanguageServices.from_config(config)
        return cls(store, services, settings=config.resolver, sink=sink)

    @property
    def store(self) -> KnowledgeStore:
        return self._store

    @property
    def services(self) -> LanguageServices:
        return self._services

    @property
    def cache(self) -> EmbeddingCache:
        return self._cache

    @property
    def settings(self) -> ResolverConfig:
        return self._settings

    def _fallback(self, reason: Via, score: Optional[float] = None) -> Resolution:
        return fallback(reason, self._settings.fallback_message, score=score)

    async def resolve(
        self,
        question: str,
        context: ConversationContext,
        pano_names: Iterable[str] = (),
        project_names: Iterable[str] = (),
    ) -> Resolution:
        """Resolve one trimmed, non-empty question. Never raises."""
        try:
            resolution = await self._resolve(question, context, pano_names, project_names)
        except Exception as e:
            logger.exception("Answer resolution failed")
            self._sink.emit("pipeline_error", error=type(e).__name__, detail=str(e))
            resolution = self._fallback(Via.ERROR)

        if resolution.is_routed:
            self._sink.emit("resolved", intent=resolution.intent, target=resolution.target)
        else:
            self._sink.emit("resolved", via=resolution.via.value, score=resolution.score)
        return resolution

    async def _resolve(
        self,
        question: str,
        context: ConversationContext,
        pano_names: Iterable[str],
        project_names: Iterable[str],
    ) -> Resolution:
        settings = self._settings
        self._sink.emit("request", question=question, session=context.session_id)

        routed = route_intent(question, pano_names, project_names)
        if routed.is_routed:
            return Resolution(intent=routed.intent, target=routed.target)

        effective = merge_follow_up(question, context, settings.short_utterance_chars)
        if effective != question:
            self._sink.emit("memory_merge", merged=effective)

        normalized = await self._normalizer.normalize(effective)
        self._sink.emit("normalized", text=normalized)
        if not normalized:
            return self._fallback(Via.NO_VECTOR)

        cached = normalized in self._cache
        vector = await self._cache.get_or_compute(normalized, self._services.embed_text)
        self._sink.emit("embedding_cache", hit=cached, dim=len(vector))
        if not vector:
            return self._fallback(Via.NO_VECTOR)

        candidates = self._matcher.rank(vector, self._store.snapshot, normalized, settings.top_k)
        best, second = best_two(candidates)
        self._sink.emit(
            "ranked",
            count=len(candidates),
            best=best.score if best else None,
            second=second.score if second else None,
        )
        if best is None:
            return self._fallback(Via.NO_MATCH)

        if len(normalized.split()) == 1:
            listing = render_multi_match(candidates, settings.multi_match_score)
            if listing.strip():
                return accept(listing, Via.MULTI_MATCH, score=best.score)

        assessment = self._confidence.assess(best, second)
        if not assessment.escalate:
            return accept(best.answer, Via.SEMANTIC, score=best.score)

        verdict = await self._llm_arbiter.meaning_match(normalized, best.question)
        self._sink.emit(
            "arbitration",
            verdict=verdict.value,
            low=assessment.low,
            ambiguous=assessment.ambiguous,
        )
        return decide_after_verdict(
            verdict,
            assessment,
            best,
            trust_score=settings.trust_score,
            fallback_message=settings.fallback_message,
        )

    async def handle_chat(self, payload, sessions: Optional[SessionStore] = None) -> dict:
        """
        Public entry point: request dict in, response dict out.

        Request: {question, panoNames?, projectNames?, sessionId?}
        Response: {intent, target} | {answer, via} | {answer: "question is required"}
        """
        try:
            if not isinstance(payload, dict):
                payload = {}

            question = payload.get("question")
            if not isinstance(question, str) or not question.strip():
                return {"answer": QUESTION_REQUIRED}
            question = question.strip()

            session_id = payload.get("sessionId")
            if not isinstance(session_id, str):
                session_id = None
            if sessions is not None:
                context = sessions.get(session_id)
            else:
                context = ConversationContext()

            resolution = await self.resolve(
                question,
                context,
                _as_names(payload.get("panoNames")),
                _as_names(payload.get("projectNames")),
            )
            return resolution.to_response()
        except Exception:
            logger.exception("Chat handling failed")
            return self._fallback(Via.ERROR).to_response()
