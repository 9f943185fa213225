"""
Resolver - Knowledge Base Answer Resolution

Decides which stored answer, if any, satisfies a free-form question.

Key Components:
- LanguageServices: spelling, normalization, embedding and completion calls
- EmbeddingCache: bounded memo of query embeddings
- SessionStore / merge_follow_up: per-conversation follow-up memory
- SemanticMatcher: vector + lexical ranking of knowledge entries
- ConfidenceArbiter / LLMArbiter: accept, escalate, or fall back
- AnswerResolver: the end-to-end pipeline

Pipeline:
1. Route navigation intents (panorama / project names)
2. Merge short follow-ups with the previous question
3. Spell-correct and normalize
4. Embed (cached) and rank
5. Multi-match listing for single-word queries
6. Score checks, LLM tie-breaking when needed
"""

from .arbiter import ConfidenceArbiter, LLMArbiter, MeaningVerdict
from .collaborators import AnswerStatus, GeneralAnswer, LanguageServices
from .embedding_cache import EmbeddingCache
from .fallback import Resolution, Via
from .intent_router import RoutedIntent, route_intent
from .matcher import MatchCandidate, SemanticMatcher
from .memory import ConversationContext, SessionStore, merge_follow_up
from .normalizer import NormalizationPipeline
from .pipeline import AnswerResolver

__all__ = [
    "AnswerResolver",
    "AnswerStatus",
    "ConfidenceArbiter",
    "ConversationContext",
    "EmbeddingCache",
    "GeneralAnswer",
    "LanguageServices",
    "LLMArbiter",
    "MatchCandidate",
    "MeaningVerdict",
    "NormalizationPipeline",
    "Resolution",
    "RoutedIntent",
    "SemanticMatcher",
    "SessionStore",
    "Via",
    "merge_follow_up",
    "route_intent",
]
