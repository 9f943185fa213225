"""
Askbase

Answers free-form questions from a fixed knowledge base of pre-embedded
question/answer pairs, or falls back deliberately when confidence is low.

Philosophy:
- Only stored answers are ever returned (no open-domain generation)
- Score thresholds decide first, the LLM only breaks ties
- Every failure resolves to a tagged answer, never to a raw error

Usage:
    from askbase.common import load_config, KnowledgeStore
    from askbase.resolver import AnswerResolver, SessionStore
    from askbase.server.app import app
"""

__version__ = "0.1.0"
