"""
Askbase Common Module

Shared infrastructure for the resolver and the HTTP server.
"""

from .config import AskbaseConfig, load_config
from .embedding_service import EmbeddingService
from .events import EventSink, LoggingEventSink, NullEventSink, RecordingEventSink
from .knowledge_store import KnowledgeEntry, KnowledgeStore
from .llm_client import LLMClient

__all__ = [
    "AskbaseConfig",
    "load_config",
    "EmbeddingService",
    "EventSink",
    "LoggingEventSink",
    "NullEventSink",
    "RecordingEventSink",
    "KnowledgeEntry",
    "KnowledgeStore",
    "LLMClient",
]
