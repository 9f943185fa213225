"""
Askbase Server

FastAPI server answering questions from the knowledge base.

Endpoints:
- POST /chat: Resolve a question (or route a navigation intent)
- GET /health: Health check
- POST /admin/reload: Reload the knowledge base from disk
- DELETE /sessions/{session_id}: End a conversation

Pipeline:
1. Validate request
2. Look up the caller's conversation context
3. Resolve via AnswerResolver (never raises)
4. Return {answer, via} or {intent, target}
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from dotenv import load_dotenv
from fastapi import Body, FastAPI, HTTPException
from pydantic import BaseModel

from ..common.config import AskbaseConfig, load_config
from ..common.events import LoggingEventSink
from ..resolver.memory import SessionStore
from ..resolver.pipeline import AnswerResolver

logger = logging.getLogger("askbase.server")


# Global state
config: Optional[AskbaseConfig] = None
resolver: Optional[AnswerResolver] = None
sessions: Optional[SessionStore] = None


def configure(new_resolver: AnswerResolver, new_sessions: Optional[SessionStore] = None) -> None:
    """Install a resolver (and session store) without going through startup."""
    global resolver, sessions
    resolver = new_resolver
    sessions = new_sessions or SessionStore(
        ttl=new_resolver.settings.session_ttl,
        max_sessions=new_resolver.settings.max_sessions,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    global config

    if resolver is not None:
        # Already configured (tests, embedding in another app)
        yield
        return

    load_dotenv()
    config = load_config()
    if config.server.debug:
        logging.getLogger("askbase").setLevel(logging.DEBUG)

    logger.info("Starting up (llm=%s, embedding=%s)", config.llm.provider, config.embedding.mode)

    configure(AnswerResolver.from_config(config, sink=LoggingEventSink(verbose=config.server.debug)))
    logger.info(
        "Ready: %d knowledge entries from %s (llm available: %s, embeddings available: %s)",
        len(resolver.store),
        config.knowledge.embeddings_path,
        resolver.services.llm_available,
        resolver.services.embedding_available,
    )

    yield

    logger.info("Shutting down...")


app = FastAPI(
    title="Askbase",
    description="Knowledge base question answering with confidence-gated fallback",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# Request Models
# =============================================================================

class ChatRequest(BaseModel):
    """Chat request. Fields are loose on purpose: validation happens in the resolver."""
    question: Any = None
    panoNames: Any = None
    projectNames: Any = None
    sessionId: Any = None


# =============================================================================
# Endpoints
# =============================================================================

def _require_resolver() -> AnswerResolver:
    if resolver is None:
        raise HTTPException(status_code=503, detail="Resolver not initialized")
    return resolver


@app.post("/chat")
async def chat(request: Optional[ChatRequest] = Body(default=None)):
    """Resolve a question against the knowledge base"""
    current = _require_resolver()
    payload = request.model_dump() if request is not None else {}
    return await current.handle_chat(payload, sessions)


@app.get("/health")
async def health():
    """Health check endpoint"""
    current = resolver
    return {
        "status": "healthy" if current is not None else "starting",
        "service": "askbase",
        "initialized": current is not None,
        "knowledge_entries": len(current.store) if current else 0,
        "embedding_cache": current.cache.stats() if current else None,
        "llm_available": current.services.llm_available if current else False,
        "embedding_available": current.services.embedding_available if current else False,
        "active_sessions": len(sessions) if sessions is not None else 0,
    }


@app.post("/admin/reload")
async def reload_knowledge():
    """Re-read the knowledge base file and swap it in"""
    current = _require_resolver()
    count = current.store.reload()
    logger.info("Reloaded %d knowledge entries", count)
    return {"status": "reloaded", "knowledge_entries": count}


@app.delete("/sessions/{session_id}")
async def end_session(session_id: str):
    """Forget a conversation's follow-up memory"""
    _require_resolver()
    if sessions is None or not sessions.discard(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "ended", "session_id": session_id}


# =============================================================================
# CLI Entry Point
# =============================================================================

def run_server():
    """Run the Askbase server"""
    import uvicorn

    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    server_config = load_config().server

    logger.info("Starting server on %s:%d", server_config.host, server_config.port)
    uvicorn.run(
        "askbase.server.app:app",
        host=server_config.host,
        port=server_config.port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
