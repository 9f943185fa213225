"""
Language Services

The external calls the resolver depends on: spelling correction, meaning
normalization, embedding, and open-ended completion.

Every call:
- runs in a worker thread under an explicit timeout
- is retried with exponential backoff on transient errors (timeouts,
  connection failures, rate limiting, 5xx)
- degrades to a defined value instead of raising

Degraded values:
    correct_spelling / normalize_to_meaning -> input text unchanged
    embed_text                              -> [] (no vector)
    answer_general_question                 -> GeneralAnswer with a non-OK status
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ..common.config import AskbaseConfig
from ..common.embedding_service import EmbeddingService
from ..common.llm_client import LLMClient
from ..common.llm_utils import looks_like_disclaimer, strip_code_fences
from .fallback import disclaimer_markers

logger = logging.getLogger("askbase.resolver.collaborators")


SPELLING_PROMPT = """Fix the spelling mistakes in the text below.
Keep the wording, word order and meaning. Do not answer it.
Reply with the corrected text only.

Text: {text}"""

NORMALIZE_PROMPT = """Rewrite the question below as a short, plain English question a school
office would recognise. Keep every concrete detail (class, fee type, timing,
place). Do not answer it and do not add new information.
Reply with the rewritten question only.

Question: {text}"""


# SDK exception class names that indicate a retryable condition, matched by
# name across provider SDKs.
TRANSIENT_ERROR_NAMES = frozenset({
    "APIConnectionError",
    "APITimeoutError",
    "RateLimitError",
    "InternalServerError",
    "ServiceUnavailable",
    "ResourceExhausted",
    "DeadlineExceeded",
    "TooManyRequests",
    "ConnectError",
    "ReadTimeout",
    "ConnectTimeout",
})


def is_transient_error(err: BaseException) -> bool:
    """Whether a failed external call is worth another attempt."""
    if isinstance(err, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    for cls in type(err).__mro__:
        if cls.__name__ in TRANSIENT_ERROR_NAMES:
            return True
    status = getattr(err, "status_code", None)
    if isinstance(status, int) and (status == 429 or status >= 500):
        return True
    return False


class AnswerStatus(str, Enum):
    """Structured outcome of an open-ended completion"""
    OK = "ok"
    FAILED = "failed"            # transport error or retries exhausted
    UNAVAILABLE = "unavailable"  # no LLM configured
    DEGRADED = "degraded"        # reply echoed the fallback disclaimer


@dataclass(frozen=True)
class GeneralAnswer:
    status: AnswerStatus
    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == AnswerStatus.OK


def _clean_rewrite(raw: str) -> str:
    """First non-empty line of a rewrite reply, without fences, quotes or labels."""
    text = strip_code_fences(raw or "")
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        for label in ("text:", "question:", "corrected:"):
            if line.lower().startswith(label):
                line = line[len(label):].strip()
        return line.strip("\"'`").strip()
    return ""


class LanguageServices:
    """
    Async facade over the LLM and embedding backends.

    Calls are sequential per request; concurrent requests each get their own
    worker thread per call.
    """

    def __init__(
        self,
        llm: LLMClient,
        embedder: EmbeddingService,
        *,
        timeout: float = 15.0,
        max_retries: int = 2,
        initial_delay: float = 0.5,
        disclaimer_markers: Sequence[str] = (),
    ):
        self._llm = llm
        self._embedder = embedder
        self._timeout = timeout
        self._max_retries = max(0, max_retries)
        self._initial_delay = initial_delay
        self._markers = tuple(disclaimer_markers)

    @classmethod
    def from_config(cls, config: AskbaseConfig) -> "LanguageServices":
        llm = LLMClient.from_config(config.llm)
        embedder = EmbeddingService.from_config(
            config.embedding,
            google_api_key=config.llm.google_api_key or None,
        )
        return cls(
            llm,
            embedder,
            timeout=config.resolver.call_timeout,
            max_retries=config.resolver.max_retries,
            initial_delay=config.resolver.retry_initial_delay,
            disclaimer_markers=disclaimer_markers(config.resolver.fallback_message),
        )

    @property
    def llm_available(self) -> bool:
        return self._llm.is_available

    @property
    def embedding_available(self) -> bool:
        return self._embedder.is_available

    async def _call(self, label: str, fn: Callable, *args, **kwargs):
        """Run a blocking call with timeout and bounded retry.

        Non-transient errors are raised immediately; transient ones are
        raised after the last attempt.
        """
        last_error: Optional[BaseException] = None
        for attempt in range(self._max_retries + 1):
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(fn, *args, **kwargs),
                    timeout=self._timeout,
                )
            except Exception as e:
                if not is_transient_error(e):
                    raise
                last_error = e
                if attempt < self._max_retries:
                    delay = self._initial_delay * (2 ** attempt)
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.2fs",
                        label, attempt + 1, self._max_retries + 1,
                        type(e).__name__, delay,
                    )
                    await asyncio.sleep(delay)

        raise last_error

    async def _rewrite(self, label: str, template: str, text: str) -> str:
        if not text or not text.strip() or not self._llm.is_available:
            return text
        try:
            raw = await self._call(
                label,
                self._llm.generate,
                template.format(text=text),
                max_tokens=128,
                timeout=self._timeout,
            )
        except Exception as e:
            logger.warning("%s failed, keeping input: %s", label, e)
            return text

        rewritten = _clean_rewrite(raw)
        if not rewritten:
            return text
        if looks_like_disclaimer(rewritten, self._markers):
            logger.warning("%s returned the fallback disclaimer, keeping input", label)
            return text
        return rewritten

    async def correct_spelling(self, text: str) -> str:
        return await self._rewrite("spelling", SPELLING_PROMPT, text)

    async def normalize_to_meaning(self, text: str) -> str:
        return await self._rewrite("normalize", NORMALIZE_PROMPT, text)

    async def embed_text(self, text: str) -> List[float]:
        """Embed text, or return [] when no vector can be produced."""
        if not text or not text.strip() or not self._embedder.is_available:
            return []
        try:
            vector = await self._call("embed", self._embedder.embed_single, text)
        except Exception as e:
            logger.warning("Embedding failed: %s", e)
            return []
        return list(vector or [])

    async def answer_general_question(self, prompt: str) -> GeneralAnswer:
        if not self._llm.is_available:
            return GeneralAnswer(status=AnswerStatus.UNAVAILABLE)
        try:
            raw = await self._call(
                "completion",
                self._llm.generate,
                prompt,
                max_tokens=16,
                timeout=self._timeout,
            )
        except Exception as e:
            logger.warning("Completion failed: %s", e)
            return GeneralAnswer(status=AnswerStatus.FAILED, error=f"{type(e).__name__}: {e}")

        text = (raw or "").strip()
        if looks_like_disclaimer(text, self._markers):
            return GeneralAnswer(status=AnswerStatus.DEGRADED, text=text)
        return GeneralAnswer(status=AnswerStatus.OK, text=text)
