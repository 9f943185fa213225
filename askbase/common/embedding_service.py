"""
Embedding Service

Turns query text into vectors comparable with the knowledge base.

Two backends:
- google: Gemini embedding API (google-generativeai). The stored knowledge
  base is embedded with this model, so it is the default.
- femb: on-device fastembed model, for knowledge bases built locally.
"""

import logging
from typing import List, Optional

import numpy as np

from .config import EmbeddingConfig

logger = logging.getLogger("askbase.common.embedding_service")


class EmbeddingService:
    """Embeds text with the configured backend and scores vector similarity."""

    def __init__(
        self,
        mode: str = "google",
        model: str = "models/text-embedding-004",
        google_api_key: Optional[str] = None,
    ):
        self._mode = (mode or "google").lower()
        self._model = model
        self._backend = None

        if self._mode == "google":
            if not google_api_key:
                logger.info("Google API key not provided, embedding service unavailable")
                return
            try:
                import google.generativeai as genai

                genai.configure(api_key=google_api_key)
                self._backend = genai
            except ImportError:
                logger.warning("google-generativeai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Gemini embeddings: %s", e)
            return

        if self._mode == "femb":
            try:
                from fastembed import TextEmbedding

                self._backend = TextEmbedding(model_name=model)
                logger.info("Initialized fastembed model %s", model)
            except ImportError:
                logger.warning("fastembed package not installed")
            except Exception as e:
                logger.warning("Failed to initialize fastembed model %s: %s", model, e)
            return

        logger.warning("Unsupported embedding mode: %s", self._mode)

    @classmethod
    def from_config(cls, config: EmbeddingConfig, google_api_key: Optional[str] = None) -> "EmbeddingService":
        return cls(mode=config.mode, model=config.model, google_api_key=google_api_key)

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def is_available(self) -> bool:
        """Check if embedding service is available"""
        return self._backend is not None

    def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: List of strings to embed

        Returns:
            List of embedding vectors, one per input text
        """
        if not self.is_available:
            raise RuntimeError("Embedding backend not initialized")

        if not texts:
            return []

        if self._mode == "google":
            result = self._backend.embed_content(
                model=self._model,
                content=texts,
                task_type="retrieval_query",
            )
            embeddings = result["embedding"]
            # A single string comes back as one flat vector
            if embeddings and not isinstance(embeddings[0], (list, tuple)):
                embeddings = [embeddings]
            return [list(map(float, e)) for e in embeddings]

        embeddings = list(self._backend.embed(texts))
        return [np.asarray(e, dtype=float).tolist() for e in embeddings]

    def embed_single(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: String to embed

        Returns:
            Embedding vector
        """
        if not text:
            raise ValueError("Cannot embed empty text")

        embeddings = self.embed([text])
        return embeddings[0] if embeddings else []


def batch_cosine_similarity(query_vec, matrix: np.ndarray) -> np.ndarray:
    """
    Cosine similarity between a query and every row of a matrix.

    Args:
        query_vec: Query embedding vector
        matrix: 2-D array, one stored embedding per row

    Returns:
        1-D array of similarities (zero-norm rows score 0.0)
    """
    query = np.asarray(query_vec, dtype=float)
    if matrix.size == 0 or query.size == 0 or matrix.shape[1] != query.shape[0]:
        return np.zeros(matrix.shape[0] if matrix.ndim == 2 else 0)

    query_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    denom = row_norms * query_norm

    dots = matrix @ query
    with np.errstate(divide="ignore", invalid="ignore"):
        similarities = np.where(denom > 0, dots / denom, 0.0)
    return similarities
