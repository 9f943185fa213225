"""
Knowledge Store

Holds the pre-embedded question/answer pairs the resolver answers from.
The JSON file is produced offline; this module only reads it.

File format (JSON array):
    [{"question": "...", "answer": "...", "embedding": [0.01, ...]}, ...]
"""

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger("askbase.common.knowledge_store")


@dataclass(frozen=True)
class KnowledgeEntry:
    """A single stored question/answer pair with its embedding"""
    question: str
    answer: str
    embedding: Tuple[float, ...]


@dataclass(frozen=True)
class KnowledgeSnapshot:
    """Immutable view of the loaded entries and their embedding matrix"""
    entries: Tuple[KnowledgeEntry, ...]
    matrix: np.ndarray
    source: Optional[str] = None

    def __len__(self) -> int:
        return len(self.entries)


EMPTY_SNAPSHOT = KnowledgeSnapshot(entries=(), matrix=np.zeros((0, 0)))


def _parse_entry(raw, index: int) -> Optional[KnowledgeEntry]:
    if not isinstance(raw, dict):
        logger.warning("Skipping entry %d: not an object", index)
        return None

    question = raw.get("question")
    answer = raw.get("answer")
    embedding = raw.get("embedding")

    if not isinstance(question, str) or not isinstance(answer, str):
        logger.warning("Skipping entry %d: question/answer missing", index)
        return None
    if not isinstance(embedding, list) or not embedding:
        logger.warning("Skipping entry %d: embedding missing or empty", index)
        return None

    try:
        vector = tuple(float(x) for x in embedding)
    except (TypeError, ValueError):
        logger.warning("Skipping entry %d: embedding is not numeric", index)
        return None

    return KnowledgeEntry(question=question, answer=answer, embedding=vector)


def load_entries(path: Union[str, Path]) -> List[KnowledgeEntry]:
    """
    Read knowledge entries from a JSON file.

    Args:
        path: Path to the embeddings file

    Returns:
        Entries in file order. Missing or unreadable files yield an empty
        list (logged, never raised). Rows whose embedding dimension differs
        from the first valid row are skipped.
    """
    path = Path(path)

    if not path.exists():
        logger.warning("Embeddings file missing: %s", path)
        return []

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
        logger.error("Error loading embeddings from %s: %s", path, e)
        return []

    if not isinstance(data, list):
        logger.error("Embeddings file %s must contain a JSON array", path)
        return []

    entries: List[KnowledgeEntry] = []
    dimension: Optional[int] = None
    for i, raw in enumerate(data):
        entry = _parse_entry(raw, i)
        if entry is None:
            continue
        if dimension is None:
            dimension = len(entry.embedding)
        elif len(entry.embedding) != dimension:
            logger.warning(
                "Skipping entry %d: embedding dimension %d != %d",
                i, len(entry.embedding), dimension,
            )
            continue
        entries.append(entry)

    logger.info("Loaded %d embeddings from %s", len(entries), path)
    return entries


def build_snapshot(entries: Sequence[KnowledgeEntry], source: Optional[str] = None) -> KnowledgeSnapshot:
    """Freeze entries together with a float matrix for batch similarity."""
    if not entries:
        return KnowledgeSnapshot(entries=(), matrix=np.zeros((0, 0)), source=source)
    matrix = np.array([e.embedding for e in entries], dtype=float)
    matrix.setflags(write=False)
    return KnowledgeSnapshot(entries=tuple(entries), matrix=matrix, source=source)


class KnowledgeStore:
    """
    Process-lifetime store of knowledge entries.

    The current snapshot is replaced as a whole on reload and never mutated,
    so a request that grabbed ``snapshot`` keeps a consistent view even if a
    reload happens mid-request.
    """

    def __init__(self, path: Union[str, Path, None] = None):
        self._path = Path(path) if path else None
        self._snapshot: KnowledgeSnapshot = EMPTY_SNAPSHOT
        self._loaded = False
        self._lock = threading.Lock()

    @classmethod
    def from_entries(cls, entries: Sequence[KnowledgeEntry]) -> "KnowledgeStore":
        """Build an already-loaded store from in-memory entries."""
        store = cls()
        store._snapshot = build_snapshot(entries)
        store._loaded = True
        return store

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def snapshot(self) -> KnowledgeSnapshot:
        return self._snapshot

    @property
    def entries(self) -> Tuple[KnowledgeEntry, ...]:
        return self._snapshot.entries

    def __len__(self) -> int:
        return len(self._snapshot)

    def load(self) -> int:
        """Load entries once; later calls are no-ops while entries exist.

        An empty result (missing file) is retried on the next call, so a file
        that appears after startup is still picked up.
        """
        if self._loaded and len(self._snapshot) > 0:
            return len(self._snapshot)
        return self.reload()

    def reload(self) -> int:
        """Re-read the backing file and swap in a new snapshot atomically."""
        if self._path is None:
            self._loaded = True
            return len(self._snapshot)

        entries = load_entries(self._path)
        snapshot = build_snapshot(entries, source=str(self._path))
        with self._lock:
            self._snapshot = snapshot
            self._loaded = True
        return len(snapshot)
