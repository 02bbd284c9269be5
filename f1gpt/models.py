"""Data models for the retrieval pipeline."""

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass
class DocumentChunk:
    """Represents a chunk of text scraped from a source page."""

    content: str
    metadata: dict[str, Any]
    embedding: np.ndarray | None = None


@dataclass(frozen=True)
class SearchHit:
    """A stored passage returned by the vector store."""

    text: str
    similarity: float | None
    source_url: str = ""


@dataclass(frozen=True)
class RetrievedPassage:
    """A passage that survived similarity filtering for one query."""

    content: str
    similarity: float
    rank: int
    source_url: str = ""
