"""Retrieval assembly: query embedding, similarity search and context building."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np

from .config import config
from .models import RetrievedPassage, SearchHit
from .prompts import NO_CONTEXT_SENTINEL, fit_context, join_passages

logger = config.get_logger(__name__)


class Embedder(Protocol):
    async def embed(self, text: str) -> np.ndarray: ...


class PassageIndex(Protocol):
    def search(
        self,
        vector: np.ndarray,
        top_k: int = 5,
        *,
        include_similarity: bool = True,
    ) -> list[SearchHit]: ...


@dataclass
class RetrievalResult:
    """Context handed to the prompt builder for one query."""

    context: str = NO_CONTEXT_SENTINEL
    passages: list[RetrievedPassage] = field(default_factory=list)


class RetrievalAssembler:
    """Embeds the question, searches the store and builds a bounded context."""

    def __init__(
        self,
        embedding_service: Embedder,
        vector_store: PassageIndex,
        top_k: int | None = None,
        min_similarity: float | None = None,
        max_context_chars: int | None = None,
    ) -> None:
        """Initialize the assembler with process-wide gateway handles.

        Args:
            embedding_service: Embedding gateway.
            vector_store: Similarity search gateway.
            top_k: Hits requested from the store. If None, uses
                config.RETRIEVAL_TOP_K.
            min_similarity: Exclusive similarity floor. If None, uses
                config.RETRIEVAL_MIN_SIMILARITY.
            max_context_chars: Context size limit, 0 for none. If None, uses
                config.PROMPT_MAX_CONTEXT_CHARS.
        """
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.top_k = config.RETRIEVAL_TOP_K if top_k is None else top_k
        self.min_similarity = (
            config.RETRIEVAL_MIN_SIMILARITY if min_similarity is None else min_similarity
        )
        self.max_context_chars = (
            config.PROMPT_MAX_CONTEXT_CHARS
            if max_context_chars is None
            else max_context_chars
        )

    def filter_passages(self, hits: Sequence[SearchHit]) -> list[RetrievedPassage]:
        """Keep hits above the similarity floor, best first, ranked from 1.

        Returns:
            list[RetrievedPassage]: Ranked passages.
        """
        relevant = [
            hit
            for hit in hits
            if hit.similarity is not None and hit.similarity > self.min_similarity
        ]
        relevant.sort(key=lambda hit: hit.similarity, reverse=True)
        return [
            RetrievedPassage(
                content=hit.text,
                similarity=float(hit.similarity),
                rank=rank,
                source_url=hit.source_url,
            )
            for rank, hit in enumerate(relevant, start=1)
        ]

    async def assemble(self, query: str, user: str | None = None) -> RetrievalResult:
        """Retrieve context for ``query``.

        Retrieval failures never propagate: they are logged and the result
        degrades to the no-documents sentinel with no passages.

        Returns:
            RetrievalResult: Joined context and the passages it was built from.
        """
        user = user or config.DEFAULT_USER
        logger.info("Processing query for user %s", user)

        try:
            embedding = await self.embedding_service.embed(query)
            hits = await asyncio.to_thread(
                self.vector_store.search,
                embedding,
                self.top_k,
                include_similarity=True,
            )
        except Exception:
            logger.exception("Search error for user %s", user)
            return RetrievalResult()

        passages = fit_context(self.filter_passages(hits), self.max_context_chars)
        logger.info("Found %d relevant documents for user %s", len(passages), user)
        return RetrievalResult(context=join_passages(passages), passages=passages)
