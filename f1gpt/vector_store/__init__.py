"""Vector store adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

from f1gpt.config import config

from .faiss_store import FaissVectorStore

if TYPE_CHECKING:
    from pathlib import Path


def get_vector_store(
    *,
    db_path: Path | None = None,
    index_path: Path | None = None,
    dimension: int | None = None,
) -> FaissVectorStore:
    """Return the configured collection's vector store, loaded from disk."""  # noqa: DOC201
    store = FaissVectorStore(
        db_path=db_path if db_path is not None else config.vector_db_path(),
        index_path=index_path if index_path is not None else config.vector_index_path(),
        dimension=dimension if dimension is not None else config.EMBEDDING_DIMENSION,
    )
    store.load()
    return store


__all__ = ["FaissVectorStore", "get_vector_store"]
