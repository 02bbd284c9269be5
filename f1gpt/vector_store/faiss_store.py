"""FAISS-backed vector storage with SQLite metadata."""

from __future__ import annotations

from pathlib import Path

import faiss
import numpy as np

from f1gpt.config import config
from f1gpt.models import SearchHit
from f1gpt.vector_store.base import BaseSQLiteStore

logger = config.get_logger(__name__)


class FaissVectorStore(BaseSQLiteStore):
    """Single-collection passage store using FAISS for vectors and SQLite for text.

    Vectors are L2-normalized and searched by inner product, so raw scores are
    cosine similarities in [-1, 1]. They are reported mapped to [0, 1].
    """

    def __init__(
        self,
        db_path: Path = Path("data/vectors/f1gpt.db"),
        index_path: Path = Path("data/vectors/f1gpt.faiss"),
        dimension: int = 1024,
    ) -> None:
        """Configure FAISS-backed vector store.

        Args:
            db_path: Path to the SQLite metadata database.
            index_path: Path of the persisted FAISS index.
            dimension: Vector length every stored and query vector must have.
        """
        self.index_path = Path(index_path)
        self.index_path.parent.mkdir(exist_ok=True, parents=True)
        self.dimension = dimension
        self.index: faiss.IndexIDMap = self._new_index(dimension)

        super().__init__(db_path)

    @staticmethod
    def _new_index(dimension: int) -> faiss.IndexIDMap:
        return faiss.IndexIDMap(faiss.IndexFlatIP(dimension))

    @staticmethod
    def to_similarity(score: float) -> float:
        """Map a cosine score to the [0, 1] similarity scale.

        Returns:
            Similarity where 1.0 means identical direction.
        """
        return float(min(1.0, max(0.0, (1.0 + score) / 2.0)))

    def _prepare(self, vector: np.ndarray) -> np.ndarray:
        """Validate dimensionality and normalize for cosine search.

        Raises:
            ValueError: If the vector length differs from the store dimension.

        Returns:
            Normalized float32 row vector of shape ``(1, dimension)``.
        """
        row = np.asarray(vector, dtype="float32").reshape(1, -1)
        if row.shape[1] != self.dimension:
            msg = (
                f"Embedding dimension {row.shape[1]} does not match "
                f"vector store dimension {self.dimension}"
            )
            raise ValueError(msg)
        row = np.ascontiguousarray(row)
        if np.linalg.norm(row) > 0:
            faiss.normalize_L2(row)
        return row

    def upsert(self, vector: np.ndarray, text: str, source_url: str) -> int:
        """Store one passage and its embedding.

        Args:
            vector: Passage embedding.
            text: Passage text.
            source_url: Page the passage was scraped from.

        Returns:
            Vector id assigned to the passage.
        """
        row = self._prepare(vector)

        with self._connect() as conn:
            cursor = conn.cursor()
            source_id = self._upsert_source(cursor, source_url)
            vector_id = self._insert_passage_row(cursor, source_id, text)
            conn.commit()

        self.index.add_with_ids(row, np.asarray([vector_id], dtype="int64"))  # pyright: ignore[reportCallIssue]
        logger.debug("Stored passage %d from %s", vector_id, source_url)
        return vector_id

    def add_passages(
        self,
        vectors: list[np.ndarray],
        texts: list[str],
        source_url: str,
    ) -> list[int]:
        """Store every passage of one page and persist the index.

        The SQLite rows are committed only once the index has been saved, so a
        failure leaves neither rows nor vectors behind for ``source_url``.

        Args:
            vectors: Passage embeddings, one per text.
            texts: Passage texts.
            source_url: Page the passages were scraped from.

        Raises:
            ValueError: If ``vectors`` and ``texts`` differ in length.

        Returns:
            Vector ids assigned to the passages, in input order.
        """
        if len(vectors) != len(texts):
            msg = f"Got {len(vectors)} vectors for {len(texts)} passages"
            raise ValueError(msg)
        if not texts:
            return []
        rows = np.vstack([self._prepare(vector) for vector in vectors])

        with self._connect() as conn:
            cursor = conn.cursor()
            source_id = self._upsert_source(cursor, source_url)
            ids = [self._insert_passage_row(cursor, source_id, text) for text in texts]
            vector_ids = np.asarray(ids, dtype="int64")

            self.index.add_with_ids(rows, vector_ids)  # pyright: ignore[reportCallIssue]
            try:
                self.save()
            except Exception:
                self.index.remove_ids(vector_ids)
                raise
            conn.commit()

        logger.debug("Stored %d passages from %s", len(ids), source_url)
        return ids

    def search(
        self,
        vector: np.ndarray,
        top_k: int = 5,
        *,
        include_similarity: bool = True,
    ) -> list[SearchHit]:
        """Search the most similar stored passages.

        Args:
            vector: Query embedding.
            top_k: Maximum number of hits.
            include_similarity: Attach similarity scores to the hits.

        Returns:
            Hits ordered by descending similarity.
        """
        query = self._prepare(vector)
        if self.index.ntotal == 0 or top_k <= 0:
            return []

        scores, vector_ids = self.index.search(query, min(top_k, self.index.ntotal))  # pyright: ignore[reportCallIssue]

        hits: list[SearchHit] = []
        with self._connect() as conn:
            cursor = conn.cursor()
            for score, vector_id in zip(scores[0], vector_ids[0], strict=True):
                if int(vector_id) == -1:  # faiss returns -1 for empty results
                    continue
                passage = self._fetch_passage(cursor, int(vector_id))
                if passage is None:
                    logger.warning("No metadata for vector id %d", vector_id)
                    continue
                text, url = passage
                similarity = self.to_similarity(float(score)) if include_similarity else None
                hits.append(SearchHit(text=text, similarity=similarity, source_url=url))

        return hits

    def save(self) -> None:
        """Persist FAISS index to disk."""
        self.index_path.parent.mkdir(exist_ok=True, parents=True)
        faiss.write_index(self.index, str(self.index_path))
        logger.info("Saved FAISS index to %s", self.index_path)

    def load(self) -> None:
        """Load the FAISS index from disk.

        Raises:
            ValueError: If the persisted index has a different dimension.
        """
        if not self.index_path.exists():
            logger.warning(
                "FAISS index not found at %s. Start with an empty index.",
                self.index_path,
            )
            self.index = self._new_index(self.dimension)
            return

        loaded_index = faiss.read_index(str(self.index_path))
        if loaded_index.d != self.dimension:
            msg = (
                f"FAISS index dimension {loaded_index.d} does not match "
                f"configured dimension {self.dimension}"
            )
            raise ValueError(msg)

        if not isinstance(loaded_index, (faiss.IndexIDMap, faiss.IndexIDMap2)):
            logger.warning(
                "Loaded FAISS index is %s; wrapping with IndexIDMap to enable IDs",
                type(loaded_index).__name__,
            )
            loaded_index = faiss.IndexIDMap(loaded_index)

        self.index = loaded_index
        logger.info(
            "Loaded FAISS index from %s with %d vectors",
            self.index_path,
            loaded_index.ntotal,
        )
