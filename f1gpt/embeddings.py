"""Embedding gateway over an OpenAI-compatible embeddings endpoint."""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, TypeAlias

import numpy as np
from openai import AsyncOpenAI, OpenAIError

from .config import config
from .errors import EmbeddingError

logger = config.get_logger(__name__)


class _HasData(Protocol):
    data: Any


# Provider responses seen in practice: a flat vector, a single-row matrix,
# or an envelope exposing ``data`` (OpenAI's CreateEmbeddingResponse included).
EmbeddingPayload: TypeAlias = (
    Sequence[float] | Sequence[Sequence[float]] | np.ndarray | Mapping[str, Any] | _HasData
)


def _is_row(value: object) -> bool:
    return isinstance(value, (list, tuple, np.ndarray))


def _unwrap(payload: EmbeddingPayload) -> Any:  # noqa: PLR0911
    if isinstance(payload, np.ndarray):
        if payload.ndim == 1:
            return payload
        if payload.ndim == 2 and payload.shape[0] > 0:  # noqa: PLR2004
            return payload[0]
        return None

    if isinstance(payload, (list, tuple)):
        if not payload:
            return None
        if _is_row(payload[0]):
            return payload[0]
        if hasattr(payload[0], "embedding"):
            return payload[0].embedding
        return payload

    data = payload.get("data") if isinstance(payload, Mapping) else None
    if data is None and not isinstance(payload, (str, bytes, Mapping)):
        data = getattr(payload, "data", None)
    if isinstance(data, (list, tuple)) and data:
        first = data[0]
        if hasattr(first, "embedding"):
            return first.embedding
        if isinstance(first, Mapping) and "embedding" in first:
            return first["embedding"]
        return data
    return None


def ensure_flat_vector(payload: EmbeddingPayload | None) -> np.ndarray:
    """Normalize a provider embedding response into a flat float vector.

    Args:
        payload: Raw embedding response in any of the supported shapes.

    Returns:
        One-dimensional float32 array.

    Raises:
        EmbeddingError: If nothing was received or the shape is not supported.
    """
    if payload is None:
        msg = "No embedding received"
        raise EmbeddingError(msg)

    candidate = _unwrap(payload)
    if candidate is None:
        msg = "Invalid embedding format received"
        raise EmbeddingError(msg)

    try:
        vector = np.asarray(candidate, dtype="float32")
    except (TypeError, ValueError) as exc:
        msg = "Invalid embedding format received"
        raise EmbeddingError(msg) from exc

    if vector.ndim != 1 or vector.size == 0:
        msg = "Invalid embedding format received"
        raise EmbeddingError(msg)
    return vector


class EmbeddingService:
    """Handles embedding generation for queries and scraped passages."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        dimension: int | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the EmbeddingService.

        Args:
            api_key: Provider API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
            dimension: Expected vector length. If None, uses
                config.EMBEDDING_DIMENSION.
            client: Pre-built async client, mostly useful for tests.
        """
        if client is None:
            default_headers = config.get_api_headers()
            client = AsyncOpenAI(
                api_key=api_key or config.get_openai_api_key(),
                base_url=config.OPENAI_BASE_URL,
                default_headers=default_headers or None,
            )
        self.client = client
        self.model = model or config.EMBEDDING_MODEL
        self.dimension = dimension or config.EMBEDDING_DIMENSION

    def _check_dimension(self, vector: np.ndarray) -> np.ndarray:
        if vector.shape[0] != self.dimension:
            msg = f"Invalid embedding dimension: {vector.shape[0]}"
            raise EmbeddingError(msg)
        return vector

    async def embed(self, text: str) -> np.ndarray:
        """Get the embedding for a single text.

        Args:
            text: The input text to embed.

        Returns:
            np.ndarray: Flat vector of length ``self.dimension``.

        Raises:
            EmbeddingError: If the provider fails or returns an unusable vector.
        """
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=text,
                dimensions=self.dimension,
            )
        except OpenAIError as exc:
            logger.exception("Error generating embedding")
            msg = f"Embedding provider request failed: {exc}"
            raise EmbeddingError(msg) from exc

        embedding = self._check_dimension(ensure_flat_vector(response))
        logger.debug("Generated embedding vector of length: %d", embedding.shape[0])
        return embedding

    async def embed_batch(
        self,
        texts: list[str],
        batch_size: int = 100,
        prefix: str | None = None,
    ) -> list[np.ndarray]:
        """Get embeddings for multiple passages in batches.

        Args:
            texts: Passages to embed.
            batch_size: Number of texts sent per request.
            prefix: Instruction prepended to every passage. If None, uses
                config.EMBEDDING_PASSAGE_PREFIX.

        Returns:
            list[np.ndarray]: One vector per input text, in input order.

        Raises:
            EmbeddingError: If any batch fails or returns unusable vectors.
        """
        prefix = config.EMBEDDING_PASSAGE_PREFIX if prefix is None else prefix
        embeddings: list[np.ndarray] = []

        for i in range(0, len(texts), batch_size):
            batch_texts = [f"{prefix}{text}" for text in texts[i : i + batch_size]]
            try:
                response = await self.client.embeddings.create(
                    model=self.model,
                    input=batch_texts,
                    dimensions=self.dimension,
                )
            except OpenAIError as exc:
                logger.exception("Error generating batch embeddings")
                msg = f"Embedding provider request failed: {exc}"
                raise EmbeddingError(msg) from exc

            embeddings.extend(
                self._check_dimension(ensure_flat_vector([item.embedding]))
                for item in response.data
            )
            logger.info("Generated embeddings for batch %d", i // batch_size + 1)

        return embeddings
