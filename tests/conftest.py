"""Test configuration and fixtures for F1GPT tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock services and API responses
- Fake gateways for retrieval and generation
- Vector store fixtures
- Deterministic ids and clocks for stream tests
"""

import datetime
import hashlib
import itertools
from unittest.mock import AsyncMock, Mock

import numpy as np
import pytest

from f1gpt import DocumentChunk, EmbeddingService, FaissVectorStore, TextChunker
from f1gpt.models import SearchHit


class TestConstants:
    """Centralized test constants to avoid repetition across test files.

    All test constants are defined here to maintain consistency across
    the test suite and make it easy to update values globally.
    """

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_EMBEDDING_MODEL = "text-embedding-3-small"
    TEST_DIMENSION = 8

    # Text Chunking Configuration
    SMALL_CHUNK_SIZE = 100
    SMALL_CHUNK_OVERLAP = 20

    # Streaming
    FIXED_TIME = datetime.datetime(2025, 5, 18, 14, 30, 0, tzinfo=datetime.UTC)
    TEST_URL = "https://www.formula1.com/en/results/2024/drivers"


class MockEmbeddingService:
    """Mock embedding service for testing without API calls.

    Generates deterministic embeddings based on text content hash,
    ensuring consistent test results across runs.
    """

    def __init__(self, dimension: int = TestConstants.TEST_DIMENSION) -> None:
        """Initialize mock embedding service.

        Args:
            dimension: Dimensionality of generated embeddings.
        """
        self.dimension = dimension
        self.calls: list[str] = []

    def vector_for(self, text: str) -> np.ndarray:
        """Generate deterministic mock embedding based on text hash."""
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return (embedding / np.linalg.norm(embedding)).astype(np.float32)

    async def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        return self.vector_for(text)

    async def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        self.calls.extend(texts)
        return [self.vector_for(text) for text in texts]


class FakePassageIndex:
    """Vector store stand-in returning canned hits."""

    def __init__(self, hits: list[SearchHit] | None = None, error=None) -> None:
        self.hits = hits or []
        self.error = error
        self.queries: list[tuple[np.ndarray, int]] = []

    def search(self, vector, top_k=5, *, include_similarity=True):
        self.queries.append((vector, top_k))
        if self.error is not None:
            raise self.error
        return list(self.hits)


class FakeTextGenerator:
    """Language model stand-in yielding scripted increments."""

    def __init__(self, increments=(), error: Exception | None = None) -> None:
        self.increments = list(increments)
        self.error = error
        self.prompts: list[str] = []
        self.pulled = 0
        self.closed = False

    async def generate(self, prompt, params=None):
        self.prompts.append(prompt)
        try:
            for increment in self.increments:
                self.pulled += 1
                yield increment
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response.

    Args:
        embeddings: List of embedding vectors to return.

    Returns:
        Mock object representing OpenAI embeddings API response.
    """
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


def create_completion_chunk(text: str) -> Mock:
    """Create one streamed completion chunk."""
    return Mock(choices=[Mock(text=text)])


class MockCompletionStream:
    """Async iterator over completion chunks, tracking ``close``."""

    def __init__(self, texts, error: Exception | None = None) -> None:
        self._chunks = iter([create_completion_chunk(text) for text in texts])
        self.error = error
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return next(self._chunks)
        except StopIteration:
            if self.error is not None:
                raise self.error from None
            raise StopAsyncIteration from None

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def openai_client_mock():
    """AsyncOpenAI stand-in with awaitable ``embeddings`` and ``completions``."""
    client = Mock()
    client.embeddings.create = AsyncMock()
    client.completions.create = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def embedding_service_factory(openai_client_mock):
    """Factory for creating EmbeddingService instances backed by a mock client."""

    def _create_service(
        dimension: int = TestConstants.TEST_DIMENSION,
        model: str = TestConstants.TEST_EMBEDDING_MODEL,
    ) -> EmbeddingService:
        return EmbeddingService(
            api_key=TestConstants.TEST_API_KEY,
            model=model,
            dimension=dimension,
            client=openai_client_mock,
        )

    return _create_service


@pytest.fixture
def embedding_service(embedding_service_factory):
    """Default EmbeddingService with a mock client for most tests."""
    return embedding_service_factory()


@pytest.fixture
def mock_embedding_service():
    """Pre-configured MockEmbeddingService for consistent test embeddings."""
    return MockEmbeddingService()


@pytest.fixture
def text_chunker_small():
    """Text chunker configured for small chunks (100/20)."""
    return TextChunker(
        chunk_size=TestConstants.SMALL_CHUNK_SIZE,
        overlap=TestConstants.SMALL_CHUNK_OVERLAP,
    )


@pytest.fixture
def temp_faiss_store(tmp_path) -> FaissVectorStore:
    """Create temporary FAISS vector store for testing."""
    return FaissVectorStore(
        db_path=tmp_path / "vectors" / "test.db",
        index_path=tmp_path / "vectors" / "test.faiss",
        dimension=TestConstants.TEST_DIMENSION,
    )


@pytest.fixture
def sample_passages(mock_embedding_service):
    """Scraped passages with embeddings, ready to upsert."""
    texts = [
        "Max Verstappen won the 2024 Formula One World Drivers' Championship.",
        "McLaren won the 2024 Constructors' Championship.",
        "Lewis Hamilton joined Ferrari for the 2025 season.",
    ]
    return [
        DocumentChunk(
            content=text,
            metadata={"source": TestConstants.TEST_URL, "chunk_id": i},
            embedding=mock_embedding_service.vector_for(text),
        )
        for i, text in enumerate(texts)
    ]


@pytest.fixture
def sequential_ids():
    """Factory of id sources yielding ``msg-1``, ``msg-2`` and so on."""

    def _create():  # noqa: ANN202
        counter = itertools.count(1)
        return lambda: f"msg-{next(counter)}"

    return _create


@pytest.fixture
def fixed_clock():
    """Clock frozen at TestConstants.FIXED_TIME."""
    return lambda: TestConstants.FIXED_TIME
