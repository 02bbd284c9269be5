"""Offline ingestion: scrape source pages, chunk, embed and store them."""

import asyncio
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path

from .config import config
from .document_processing import PageLoader, TextChunker
from .embeddings import EmbeddingService
from .errors import EmbeddingError
from .vector_store import FaissVectorStore

logger = config.get_logger(__name__)


@dataclass
class IngestionReport:
    """Outcome of one ingestion run."""

    processed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    chunks: int = 0


def load_sources(path: Path) -> list[str]:
    """Read source urls, one per line; blank lines and ``#`` comments are ignored.

    Duplicates are removed, keeping the first occurrence.

    Returns:
        list[str]: Source urls in file order.
    """
    urls = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line and not line.startswith("#"):
            urls.append(line)
    return list(dict.fromkeys(urls))


class Ingestor:
    """Orchestrates Scrape -> Split -> Embed -> Store for a list of urls."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: FaissVectorStore,
        loader: PageLoader | None = None,
        chunker: TextChunker | None = None,
    ) -> None:
        """Initialize the ingestor.

        Args:
            embedding_service: Embedding gateway for passages.
            vector_store: Store receiving the passages.
            loader: Page loader. Defaults to a fresh PageLoader.
            chunker: Text chunker. Defaults to config.CHUNK_SIZE and
                config.CHUNK_OVERLAP.
        """
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.loader = loader or PageLoader()
        self.chunker = chunker or TextChunker(
            chunk_size=config.CHUNK_SIZE,
            overlap=config.CHUNK_OVERLAP,
        )

    async def ingest_url(self, url: str) -> int | None:
        """Store every chunk of one page.

        Returns:
            Number of stored chunks, or None if the page could not be scraped.
        """
        content = await self.loader.load(url)
        if content is None:
            return None

        chunks = self.chunker.chunk_text(content, source=url)
        texts = [chunk.content for chunk in chunks]
        embeddings = await self.embedding_service.embed_batch(texts)
        await asyncio.to_thread(self.vector_store.add_passages, embeddings, texts, url)
        logger.info("Stored %d chunks from %s", len(texts), url)
        return len(texts)

    async def run(self, urls: list[str]) -> IngestionReport:
        """Ingest ``urls`` one after another, skipping those already stored.

        Returns:
            IngestionReport: What was processed, skipped and failed.
        """
        report = IngestionReport()
        for url in urls:
            if await asyncio.to_thread(self.vector_store.exists_by_source_url, url):
                logger.info("Skipping already processed URL: %s", url)
                report.skipped.append(url)
                continue

            try:
                stored = await self.ingest_url(url)
            except EmbeddingError:
                logger.exception("Embedding failed for %s", url)
                stored = None
            except (sqlite3.Error, RuntimeError):
                logger.exception("Storing passages failed for %s", url)
                stored = None

            if stored is None:
                report.failed.append(url)
                continue
            report.processed.append(url)
            report.chunks += stored

        logger.info(
            "Ingestion finished: %d processed, %d skipped, %d failed, %d chunks",
            len(report.processed),
            len(report.skipped),
            len(report.failed),
            report.chunks,
        )
        return report
