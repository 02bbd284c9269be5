"""Web page loading and text chunking for ingestion."""

import re

import httpx
from bs4 import BeautifulSoup

from .config import config
from .models import DocumentChunk

logger = config.get_logger(__name__)

NON_CONTENT_TAGS = ["script", "style", "noscript", "template", "svg", "iframe"]
_BLANK_LINES = re.compile(r"\n\s*\n+")


class PageLoader:
    """Fetches pages and extracts their visible text."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the PageLoader.

        Args:
            http_client: Client used for fetching. When omitted one is opened
                per request.
            timeout: Request timeout in seconds. If None, uses
                config.SCRAPE_TIMEOUT.
        """
        self.http_client = http_client
        self.timeout = config.SCRAPE_TIMEOUT if timeout is None else timeout

    @staticmethod
    def extract_text(html: str) -> str:
        """Strip markup and return the page's readable text.

        Returns:
            Visible text with runs of blank lines collapsed.
        """
        soup = BeautifulSoup(html, "html.parser")
        for element in soup(NON_CONTENT_TAGS):
            element.decompose()
        body = soup.body or soup
        text = body.get_text(separator="\n", strip=True)
        return _BLANK_LINES.sub("\n\n", text).strip()

    async def _get(self, client: httpx.AsyncClient, url: str) -> str:
        response = await client.get(
            url,
            headers=config.get_api_headers(),
            follow_redirects=True,
        )
        response.raise_for_status()
        return response.text

    async def load(self, url: str) -> str | None:
        """Scrape ``url``.

        Returns:
            The page text, or None if the page could not be fetched or has no
            text.
        """
        try:
            if self.http_client is not None:
                html = await self._get(self.http_client, url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    html = await self._get(client, url)
        except httpx.HTTPError:
            logger.exception("Error scraping page %s", url)
            return None

        text = self.extract_text(html)
        if not text:
            logger.warning("No text extracted from %s", url)
            return None
        logger.info("Scraped %s (%d chars)", url, len(text))
        return text


class TextChunker:
    """Handles text chunking with fixed length and overlap strategy."""

    def __init__(self, chunk_size: int = 1024, overlap: int = 100) -> None:
        """Initialize the TextChunker with chunk size and overlap.

        Args:
            chunk_size: The size of each text chunk.
            overlap: The number of overlapping characters between chunks.
        """
        self.chunk_size = chunk_size
        self.overlap = overlap

    def chunk_text(self, text: str, source: str = "document") -> list[DocumentChunk]:
        """Split text into overlapping chunks.

        Returns:
            A list of DocumentChunk objects representing the text chunks.
        """
        chunks = []
        start = 0
        chunk_id = 0

        while start < len(text):
            end = start + self.chunk_size
            chunk_text = text[start:end]

            # Avoid breaking inside a word, except on the last chunk
            if end < len(text) and not chunk_text.endswith(" "):
                last_space = chunk_text.rfind(" ")
                if last_space > self.chunk_size // 2:
                    end = start + last_space
                    chunk_text = text[start:end]

            if chunk_text.strip():
                chunk = DocumentChunk(
                    content=chunk_text.strip(),
                    metadata={
                        "source": source,
                        "chunk_id": chunk_id,
                        "start_char": start,
                        "end_char": end,
                        "length": len(chunk_text.strip()),
                    },
                )
                chunks.append(chunk)
                chunk_id += 1

            if end >= len(text):
                break
            start = max(end - self.overlap, start + 1)

        logger.info("Text split into %d chunks", len(chunks))
        return chunks
