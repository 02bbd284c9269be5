"""Configuration management for the F1GPT application."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigurationError

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


class Config:
    """Application configuration loaded from environment variables."""

    # OpenAI-compatible endpoint Configuration
    @classmethod
    def get_openai_api_key(cls) -> str:
        """Get the model provider API key from environment variables.

        Returns:
            API key from environment or empty string if not set.
        """
        return os.getenv("OPENAI_API_KEY", "")

    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()

    # Application Settings
    DEFAULT_USER: str = os.getenv("DEFAULT_USER", "anonymous")

    # Embedding Configuration
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    EMBEDDING_DIMENSION: int = int(os.getenv("EMBEDDING_DIMENSION", "1024"))
    EMBEDDING_PASSAGE_PREFIX: str = os.getenv("EMBEDDING_PASSAGE_PREFIX", "")

    # Text Generation Configuration
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-3.5-turbo-instruct")
    CHAT_MAX_TOKENS: int = int(os.getenv("CHAT_MAX_TOKENS", "1000"))
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.01"))
    CHAT_TOP_P: float = float(os.getenv("CHAT_TOP_P", "0.1"))
    CHAT_REPETITION_PENALTY: float | None = _optional_float("CHAT_REPETITION_PENALTY")
    CHAT_STOP_SEQUENCES: tuple[str, ...] = tuple(
        stop.strip()
        for stop in os.getenv("CHAT_STOP_SEQUENCES", "</s>").split(",")
        if stop.strip()
    )

    # Retrieval Configuration
    RETRIEVAL_TOP_K: int = int(os.getenv("RETRIEVAL_TOP_K", "5"))
    RETRIEVAL_MIN_SIMILARITY: float = float(
        os.getenv("RETRIEVAL_MIN_SIMILARITY", "0.7")
    )
    PROMPT_MAX_CONTEXT_CHARS: int = int(os.getenv("PROMPT_MAX_CONTEXT_CHARS", "0"))

    # Vector Store Configuration
    VECTOR_STORE_DIR: Path = Path(os.getenv("VECTOR_STORE_DIR", "data/vectors"))
    VECTOR_COLLECTION: str = os.getenv("VECTOR_COLLECTION", "f1gpt")

    # Ingestion Configuration
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", "1024"))
    CHUNK_OVERLAP: int = int(os.getenv("CHUNK_OVERLAP", "100"))
    SCRAPE_TIMEOUT: float = float(os.getenv("SCRAPE_TIMEOUT", "30"))
    INGEST_SOURCES_FILE: Path = Path(
        os.getenv("INGEST_SOURCES_FILE", "data/sources.txt")
    )

    # Chat Client Configuration
    CHAT_API_URL: str = os.getenv("CHAT_API_URL", "http://localhost:8000/api/chat")
    CLIENT_REQUEST_TIMEOUT: float = float(os.getenv("CLIENT_REQUEST_TIMEOUT", "30"))
    CLIENT_READ_TIMEOUT: float = float(os.getenv("CLIENT_READ_TIMEOUT", "30"))
    MAX_INPUT_LENGTH: int = int(os.getenv("MAX_INPUT_LENGTH", "1000"))

    # API Header Configuration
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "F1GPT/1.0")

    @classmethod
    def vector_db_path(cls) -> Path:
        """Return the SQLite metadata path for the configured collection."""  # noqa: DOC201
        return cls.VECTOR_STORE_DIR / f"{cls.VECTOR_COLLECTION}.db"

    @classmethod
    def vector_index_path(cls) -> Path:
        """Return the FAISS index path for the configured collection."""  # noqa: DOC201
        return cls.VECTOR_STORE_DIR / f"{cls.VECTOR_COLLECTION}.faiss"

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values.

        Raises:
            ConfigurationError: If any credential, model identifier or store
                setting required to serve traffic is missing.
        """
        missing: list[str] = []
        if not cls.get_openai_api_key():
            missing.append("OPENAI_API_KEY")
        if not cls.EMBEDDING_MODEL:
            missing.append("EMBEDDING_MODEL")
        if not cls.CHAT_MODEL:
            missing.append("CHAT_MODEL")
        if not cls.VECTOR_COLLECTION:
            missing.append("VECTOR_COLLECTION")
        if cls.EMBEDDING_DIMENSION <= 0:
            missing.append("EMBEDDING_DIMENSION")

        if missing:
            msg = (
                f"{', '.join(missing)} required. "
                "Please set it in .env file or environment."
            )
            raise ConfigurationError(msg)

    @classmethod
    def setup_logging(cls) -> None:
        """Setup basic logging configuration.

        Configure logging once at process startup with:
        - Console output for all levels
        - Simple, readable format
        - Configurable level via environment variable
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

        third_party_level = getattr(logging, cls.OPENAI_LOG_LEVEL, logging.WARNING)
        for name in ("openai", "httpx"):
            logging.getLogger(name).setLevel(third_party_level)

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger with the specified name.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Logger instance
        """
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Build default headers for outbound API calls.

        Returns:
            Mapping of header names to values used on outbound HTTP requests.
        """
        headers: dict[str, str] = {}

        if cls.API_USER_AGENT:
            headers["User-Agent"] = cls.API_USER_AGENT

        return headers


config = Config()
