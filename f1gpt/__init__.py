"""F1GPT - retrieval-augmented Formula 1 chat assistant."""

from .client import ChatSession
from .document_processing import PageLoader, TextChunker
from .embeddings import EmbeddingService, ensure_flat_vector
from .ingestion import Ingestor, IngestionReport
from .llm import GenerationParams, TextGenerationService
from .models import DocumentChunk, RetrievedPassage, SearchHit
from .prompts import build_prompt
from .retrieval import RetrievalAssembler, RetrievalResult
from .schemas import ChatRequest, Message
from .streaming import StreamingResponseEncoder
from .vector_store import FaissVectorStore, get_vector_store

__all__ = [
    "ChatRequest",
    "ChatSession",
    "DocumentChunk",
    "EmbeddingService",
    "FaissVectorStore",
    "GenerationParams",
    "IngestionReport",
    "Ingestor",
    "Message",
    "PageLoader",
    "RetrievalAssembler",
    "RetrievalResult",
    "RetrievedPassage",
    "SearchHit",
    "StreamingResponseEncoder",
    "TextChunker",
    "TextGenerationService",
    "build_prompt",
    "ensure_flat_vector",
]
