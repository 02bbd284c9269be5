"""HTTP surface: the streaming chat endpoint."""

import asyncio
import datetime
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError as SchemaValidationError

from .config import config
from .embeddings import EmbeddingService
from .llm import GenerationParams, TextGenerationService
from .prompts import build_prompt
from .retrieval import RetrievalAssembler
from .schemas import ChatRequest, ErrorResponse, utc_now
from .streaming import SSE_HEADERS, StreamingResponseEncoder, TextGenerator
from .vector_store import FaissVectorStore, get_vector_store

logger = config.get_logger(__name__)

router = APIRouter()


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(body.model_dump(exclude_none=True), status_code=status_code)


def get_assembler(request: Request) -> RetrievalAssembler:
    return request.app.state.assembler


def get_generator(request: Request) -> TextGenerator:
    return request.app.state.generator


@router.get("/health")
async def health(request: Request) -> dict:
    """Report liveness and the number of stored passages."""  # noqa: DOC201
    store: FaissVectorStore | None = request.app.state.vector_store
    vectors = await asyncio.to_thread(store.count) if store is not None else 0
    return {"status": "ok", "vectors": vectors}


@router.post("/api/chat")
async def chat(
    request: Request,
    assembler: RetrievalAssembler = Depends(get_assembler),  # noqa: B008
    generator: TextGenerator = Depends(get_generator),  # noqa: B008
) -> Response:
    """Answer the latest message of the conversation as a server-sent event stream.

    Returns:
        Response: ``text/event-stream`` on success, a JSON error body otherwise.
    """
    state = request.app.state
    now = (state.clock or utc_now)()
    try:
        chat_request = ChatRequest.model_validate_json(await request.body())
    except SchemaValidationError as exc:
        logger.warning("Rejected chat request: %s", exc.errors(include_url=False))
        return _error(400, "Invalid request", str(exc))

    question = chat_request.latest_content.strip()
    if not question:
        return _error(400, "Invalid request", "No user message found")
    if len(question) > config.MAX_INPUT_LENGTH:
        return _error(
            400,
            "Invalid request",
            f"Message exceeds {config.MAX_INPUT_LENGTH} characters",
        )

    user = chat_request.user or config.DEFAULT_USER
    try:
        retrieval = await assembler.assemble(question, user=user)
        prompt = build_prompt(retrieval.context, question, now)
        encoder = StreamingResponseEncoder(
            generator,
            params=state.generation_params,
            user=user,
            id_factory=state.id_factory,
            clock=state.clock,
        )
    except Exception as exc:
        logger.exception("API Error")
        return _error(500, "Internal Server Error", str(exc) or type(exc).__name__)

    return StreamingResponse(
        encoder.stream(prompt),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


def create_app(
    *,
    assembler: RetrievalAssembler | None = None,
    generator: TextGenerator | None = None,
    vector_store: FaissVectorStore | None = None,
    generation_params: GenerationParams | None = None,
    id_factory: Callable[[], str] | None = None,
    clock: Callable[[], datetime.datetime] | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Gateways that are not passed in are created from the configuration when
    the application starts, after validating it. A configuration error aborts
    startup.

    Args:
        assembler: Retrieval assembler to use for every request.
        generator: Language model gateway to use for every request.
        vector_store: Store reported by ``/health``.
        generation_params: Sampling parameters. If None, uses the configured ones.
        id_factory: Message id source for streamed events.
        clock: Source of message creation times for streamed events.

    Returns:
        FastAPI: The configured application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned_clients = []
        if app.state.assembler is None or app.state.generator is None:
            config.validate()

        try:
            if app.state.assembler is None:
                store = app.state.vector_store or await asyncio.to_thread(get_vector_store)
                embedding_service = EmbeddingService()
                owned_clients.append(embedding_service.client)
                app.state.vector_store = store
                app.state.assembler = RetrievalAssembler(embedding_service, store)
                logger.info("Vector store ready with %d passages", store.index.ntotal)

            if app.state.generator is None:
                generation_service = TextGenerationService()
                app.state.generator = generation_service
                owned_clients.append(generation_service.client)

            yield
        finally:
            for client in owned_clients:
                await client.close()

    app = FastAPI(title="F1GPT", lifespan=lifespan)
    app.state.assembler = assembler
    app.state.generator = generator
    app.state.vector_store = vector_store
    app.state.generation_params = generation_params or GenerationParams.from_config()
    app.state.id_factory = id_factory
    app.state.clock = clock
    app.include_router(router)
    return app
