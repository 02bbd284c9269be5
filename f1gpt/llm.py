"""Language model gateway streaming completions from an OpenAI-compatible endpoint."""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from .config import config
from .errors import GenerationError

logger = config.get_logger(__name__)


@dataclass(frozen=True)
class GenerationParams:
    """Sampling parameters for one generation call."""

    max_new_tokens: int = 1000
    temperature: float = 0.01
    top_p: float = 0.1
    repetition_penalty: float | None = None
    stop_sequences: tuple[str, ...] = field(default=("</s>",))

    @classmethod
    def from_config(cls) -> "GenerationParams":
        """Build parameters from the application configuration."""  # noqa: DOC201
        return cls(
            max_new_tokens=config.CHAT_MAX_TOKENS,
            temperature=config.CHAT_TEMPERATURE,
            top_p=config.CHAT_TOP_P,
            repetition_penalty=config.CHAT_REPETITION_PENALTY,
            stop_sequences=config.CHAT_STOP_SEQUENCES,
        )

    def to_request_kwargs(self) -> dict[str, Any]:
        """Translate to keyword arguments of ``completions.create``.

        Returns:
            Request keyword arguments; the repetition penalty travels in the
            extra body because it is not part of the OpenAI schema.
        """
        kwargs: dict[str, Any] = {
            "max_tokens": self.max_new_tokens,
            "temperature": self.temperature,
            "top_p": self.top_p,
        }
        if self.stop_sequences:
            kwargs["stop"] = list(self.stop_sequences)
        if self.repetition_penalty is not None:
            kwargs["extra_body"] = {"repetition_penalty": self.repetition_penalty}
        return kwargs


class TextGenerationService:
    """Produces text increments for a fully built prompt."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize the TextGenerationService.

        Args:
            api_key: Provider API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Completion model name. If None, uses config.CHAT_MODEL.
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
        self.model = model or config.CHAT_MODEL

    async def generate(
        self,
        prompt: str,
        params: GenerationParams | None = None,
    ) -> AsyncIterator[str]:
        """Stream the completion for ``prompt`` as text increments.

        The upstream HTTP stream is closed when the caller stops iterating,
        whether the sequence was exhausted or abandoned.

        Args:
            prompt: Complete model input, instruction delimiters included.
            params: Sampling parameters. If None, uses the configured ones.

        Yields:
            Non-empty text increments in generation order.

        Raises:
            GenerationError: If the request or the stream fails.
        """
        params = params or GenerationParams.from_config()
        try:
            stream = await self.client.completions.create(
                model=self.model,
                prompt=prompt,
                stream=True,
                **params.to_request_kwargs(),
            )
        except OpenAIError as exc:
            logger.exception("Error starting text generation")
            msg = f"Text generation request failed: {exc}"
            raise GenerationError(msg) from exc

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].text
                if text:
                    yield text
        except OpenAIError as exc:
            logger.exception("Text generation stream failed")
            msg = f"Text generation stream failed: {exc}"
            raise GenerationError(msg) from exc
        finally:
            await stream.close()
