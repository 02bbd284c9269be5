"""Server-sent event encoding of a streamed model answer.

Each frame carries the whole answer accumulated so far under a fresh message
id, so a client only ever has to replace the content of its in-progress
assistant message. The sequence is::

    data: {"role": "assistant", "content": "", ...}        seed, before any output
    data: {"role": "assistant", "content": "Max", ...}
    data: {"role": "assistant", "content": "Max Verstappen", ...}
    data: [DONE]

A failure at any point after the seed replaces the answer with an apology and
ends the stream without ``[DONE]``.
"""

import datetime
import enum
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from typing import Protocol

from .config import config
from .llm import GenerationParams
from .prompts import format_utc_datetime
from .schemas import Message, new_message_id, utc_now

logger = config.get_logger(__name__)

DONE_FRAME = "data: [DONE]\n\n"
END_OF_SEQUENCE = "</s>"
APOLOGY_MESSAGE = "Sorry, there was an error processing your request"

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
}


class TextGenerator(Protocol):
    def generate(
        self,
        prompt: str,
        params: GenerationParams | None = None,
    ) -> AsyncIterator[str]: ...


class StreamState(enum.Enum):
    INIT = "init"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


def encode_event(message: Message) -> str:
    """Serialize a message as one ``data:`` frame.

    Returns:
        str: Frame terminated by a blank line.
    """
    return f"data: {message.model_dump_json(by_alias=True)}\n\n"


def strip_end_of_sequence(text: str) -> str:
    """Remove a trailing end-of-sequence marker.

    Returns:
        str: ``text`` without the marker.
    """
    return text.removesuffix(END_OF_SEQUENCE)


class StreamingResponseEncoder:
    """Drives the language model and turns its increments into SSE frames.

    One encoder serves one request; it is not reusable.
    """

    def __init__(
        self,
        generator: TextGenerator,
        params: GenerationParams | None = None,
        user: str | None = None,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        """Initialize the encoder.

        Args:
            generator: Language model gateway.
            params: Sampling parameters. If None, uses the configured ones.
            user: Identifier used to tag diagnostic log lines.
            id_factory: Message id source. Defaults to random uuids.
            clock: Source of message creation times. Defaults to UTC now.
        """
        self.generator = generator
        self.params = params or GenerationParams.from_config()
        self.user = user or config.DEFAULT_USER
        self.id_factory = id_factory or new_message_id
        self.clock = clock or utc_now
        self.state = StreamState.INIT
        self.closed = False
        self.frames_sent = 0

    def _frame(self, content: str) -> str:
        message = Message(
            id=self.id_factory(),
            role="assistant",
            content=content,
            created_at=self.clock(),
        )
        self.frames_sent += 1
        return encode_event(message)

    def _close(self) -> None:
        if self.closed:
            return
        self.closed = True
        logger.info(
            "[%s] Stream closed for user %s in state %s after %d frames",
            format_utc_datetime(),
            self.user,
            self.state.value,
            self.frames_sent,
        )

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        """Stream the answer to ``prompt`` as SSE frames.

        If the consumer stops iterating early, the model stream is released
        and no further increments are pulled.

        Yields:
            Encoded ``data:`` frames, ending with ``[DONE]`` on success or an
            apology frame on failure.
        """
        if self.state is not StreamState.INIT:
            msg = "StreamingResponseEncoder.stream() may only be consumed once"
            raise RuntimeError(msg)

        logger.info(
            "[%s] Streaming answer for user %s",
            format_utc_datetime(),
            self.user,
        )
        try:
            yield self._frame("")
            self.state = StreamState.STREAMING

            accumulated = ""
            async with aclosing(self.generator.generate(prompt, self.params)) as increments:
                async for increment in increments:
                    if not increment:
                        continue
                    accumulated = strip_end_of_sequence(accumulated + increment)
                    yield self._frame(accumulated.strip())

            self.state = StreamState.DONE
            yield DONE_FRAME
        except Exception:
            self.state = StreamState.FAILED
            logger.exception(
                "[%s] Streaming error for user %s",
                format_utc_datetime(),
                self.user,
            )
            yield self._frame(APOLOGY_MESSAGE)
        finally:
            self._close()
