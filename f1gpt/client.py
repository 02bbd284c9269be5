"""Chat client keeping the session's message log in sync with the stream."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError as SchemaValidationError

from .config import config
from .errors import InputValidationError, SubmissionInProgressError, TransportError
from .schemas import Message, Role, new_message_id

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = config.get_logger(__name__)

EVENT_PREFIX = "data: "
DONE_MARKER = "[DONE]"
ERROR_MESSAGE = "Sorry, there was an error processing your request. Please try again."
TIMEOUT_MESSAGE = "Sorry, the request timed out. Please try again."


class SSELineDecoder:
    """Splits incrementally decoded text into complete lines.

    A trailing partial line is buffered until the rest of it arrives.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, text: str) -> list[str]:
        """Add decoded text and return the lines it completed."""  # noqa: DOC201
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return [line.removesuffix("\r") for line in lines]

    def flush(self) -> list[str]:
        """Return whatever is left once the stream has ended."""  # noqa: DOC201
        rest, self._buffer = self._buffer, ""
        return [rest.removesuffix("\r")] if rest else []


class ChatSession:
    """In-memory chat log for one user, fed by the streaming chat endpoint.

    Only ``submit`` and ``apply_server_event`` mutate ``messages``. At most one
    submission is in flight at a time, guarded by ``is_loading``.
    """

    def __init__(
        self,
        api_url: str | None = None,
        *,
        timeout: float | None = None,
        read_timeout: float | None = None,
        max_input_length: int | None = None,
        http_client: httpx.AsyncClient | None = None,
        id_factory: Callable[[], str] | None = None,
        on_update: Callable[[ChatSession], None] | None = None,
    ) -> None:
        """Initialize an empty session.

        Args:
            api_url: Chat endpoint URL. If None, uses config.CHAT_API_URL.
            timeout: Seconds to wait for the response to arrive. If None,
                uses config.CLIENT_REQUEST_TIMEOUT.
            read_timeout: Longest silence tolerated between streamed
                chunks. If None, uses config.CLIENT_READ_TIMEOUT.
            max_input_length: Longest accepted message. If None, uses
                config.MAX_INPUT_LENGTH.
            http_client: Client to send requests with. When omitted a client
                is opened and closed around each submission.
            id_factory: Id source for locally created messages.
            on_update: Called with the session after each change to the log.
        """
        self.api_url = api_url or config.CHAT_API_URL
        self.timeout = config.CLIENT_REQUEST_TIMEOUT if timeout is None else timeout
        self.read_timeout = (
            config.CLIENT_READ_TIMEOUT if read_timeout is None else read_timeout
        )
        self.max_input_length = max_input_length or config.MAX_INPUT_LENGTH
        self.http_client = http_client
        self.id_factory = id_factory or new_message_id
        self.on_update = on_update

        self.messages: list[Message] = []
        self.input = ""
        self.is_loading = False

    def _notify(self) -> None:
        if self.on_update is not None:
            self.on_update(self)

    def create_message(self, role: Role, content: str) -> Message:
        return Message(id=self.id_factory(), role=role, content=content)

    def validate_input(self, text: str) -> str:
        """Check a candidate message before anything is sent.

        Returns:
            str: The trimmed message.

        Raises:
            InputValidationError: If the message is blank or too long.
            SubmissionInProgressError: If a previous submission is still running.
        """
        trimmed = text.strip()
        if not trimmed:
            msg = "Message must not be empty"
            raise InputValidationError(msg)
        if len(trimmed) > self.max_input_length:
            msg = f"Message exceeds {self.max_input_length} characters"
            raise InputValidationError(msg)
        if self.is_loading:
            msg = "A message is already being answered"
            raise SubmissionInProgressError(msg)
        return trimmed

    def apply_server_event(self, event: Message) -> None:
        """Merge one streamed message into the log.

        The in-progress assistant message is always the last entry: its
        content is replaced in place. Anything else starts a new entry.
        """
        if self.messages and self.messages[-1].role == "assistant":
            self.messages[-1].content = event.content
        else:
            self.messages.append(event)
        self._notify()

    def _handle_line(self, line: str) -> bool:
        """Apply one event line; report whether it was a server-push frame."""  # noqa: DOC201
        if not line.startswith(EVENT_PREFIX):
            return False
        data = line[len(EVENT_PREFIX) :]
        if data == DONE_MARKER:
            return True
        try:
            event = Message.model_validate_json(data)
        except SchemaValidationError:
            logger.exception("Error parsing streaming message")
            return True
        self.apply_server_event(event)
        return True

    async def _consume(self, chunks: AsyncIterator[str]) -> int:
        """Apply the body's frames, allowing ``read_timeout`` per read."""  # noqa: DOC201
        decoder = SSELineDecoder()
        frames = 0
        while True:
            try:
                async with asyncio.timeout(self.read_timeout):
                    text = await anext(chunks)
            except StopAsyncIteration:
                break
            for line in decoder.feed(text):
                frames += self._handle_line(line)
        for line in decoder.flush():
            frames += self._handle_line(line)
        return frames

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> None:
        async with (
            asyncio.timeout(self.timeout) as deadline,
            client.stream(
                "POST",
                self.api_url,
                json=payload,
                headers={"Accept": "text/event-stream"},
            ) as response,
        ):
            response.raise_for_status()
            # the deadline only covers waiting for the response
            deadline.reschedule(None)
            if not await self._consume(response.aiter_text()):
                msg = "No response body received"
                raise TransportError(msg)

    async def _send(self, payload: dict) -> None:
        if self.http_client is not None:
            await self._post(self.http_client, payload)
            return
        timeout = httpx.Timeout(self.timeout, read=self.read_timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            await self._post(client, payload)

    async def submit(self, text: str | None = None) -> None:
        """Send a user message and stream the answer into the log.

        Args:
            text: Message to send. If None, the current ``input`` is sent.

        Failures after validation never raise: a timeout or any transport
        error appends an apology message instead.
        """
        trimmed = self.validate_input(self.input if text is None else text)

        self.is_loading = True
        self.messages.append(self.create_message("user", trimmed))
        self.input = ""
        self._notify()

        payload = {"messages": [message.to_wire() for message in self.messages]}
        try:
            await self._send(payload)
        except (TimeoutError, httpx.TimeoutException):
            logger.warning("Chat request timed out")
            self.messages.append(self.create_message("assistant", TIMEOUT_MESSAGE))
        except (httpx.HTTPError, TransportError):
            logger.exception("Chat error")
            self.messages.append(self.create_message("assistant", ERROR_MESSAGE))
        finally:
            self.is_loading = False
            self._notify()
