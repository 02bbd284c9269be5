"""Error taxonomy shared by the service and the chat client."""


class F1GPTError(Exception):
    """Base class for all application errors."""


class ConfigurationError(F1GPTError, ValueError):
    """Required credentials, endpoints or model identifiers are missing."""


class RetrievalError(F1GPTError):
    """Embedding or vector search failed."""


class EmbeddingError(RetrievalError):
    """The embedding provider was unreachable or returned an unusable vector."""


class ValidationError(F1GPTError):
    """A request or user input was rejected."""


class InputValidationError(ValidationError):
    """User input is empty, whitespace only or too long."""


class SubmissionInProgressError(ValidationError):
    """A chat submission is already waiting for its response."""


class GenerationError(F1GPTError):
    """The language model failed before or during streaming."""


class TransportError(F1GPTError):
    """The chat request could not be completed over the network."""
