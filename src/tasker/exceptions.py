"""Custom exceptions for Tasker."""


class TaskerError(Exception):
    """Base exception for all Tasker errors."""


class ConfigurationError(TaskerError):
    """Raised when credentials or provider settings are missing or invalid."""


class LLMTransportError(TaskerError):
    """Raised when the model provider cannot be reached or returns no content."""


class LLMParseError(TaskerError):
    """Raised when model output is not valid JSON or does not match the schema."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class ProposalNotFoundError(TaskerError):
    """Raised when a clarification answer refers to an unknown proposal."""
