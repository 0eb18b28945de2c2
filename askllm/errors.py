"""Error types for askllm.

Every failure in the request/response lifecycle is terminal for the current
invocation and maps to exit status 1.
"""

from __future__ import annotations

from typing import Optional


class AskLLMError(Exception):
    """Base exception for askllm errors."""


class ConfigurationError(AskLLMError):
    """Raised when required configuration is missing or invalid."""


class InvalidRequestError(AskLLMError):
    """Raised when the chat request parameters are unusable."""


class SerializationError(AskLLMError):
    """Raised when the request payload cannot be serialized."""


class TransportError(AskLLMError):
    """Raised on network, timeout or TLS failure."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class RemoteAPIError(AskLLMError):
    """Raised when the remote service reports an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class EmptyResponseError(AskLLMError):
    """Raised when a response has no body to parse."""


class MalformedResponseError(AskLLMError):
    """Raised when a response body is not a JSON object."""


class InvalidContentError(AskLLMError):
    """Raised when a response lacks the expected answer content."""


class StreamBufferOverflowError(AskLLMError):
    """Raised when a streamed line exceeds the decoder capacity."""

    def __init__(self, capacity: int, size: int):
        super().__init__(f"stream buffer overflow: {size} bytes pending, capacity is {capacity}")
        self.capacity = capacity
        self.size = size


__all__ = [
    "AskLLMError",
    "ConfigurationError",
    "EmptyResponseError",
    "InvalidContentError",
    "InvalidRequestError",
    "MalformedResponseError",
    "RemoteAPIError",
    "SerializationError",
    "StreamBufferOverflowError",
    "TransportError",
]
