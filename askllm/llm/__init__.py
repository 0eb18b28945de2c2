from .client import ChatClient
from .parser import parse
from .request import build_request
from .stream import StreamDecoder
from .transport import Transport
from .types import ChatMessage, ChatRequestParams, ChatResult, HTTPResponse

__all__ = [
    "ChatClient",
    "ChatMessage",
    "ChatRequestParams",
    "ChatResult",
    "HTTPResponse",
    "StreamDecoder",
    "Transport",
    "build_request",
    "parse",
]
