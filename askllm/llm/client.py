from __future__ import annotations

import logging
from typing import Callable, Optional

from ..config import Configuration
from .parser import parse
from .stream import DEFAULT_CAPACITY, StreamDecoder
from .transport import Transport
from .types import ChatResult, HTTPResponse

logger = logging.getLogger(__name__)


class ChatClient:
    """OpenAI-compatible chat-completion endpoint at ``config.base_url``."""

    def __init__(self, config: Configuration, transport: Optional[Transport] = None):
        self.config = config
        self.transport = transport or Transport()

    def complete(self, payload: str) -> ChatResult:
        response = HTTPResponse()
        response.status_code = self.transport.post(self.config.base_url, self.config.api_key, payload, response.write)
        logger.debug("received %d bytes", len(response.body))
        return parse(response)

    def stream(
        self,
        payload: str,
        emit: Callable[[str], None],
        show_usage: bool = False,
        capacity: int = DEFAULT_CAPACITY,
    ) -> StreamDecoder:
        decoder = StreamDecoder(emit, capacity=capacity, show_usage=show_usage)
        self.transport.post(self.config.base_url, self.config.api_key, payload, decoder.feed)
        decoder.finish()
        logger.debug("stream closed: %d deltas, %d lines skipped", decoder.emitted, decoder.skipped)
        return decoder
