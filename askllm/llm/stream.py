"""Incremental decoder for streamed chat-completion events.

The transport hands over byte chunks whose boundaries have nothing to do with
line boundaries. Complete lines are cut off the front of an accumulation
buffer, an optional ``data: `` prefix is stripped, and each line is tried as a
JSON event. Lines that are not JSON (blank keep-alives, ``: comments``, the
``[DONE]`` marker) are skipped. ``choices[0].delta.content`` is emitted as soon
as its line is complete. An ``{"error": {...}}`` event raises RemoteAPIError.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Optional

from ..errors import StreamBufferOverflowError
from .parser import remote_error

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 4096
DATA_PREFIX = b"data: "
NEWLINE = b"\n"


class StreamDecoder:
    """
    Decoder state for one streaming request.

    ``capacity`` bounds the length of any single line, pending or complete.
    Exceeding it raises :class:`StreamBufferOverflowError` and is fatal for the
    request.
    """

    def __init__(
        self,
        emit: Callable[[str], None],
        capacity: int = DEFAULT_CAPACITY,
        show_usage: bool = False,
    ):
        self.emit = emit
        self.capacity = capacity
        self.show_usage = show_usage
        self.emitted = 0
        self.skipped = 0
        self._buffer = bytearray()

    @property
    def pending(self) -> bytes:
        return bytes(self._buffer)

    def feed(self, chunk: bytes) -> None:
        if NEWLINE not in chunk and len(self._buffer) + len(chunk) > self.capacity:
            raise StreamBufferOverflowError(self.capacity, len(self._buffer) + len(chunk))
        self._buffer.extend(chunk)

        while True:
            idx = self._buffer.find(NEWLINE)
            if idx < 0:
                break
            line = bytes(self._buffer[:idx])
            del self._buffer[: idx + 1]
            if len(line) > self.capacity:
                raise StreamBufferOverflowError(self.capacity, len(line))
            self._process_line(line)

        if len(self._buffer) > self.capacity:
            raise StreamBufferOverflowError(self.capacity, len(self._buffer))

    def finish(self) -> None:
        """End of stream: treat the unterminated tail as one last line."""
        if not self._buffer:
            return
        tail = bytes(self._buffer)
        self._buffer.clear()
        if not self._process_line(tail):
            logger.debug("dropped unterminated stream tail (%d bytes)", len(tail))

    def _process_line(self, line: bytes) -> bool:
        if line.startswith(DATA_PREFIX):
            line = line[len(DATA_PREFIX):]
        content = _delta_content(line)
        if content is None:
            self.skipped += 1
            return False
        self.emit(content)
        self.emitted += 1
        return True


def _delta_content(line: bytes) -> Optional[str]:
    try:
        event = json.loads(line)
    except (ValueError, RecursionError):
        return None
    if not isinstance(event, dict):
        return None
    error = remote_error(event, status_code=200)
    if error is not None:
        raise error
    choices = event.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None
