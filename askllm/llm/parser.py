from __future__ import annotations

import json
from typing import Any, Dict, Optional

from ..errors import EmptyResponseError, InvalidContentError, MalformedResponseError, RemoteAPIError
from .types import ChatResult, HTTPResponse


def parse(response: HTTPResponse) -> ChatResult:
    """
    Decode a complete chat-completion body.

    An ``error`` envelope wins over everything else and ``choices`` is not
    looked at. Usage counters are optional and default to 0 one by one.
    """
    if response is None or not response.body:
        raise EmptyResponseError("received empty response")
    try:
        data = json.loads(bytes(response.body))
    except (ValueError, RecursionError) as exc:
        raise MalformedResponseError(f"JSON parsing failed: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedResponseError("response is not a JSON object")

    error = remote_error(data, response.status_code or None)
    if error is not None:
        raise error

    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise InvalidContentError("invalid choices array")
    first = choices[0] if isinstance(choices[0], dict) else {}
    message = first.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise InvalidContentError("invalid content format")

    usage = data.get("usage")
    if not isinstance(usage, dict):
        usage = {}
    return ChatResult(
        content=content,
        input_token_count=_token_count(usage, "prompt_tokens"),
        output_token_count=_token_count(usage, "completion_tokens"),
        total_token_count=_token_count(usage, "total_tokens"),
    )


def _token_count(usage: Dict[str, Any], key: str) -> int:
    value = usage.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def remote_error(data: Dict[str, Any], status_code: Optional[int] = None) -> Optional[RemoteAPIError]:
    """Return the error carried by a decoded ``{"error": {...}}`` envelope, if any."""
    error = data.get("error")
    if error is None:
        return None
    message = error.get("message") if isinstance(error, dict) else None
    return RemoteAPIError(message if isinstance(message, str) else "Unknown error", status_code=status_code)
