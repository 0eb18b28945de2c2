from __future__ import annotations

import json
from typing import Any, Dict

from ..config import Configuration
from ..errors import ConfigurationError, InvalidRequestError, SerializationError
from .types import ChatMessage, ChatRequestParams


def build_messages(config: Configuration, params: ChatRequestParams) -> list:
    system_prompt = params.custom_prompt if params.custom_prompt is not None else config.system_prompt
    return [
        ChatMessage(role="system", content=system_prompt),
        ChatMessage(role="user", content=params.user_query),
    ]


def build_request(config: Configuration, params: ChatRequestParams, stream: bool) -> str:
    """
    Serialize one chat-completion request body.

    The message list is always system then user, and ``stream`` mirrors the
    transport path the caller is about to take.
    """
    if config is None or not config.model_name:
        raise ConfigurationError("model name is not configured")
    if not params.user_query:
        raise InvalidRequestError("question must not be empty")

    payload: Dict[str, Any] = {
        "model": config.model_name,
        "messages": [msg.__dict__ for msg in build_messages(config, params)],
        "stream": bool(stream),
    }
    try:
        body = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        body.encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"failed to construct request payload: {exc}") from exc
    return body
