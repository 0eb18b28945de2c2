from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

import requests

from .. import __version__
from ..errors import RemoteAPIError, TransportError
from ..utils import truncate

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
USER_AGENT = f"askllm/{__version__}"

Sink = Callable[[bytes], None]


class Transport:
    """
    Blocking HTTP POST shared by the buffered and streaming paths.

    The response body is handed to ``sink`` chunk by chunk as it arrives; the
    buffered caller accumulates, the streaming caller decodes. ``timeout`` is
    the socket timeout, so it bounds connecting and every single read, which
    also makes it the idle limit of a stalled stream.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, http: Optional[Any] = None):
        self.timeout = timeout
        self.http = http if http is not None else requests

    def headers(self, api_key: str) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
            "User-Agent": USER_AGENT,
        }

    def post(self, url: str, api_key: str, body: str, sink: Sink) -> int:
        logger.debug("POST %s (%d bytes)", url, len(body))
        try:
            resp = self.http.post(
                url,
                data=body.encode("utf-8"),
                headers=self.headers(api_key),
                timeout=self.timeout,
                stream=True,
            )
        except requests.Timeout as exc:
            raise TransportError(f"request timed out after {self.timeout}s", cause=exc) from exc
        except requests.RequestException as exc:
            raise TransportError(f"HTTP request failed: {exc}", cause=exc) from exc

        try:
            status = resp.status_code
            logger.debug("HTTP status %s", status)
            if status != 200:
                raise RemoteAPIError(_status_message(status, _read_text(resp)), status_code=status)
            try:
                for chunk in resp.iter_content(chunk_size=None):
                    if chunk:
                        sink(chunk)
            except requests.RequestException as exc:
                raise TransportError(f"connection failed while reading response: {exc}", cause=exc) from exc
            return status
        finally:
            resp.close()


def _read_text(resp) -> str:
    try:
        return resp.text or ""
    except requests.RequestException:
        return ""


def _status_message(status: int, text: str) -> str:
    detail = ""
    try:
        data = json.loads(text)
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        message = data["error"].get("message")
        if isinstance(message, str):
            detail = message
    if not detail:
        detail = truncate(text.strip()) or "No response content"
    return f"HTTP error {status}: {detail}"
