from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ChatMessage:
    role: str  # "system" | "user"
    content: str


@dataclass(frozen=True)
class ChatRequestParams:
    user_query: str
    custom_prompt: Optional[str] = None  # overrides Configuration.system_prompt


@dataclass
class HTTPResponse:
    body: bytearray = field(default_factory=bytearray)
    status_code: int = 0

    def write(self, chunk: bytes) -> None:
        self.body.extend(chunk)


@dataclass(frozen=True)
class ChatResult:
    content: str
    input_token_count: int = 0
    output_token_count: int = 0
    total_token_count: int = 0
