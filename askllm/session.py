from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Optional, TextIO

from rich.console import Console
from rich.markup import escape

from .config import Configuration
from .errors import AskLLMError
from .events import EventBus, Stage
from .llm.client import ChatClient
from .llm.request import build_request
from .llm.types import ChatRequestParams, ChatResult

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

STREAM_USAGE_NOTICE = "Token usage unavailable in streaming mode"


@dataclass(frozen=True)
class RunMode:
    stream: bool = False
    dry_run: bool = False
    show_usage: bool = False
    echo: bool = False


class Session:
    """
    One question, one request.

    Stages run BUILDING_REQUEST -> DISPATCHING -> COMPLETED, and any error
    jumps straight to FAILED. The mode is fixed before dispatch and there is no
    fallback from one mode to the other.
    """

    def __init__(
        self,
        config: Configuration,
        mode: RunMode,
        client: Optional[ChatClient] = None,
        out: Optional[TextIO] = None,
        console: Optional[Console] = None,
    ):
        self.config = config
        self.mode = mode
        self.client = client
        self.out = out
        self.console = console or Console(stderr=True, soft_wrap=True)
        self.events = EventBus()
        self.result: Optional[ChatResult] = None
        self._answer_started = False

    def run(self, params: ChatRequestParams) -> int:
        try:
            self._run(params)
        except AskLLMError as exc:
            self.events.enter(Stage.FAILED, error=type(exc).__name__)
            self.console.print(f"[red]Error:[/red] {escape(str(exc))}")
            return EXIT_FAILURE
        self.events.enter(Stage.COMPLETED)
        return EXIT_SUCCESS

    def _run(self, params: ChatRequestParams) -> None:
        self.events.enter(Stage.BUILDING_REQUEST)
        self.config.validate()
        if self.mode.echo:
            self._write(f"\nInput: {params.user_query}\n")

        payload = build_request(self.config, params, stream=self.mode.stream)
        if self.mode.dry_run:
            self._write(payload + "\n")
            return

        self.events.enter(Stage.DISPATCHING, stream=self.mode.stream)
        client = self.client or ChatClient(self.config)
        if self.mode.stream:
            self._run_stream(client, payload)
        else:
            self._run_buffered(client, payload)

    def _run_buffered(self, client: ChatClient, payload: str) -> None:
        self.result = client.complete(payload)
        self._write("\nAnswer: ")
        self._write(self.result.content + "\n")
        if self.mode.show_usage:
            self._write(format_usage(self.result))

    def _run_stream(self, client: ChatClient, payload: str) -> None:
        self._answer_started = False
        try:
            decoder = client.stream(payload, self._emit_delta, show_usage=self.mode.show_usage)
        except AskLLMError:
            if self._answer_started:
                self._write("\n")
            raise
        self._start_answer()
        self._write("\n")
        if decoder.show_usage:
            self.console.print(f"[yellow]{STREAM_USAGE_NOTICE}[/yellow]")

    def _start_answer(self) -> None:
        if not self._answer_started:
            self._answer_started = True
            self._write("\nAnswer: ")

    def _emit_delta(self, text: str) -> None:
        self._start_answer()
        self._write(text)

    def _write(self, text: str) -> None:
        out = self.out or sys.stdout
        out.write(text)
        out.flush()


def format_usage(result: ChatResult) -> str:
    return (
        "\nToken Usage:\n"
        f"  Prompt: {result.input_token_count}\n"
        f"  Completion: {result.output_token_count}\n"
        f"  Total: {result.total_token_count}\n"
    )


def run(
    config: Configuration,
    params: ChatRequestParams,
    mode: RunMode,
    client: Optional[ChatClient] = None,
    out: Optional[TextIO] = None,
    console: Optional[Console] = None,
) -> int:
    return Session(config, mode, client=client, out=out, console=console).run(params)
