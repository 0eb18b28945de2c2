import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .config import dump_configuration, resolve_configuration
from .errors import ConfigurationError
from .llm.types import ChatRequestParams
from .session import EXIT_FAILURE, EXIT_SUCCESS, RunMode, Session


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="askllm",
        description="Command-line interface for chat-completion LLM APIs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  askllm -p                          # Show current config
  askllm -j -e "Your question"       # Generate JSON and echo input
  askllm -s -c "Your question"       # Stream the answer, ask for token usage

Configuration (first readable file wins):
  ./.adsenv, ~/.adsenv, ~/.config/.adsenv, /etc/ads/.adsenv
  keys: API_KEY, BASE_URL, MODEL, SYSTEM_PROMPT
  ASKLLM_<KEY> environment variables override the file
""",
    )
    parser.add_argument("question", nargs="?", help="question to send")
    parser.add_argument("-p", "--print-env", action="store_true", help="print current configuration and exit")
    parser.add_argument("-j", "--just-json", action="store_true", help="generate request JSON without sending it")
    parser.add_argument("-c", "--count-token", action="store_true", help="show token usage statistics")
    parser.add_argument("-e", "--echo", action="store_true", help="echo the question")
    parser.add_argument("-s", "--stream", action="store_true", help="stream the answer as it is generated")
    parser.add_argument("-S", "--system-prompt", metavar="TEXT", help="system prompt for this question")
    parser.add_argument("--config", type=Path, metavar="PATH", help="configuration file to use")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging on stderr")
    parser.add_argument("--version", action="version", version=f"askllm {__version__}")
    return parser


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    console = Console(stderr=True, soft_wrap=True)

    try:
        config = resolve_configuration(args.config)
    except ConfigurationError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        return EXIT_FAILURE

    if args.print_env:
        print(dump_configuration(config))
        return EXIT_SUCCESS

    if not args.question:
        parser.error("missing required QUESTION argument")

    mode = RunMode(
        stream=args.stream,
        dry_run=args.just_json,
        show_usage=args.count_token,
        echo=args.echo,
    )
    params = ChatRequestParams(user_query=args.question, custom_prompt=args.system_prompt)
    return Session(config, mode, console=console).run(params)


if __name__ == "__main__":
    sys.exit(main())
