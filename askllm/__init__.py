"""askllm - ask a chat-completion LLM endpoint from the command line."""

__version__ = "1.0.0"

from .config import Configuration
from .errors import AskLLMError
from .session import RunMode, Session, run

__all__ = [
    "AskLLMError",
    "Configuration",
    "RunMode",
    "Session",
    "__version__",
    "run",
]
