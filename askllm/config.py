"""Configuration discovery and loading.

Configuration lives in a ``KEY=VALUE`` file named ``.adsenv``. The first
readable file on the search path wins, and ``ASKLLM_*`` environment variables
override whatever the file says.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional
from urllib.parse import urlparse

from dotenv import dotenv_values

from .errors import ConfigurationError
from .utils import mask_secret

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".adsenv"
DEFAULT_MODEL = "deepseek-chat"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
ENV_PREFIX = "ASKLLM_"

# file key -> Configuration field
FILE_KEYS = {
    "API_KEY": "api_key",
    "BASE_URL": "base_url",
    "MODEL": "model_name",
    "SYSTEM_PROMPT": "system_prompt",
}


@dataclass(frozen=True)
class Configuration:
    api_key: str = ""
    base_url: str = ""
    model_name: str = DEFAULT_MODEL
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    def validate(self) -> None:
        if not self.api_key:
            raise ConfigurationError("API_KEY is not configured")
        if not self.base_url:
            raise ConfigurationError("BASE_URL is not configured")
        parsed = urlparse(self.base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"BASE_URL must be an absolute http(s) URL: {self.base_url}")
        if not self.model_name:
            raise ConfigurationError("MODEL is not configured")

    def to_dict(self, mask: bool = True) -> Dict[str, str]:
        return {
            "api_key": mask_secret(self.api_key) if mask else self.api_key,
            "base_url": self.base_url,
            "model": self.model_name,
            "system_prompt": self.system_prompt,
        }


def search_paths(home: Optional[str] = None) -> List[Path]:
    paths = [Path(".") / CONFIG_FILENAME]
    home = home if home is not None else os.environ.get("HOME")
    if home:
        paths.append(Path(home) / CONFIG_FILENAME)
        paths.append(Path(home) / ".config" / CONFIG_FILENAME)
    paths.append(Path("/etc/ads") / CONFIG_FILENAME)
    return paths


def locate_config_file(paths: Optional[List[Path]] = None) -> Optional[Path]:
    for path in paths if paths is not None else search_paths():
        if path.is_file() and os.access(path, os.R_OK):
            logger.debug("using configuration file %s", path)
            return path
    logger.debug("no configuration file found on search path")
    return None


def load_configuration(path: Path) -> Configuration:
    """Parse one configuration file on top of the defaults."""
    if not path.is_file():
        raise ConfigurationError(f"configuration file not found: {path}")
    try:
        raw = dotenv_values(path, interpolate=False, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"failed to read configuration file {path}: {exc}") from exc

    values = {}
    for key, value in raw.items():
        field_name = FILE_KEYS.get(key)
        if field_name is None or value is None:
            continue
        values[field_name] = value.strip()
    return replace(Configuration(), **values)


def apply_env_overrides(config: Configuration, environ: Optional[Mapping[str, str]] = None) -> Configuration:
    environ = os.environ if environ is None else environ
    values = {}
    for key, field_name in FILE_KEYS.items():
        value = environ.get(ENV_PREFIX + key, "").strip()
        if value:
            values[field_name] = value
    if values:
        logger.debug("environment overrides: %s", ", ".join(sorted(values)))
    return replace(config, **values)


def resolve_configuration(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    paths: Optional[List[Path]] = None,
) -> Configuration:
    """
    Build the effective configuration.

    An explicit ``path`` must exist. Without one, the search path is tried; when
    no file is found the ``ASKLLM_*`` environment variables must supply the
    settings instead, otherwise the file is reported missing.
    """
    if path is not None:
        return apply_env_overrides(load_configuration(Path(path)), environ)

    paths = paths if paths is not None else search_paths()
    found = locate_config_file(paths)
    if found is not None:
        return apply_env_overrides(load_configuration(found), environ)

    config = apply_env_overrides(Configuration(), environ)
    if config == Configuration():
        searched = ", ".join(str(p) for p in paths)
        raise ConfigurationError(f"configuration file not found (searched: {searched})")
    return config


def dump_configuration(config: Configuration) -> str:
    data = {
        "configuration": config.to_dict(mask=True),
        "constants": {
            "DEFAULT_MODEL": DEFAULT_MODEL,
            "DEFAULT_SYSTEM_PROMPT": DEFAULT_SYSTEM_PROMPT,
            "CONFIG_SEARCH_PATHS": [str(p) for p in search_paths()],
        },
    }
    return json.dumps(data, ensure_ascii=False, indent=2)
