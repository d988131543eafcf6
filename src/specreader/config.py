"""Configuration resolution for specreader.

* **Project config** -- an optional ``./specreader.json`` holding a
  :class:`~specreader.models.ReaderConfig` (``file``, ``additional_files``,
  ``passed_files``). See :func:`load_project_config`.
* **Precedence resolution** -- :func:`resolve_config` layers CLI arguments
  and environment variables over the project config.
* **Data directory** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.specreader/`` elsewhere. Only crash logs are written there.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from specreader.exceptions import ConfigError
from specreader.models import ReaderConfig

_APP_NAME = "specreader"
_PROJECT_CONFIG_FILENAME = "specreader.json"

ENV_FILE = "SPECREADER_FILE"
ENV_ADDITIONAL_FILES = "SPECREADER_ADDITIONAL_FILES"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/specreader/`` (default ``~/.local/share/specreader/``).
    On macOS/Windows: ``~/.specreader/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Project-local config ---


def load_project_config(directory: Optional[Path] = None) -> Optional[ReaderConfig]:
    """Load ``specreader.json`` from *directory* (default: the working directory).

    Relative file names in the project config are taken relative to the
    directory holding it.

    Returns:
        The parsed config, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    directory = directory or Path.cwd()
    path = directory / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        config = ReaderConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc

    def _anchor(name: str) -> str:
        return str(directory / name) if not Path(name).is_absolute() else name

    return ReaderConfig(
        file=_anchor(config.file) if config.file else None,
        additional_files=[_anchor(name) for name in config.additional_files],
        passed_files=[_anchor(name) for name in config.passed_files],
    )


# --- Precedence resolution ---


def resolve_config(
    cli_file: Optional[str] = None,
    cli_additional: Optional[list[str]] = None,
) -> ReaderConfig:
    """Resolve the reader config with full precedence chain.

    Precedence (high to low):
        1. CLI arguments (``cli_file``, ``cli_additional``)
        2. Environment variables (``SPECREADER_FILE``,
           ``SPECREADER_ADDITIONAL_FILES`` -- ``os.pathsep`` separated)
        3. Project config (``./specreader.json``)
        4. Defaults

    Raises:
        ConfigError: If no primary file is configured anywhere, or the
            project config is invalid.
    """
    config = load_project_config() or ReaderConfig()

    env_file = os.environ.get(ENV_FILE)
    if env_file:
        config.file = env_file
    env_additional = os.environ.get(ENV_ADDITIONAL_FILES)
    if env_additional:
        config.additional_files = [name for name in env_additional.split(os.pathsep) if name]

    if cli_file is not None:
        config.file = cli_file
    if cli_additional:
        config.additional_files = list(cli_additional)

    if not config.file:
        raise ConfigError(
            f"No document to read. Pass a file, set {ENV_FILE}, "
            f"or add 'file' to {_PROJECT_CONFIG_FILENAME}"
        )
    return config
