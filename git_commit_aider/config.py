"""User settings for git-commit-aider, read from an optional TOML file.

Only the first existing file is used: ``$GIT_COMMIT_AIDER_CONFIG_DIR/config.toml``,
then ``$XDG_CONFIG_HOME/git-commit-aider/config.toml``, then
``~/.git-commit-aiderrc``. Keys missing from the file keep their defaults.
"""

import copy
import os
import sys
from pathlib import Path
from typing import Any

import tomli

__all__ = [
    "get_config_path",
    "load_config",
    "get_logger_verbosity",
    "get_logger_path",
    "get_git_executable",
]

DEFAULT_CONFIG: dict[str, Any] = {
    "logger": {
        "verbosity": "INFO",
        "path": str(Path.home() / ".git-commit-aider"),
    },
    "git": {
        "executable": "git",
    },
}


def get_config_path() -> Path:
    """Pick the settings file; the returned home-directory fallback may not exist."""
    config_dir = os.environ.get("GIT_COMMIT_AIDER_CONFIG_DIR")
    if config_dir is not None:
        path = Path(config_dir) / "config.toml"
        if path.exists():
            return path

    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_home is not None:
        path = Path(xdg_home) / "git-commit-aider" / "config.toml"
        if path.exists():
            return path

    return Path.home() / ".git-commit-aiderrc"


def load_config() -> dict[str, Any]:
    """Return a fresh copy of the defaults with the user's file layered on top.

    An unreadable or malformed file leaves the defaults in place.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    config_path = get_config_path()

    if config_path.exists():
        try:
            with open(config_path, "rb") as f:
                user_config = tomli.load(f)

            _merge_configs(config, user_config)
        except (OSError, tomli.TOMLDecodeError) as e:
            # Logging is configured from this file, so report on stderr directly
            print(f"Error loading config from {config_path}: {e}", file=sys.stderr)

    return config


def _merge_configs(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            _merge_configs(base[key], value)
        else:
            base[key] = value


def get_logger_verbosity() -> str:
    """Level name from ``logger.verbosity``, e.g. ``"DEBUG"``."""
    return load_config()["logger"]["verbosity"]


def get_logger_path() -> str:
    """Log directory from ``logger.path``, with ``~`` expanded."""
    return os.path.expanduser(load_config()["logger"]["path"])


def get_git_executable() -> str:
    """``git.executable``, used for both identity queries and commits."""
    return load_config()["git"]["executable"]
