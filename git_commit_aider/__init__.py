#!/usr/bin/env python3

from .git_commit import commit_staged_changes
from .main import cli, configure_logging, run
from .mcp import mcp
from .shell import get_subprocess_env, run_command

__version__ = "0.1.0"

__all__ = [
    "configure_logging",
    "run",
    "mcp",
    "commit_staged_changes",
    "run_command",
    "get_subprocess_env",
    "cli",
]
