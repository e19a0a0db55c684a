#!/usr/bin/env python3

import logging
import os
from typing import Optional

from mcp.server.fastmcp.exceptions import ToolError

from ..config import get_git_executable
from ..git_commit import commit_staged_changes
from ..mcp import mcp

__all__ = [
    "commit_staged",
]

log = logging.getLogger(__name__)


@mcp.tool(
    description='Commit staged changes with a specific message, appending "(aider)" to the committer name.'
)
async def commit_staged(message: str, cwd: Optional[str] = None) -> str:
    """Commit staged changes with a specific message.

    Args:
        message: The commit message.
        cwd: Optional: The working directory for the git command (defaults to the workspace root).

    Returns:
        A description of the commit, or of why nothing was committed

    Raises:
        ToolError: If the commit failed; the error text is reported to the client
    """
    working_dir = os.path.expanduser(cwd) if cwd else None
    log.info(f"commit_staged(cwd={working_dir!r})")

    outcome = await commit_staged_changes(
        message, cwd=working_dir, git=get_git_executable()
    )
    if outcome.is_error:
        raise ToolError(outcome.text)
    return outcome.text
