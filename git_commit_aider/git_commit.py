#!/usr/bin/env python3

import logging
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from .identity import (
    CommandRunner,
    Identity,
    IdentityResolutionError,
    resolve_identity,
)
from .shell import describe_command_error, run_command

__all__ = [
    "AIDER_SUFFIX",
    "NOTHING_TO_COMMIT_MARKERS",
    "CommitSuccess",
    "CommitSkipped",
    "CommitFailed",
    "CommitOutcome",
    "build_author_string",
    "is_nothing_to_commit",
    "execute_commit",
    "commit_staged_changes",
]

log = logging.getLogger(__name__)

AIDER_SUFFIX = " (aider)"

# git prints these when a commit is attempted with nothing staged
NOTHING_TO_COMMIT_MARKERS = (
    "nothing to commit, working tree clean",
    "no changes added to commit",
)

UNKNOWN_ERROR = "Unknown error during git commit."


@dataclass(frozen=True)
class CommitSuccess:
    stdout: str
    stderr: str = ""

    is_error = False

    @property
    def text(self) -> str:
        text = f"Commit successful:\n{self.stdout}\n"
        if self.stderr:
            text += f"Stderr:\n{self.stderr}"
        return text


@dataclass(frozen=True)
class CommitSkipped:
    reason: str

    is_error = False

    @property
    def text(self) -> str:
        return f"Git commit skipped: {self.reason}"


@dataclass(frozen=True)
class CommitFailed:
    reason: str

    is_error = True

    @property
    def text(self) -> str:
        return f"Git commit failed: {self.reason}"


CommitOutcome = Union[CommitSuccess, CommitSkipped, CommitFailed]


def build_author_string(identity: Identity) -> str:
    """Build the ``--author`` value marking the commit as AI-assisted.

    Name and email are used verbatim, the same way git parses them.
    """
    return f"{identity.name}{AIDER_SUFFIX} <{identity.email}>"


def is_nothing_to_commit(text: str) -> bool:
    """Check whether git output reports that there was nothing to commit."""
    return any(marker in text for marker in NOTHING_TO_COMMIT_MARKERS)


async def execute_commit(
    message: str,
    identity: Identity,
    cwd: Optional[str] = None,
    runner: CommandRunner = run_command,
    git: str = "git",
) -> CommitOutcome:
    """Commit the staged changes with the AI-assisted author.

    Exactly one git commit is attempted; failures are reported, never retried.

    Args:
        message: The commit message, passed to git verbatim
        identity: The resolved committer identity
        cwd: Directory to commit in, None for the process cwd
        runner: Coroutine function used to run git
        git: The git executable

    Returns:
        CommitSuccess, CommitSkipped if there was nothing to commit, or
        CommitFailed with the best available diagnostic text
    """
    author = build_author_string(identity)
    log.debug(f"Committing in {cwd or 'current directory'} as {author}")

    try:
        result = await runner(
            [git, "commit", "-m", message, f"--author={author}"], cwd=cwd
        )
    except (subprocess.SubprocessError, OSError, ValueError) as e:
        # ValueError: arguments or cwd with an embedded NUL byte
        reason = describe_command_error(e) or UNKNOWN_ERROR
        if is_nothing_to_commit(reason):
            log.info(f"Nothing to commit: {reason}")
            return CommitSkipped(reason)
        log.warning(f"git commit failed: {reason}")
        return CommitFailed(reason)

    return CommitSuccess(stdout=str(result.stdout), stderr=str(result.stderr or ""))


async def commit_staged_changes(
    message: str,
    cwd: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    runner: CommandRunner = run_command,
    git: str = "git",
) -> CommitOutcome:
    """Resolve the committer identity and commit the staged changes.

    If the identity cannot be resolved, no commit is attempted.

    Args:
        message: The commit message
        cwd: Directory to run git in, None for the process cwd
        environ: Environment to read GIT_COMMITTER_* overrides from
        runner: Coroutine function used to run git
        git: The git executable

    Returns:
        The classified outcome of the request
    """
    try:
        identity = await resolve_identity(cwd, environ=environ, runner=runner, git=git)
    except IdentityResolutionError as e:
        log.warning(f"Identity resolution failed: {e}")
        return CommitFailed(str(e))

    return await execute_commit(message, identity, cwd=cwd, runner=runner, git=git)
