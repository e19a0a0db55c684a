#!/usr/bin/env python3

"""Committer identity resolution.

Each field of the identity is resolved on its own: a non-empty
``GIT_COMMITTER_NAME`` / ``GIT_COMMITTER_EMAIL`` wins, otherwise the value is
asked from ``git config`` in the target working directory.
"""

import enum
import logging
import os
import subprocess
from dataclasses import dataclass, field as dataclass_field
from typing import Awaitable, Callable, Dict, Mapping, Optional

from . import shell
from .shell import describe_command_error, run_command

__all__ = [
    "CommandRunner",
    "Identity",
    "IdentityField",
    "IdentitySource",
    "IdentityResolutionError",
    "resolve_field",
    "resolve_identity",
]

log = logging.getLogger(__name__)

CommandRunner = Callable[..., Awaitable[subprocess.CompletedProcess[str]]]


class IdentityField(enum.Enum):
    NAME = "name"
    EMAIL = "email"

    @property
    def config_key(self) -> str:
        return f"user.{self.value}"

    @property
    def env_var(self) -> str:
        return f"GIT_COMMITTER_{self.value.upper()}"


class IdentitySource(enum.Enum):
    ENVIRONMENT_OVERRIDE = "environment override"
    EXTERNAL_CONFIG_QUERY = "git config"


@dataclass(frozen=True)
class Identity:
    name: str
    email: str
    # Where each field came from; informational, not part of equality
    sources: Dict["IdentityField", IdentitySource] = dataclass_field(
        default_factory=dict, compare=False
    )


class IdentityResolutionError(Exception):
    """Raised when one or more identity fields could not be determined.

    ``failures`` maps every field that failed to the diagnostic text of the
    underlying query.
    """

    def __init__(self, failures: Dict[IdentityField, str]) -> None:
        self.failures = dict(failures)
        super().__init__(
            "\n".join(
                _guidance(field, detail) for field, detail in self.failures.items()
            )
        )

    @property
    def fields(self) -> list[IdentityField]:
        return list(self.failures)


def _guidance(field: IdentityField, detail: str) -> str:
    message = f"Could not determine git {field.config_key}"
    if detail:
        message += f" ({detail})"
    return (
        f"{message}. Configure it with `git config {field.config_key} <value>` "
        f"or set the {field.env_var} environment variable."
    )


async def resolve_field(
    field: IdentityField,
    env_value: Optional[str],
    query: Callable[[], Awaitable[subprocess.CompletedProcess[str]]],
) -> str:
    """Resolve a single identity field.

    Args:
        field: Which field is being resolved, used for logging and errors
        env_value: Value of the corresponding override variable, if any
        query: Coroutine function asking git config for the value

    Returns:
        The resolved, non-empty value

    Raises:
        IdentityResolutionError: If the query fails or yields an empty value
    """
    if env_value:
        log.info(
            f"Using {field.env_var} for {field.config_key} "
            f"({IdentitySource.ENVIRONMENT_OVERRIDE.value})"
        )
        return env_value

    try:
        result = await query()
    except (subprocess.SubprocessError, OSError, ValueError) as e:
        log.warning(f"Query for {field.config_key} failed: {e}")
        raise IdentityResolutionError({field: describe_command_error(e)}) from e

    value = str(result.stdout).strip()
    if not value:
        raise IdentityResolutionError({field: "value is empty"})

    log.debug(
        f"Resolved {field.config_key} from "
        f"{IdentitySource.EXTERNAL_CONFIG_QUERY.value}: {value}"
    )
    return value


async def resolve_identity(
    cwd: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    runner: CommandRunner = run_command,
    git: str = "git",
) -> Identity:
    """Resolve the committer name and email for a working directory.

    Both fields are always attempted; if either fails, a single
    IdentityResolutionError covering every failed field is raised.

    Args:
        cwd: Directory to run git config in, None for the process cwd
        environ: Environment to read overrides from; defaults to the
            subprocess environment, falling back to os.environ
        runner: Coroutine function used to run git
        git: The git executable

    Returns:
        The resolved Identity

    Raises:
        IdentityResolutionError: If any field could not be resolved
    """
    if environ is None:
        environ = shell.get_subprocess_env() or os.environ

    resolved: Dict[IdentityField, str] = {}
    sources: Dict[IdentityField, IdentitySource] = {}
    failures: Dict[IdentityField, str] = {}
    for field in IdentityField:

        async def query(
            field: IdentityField = field,
        ) -> subprocess.CompletedProcess[str]:
            return await runner([git, "config", field.config_key], cwd=cwd)

        env_value = environ.get(field.env_var)
        try:
            resolved[field] = await resolve_field(field, env_value, query)
        except IdentityResolutionError as e:
            failures.update(e.failures)
            continue
        sources[field] = (
            IdentitySource.ENVIRONMENT_OVERRIDE
            if env_value
            else IdentitySource.EXTERNAL_CONFIG_QUERY
        )

    if failures:
        raise IdentityResolutionError(failures)

    return Identity(
        name=resolved[IdentityField.NAME],
        email=resolved[IdentityField.EMAIL],
        sources=sources,
    )
