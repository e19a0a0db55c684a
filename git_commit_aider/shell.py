#!/usr/bin/env python3

import asyncio
import logging
import subprocess
from typing import Dict, List, Optional

__all__ = [
    "run_command",
    "get_subprocess_env",
    "describe_command_error",
]

log = logging.getLogger(__name__)


def get_subprocess_env() -> Optional[Dict[str, str]]:
    """
    Get the environment variables to be used for subprocess execution.
    This function can be mocked in tests to control the environment.

    Returns:
        Optional dictionary of environment variables, or None to use the current environment.
    """
    return None


async def run_command(
    cmd: List[str],
    cwd: Optional[str] = None,
    check: bool = True,
    wait_time: Optional[float] = None,
    input: Optional[str] = None,
) -> subprocess.CompletedProcess[str]:
    """
    Run a subprocess command with consistent logging asynchronously.

    The arguments are handed to the process directly, never through a shell,
    so message text cannot be interpreted as shell syntax.

    Args:
        cmd: Command to run as a list of strings
        cwd: Current working directory for the command, None for the process cwd
        check: If True, raise CalledProcessError if the command returns non-zero exit code
        wait_time: Timeout in seconds, None to wait indefinitely
        input: Input to pass to the subprocess's stdin

    Returns:
        CompletedProcess instance with attributes args, returncode, stdout, stderr

    Raises:
        subprocess.CalledProcessError: If check=True and process returns non-zero
            exit code. The captured output is available as ``stdout``/``stderr``.
        subprocess.TimeoutExpired: If the process times out
        OSError: If the executable or the working directory does not exist

    Notes:
        Environment variables are obtained from get_subprocess_env() function.
    """
    log_cmd = " ".join(str(c) for c in cmd)
    log.info(f"Running command: {log_cmd}")

    stdin_pipe = asyncio.subprocess.PIPE if input is not None else None
    input_bytes = input.encode() if input is not None else None

    process = await asyncio.create_subprocess_exec(
        *cmd,
        cwd=cwd,
        env=get_subprocess_env(),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        stdin=stdin_pipe,
    )

    try:
        stdout_data, stderr_data = await asyncio.wait_for(
            process.communicate(input=input_bytes), timeout=wait_time
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise subprocess.TimeoutExpired(
            cmd, float(wait_time) if wait_time is not None else 0.0
        )

    stdout = stdout_data.decode(errors="replace") if stdout_data else ""
    stderr = stderr_data.decode(errors="replace") if stderr_data else ""
    if stdout:
        log.debug(f"Command stdout: {stdout}")
    if stderr:
        log.debug(f"Command stderr: {stderr}")

    returncode = 0 if process.returncode is None else process.returncode
    log.debug(f"Command return code: {returncode}")

    if check and returncode != 0:
        raise subprocess.CalledProcessError(
            returncode, cmd, output=stdout, stderr=stderr
        )

    return subprocess.CompletedProcess[str](
        args=cmd,
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
    )


def describe_command_error(error: BaseException) -> str:
    """Pick the most useful diagnostic text from a failed command.

    Prefers captured stderr, then captured stdout, then the exception's own
    summary. Returns an empty string if none of them carry any text.
    """
    for attr in ("stderr", "stdout"):
        text = str(getattr(error, attr, None) or "").strip()
        if text:
            return text
    return str(error).strip()
