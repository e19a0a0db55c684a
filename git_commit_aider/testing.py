#!/usr/bin/env python3


import asyncio
import json
import os
import subprocess
import sys
import tempfile
import unittest
from contextlib import asynccontextmanager
from typing import (
    Any,
    AsyncGenerator,
    Dict,
    List,
    Optional,
    Union,
    cast,
)
from unittest import mock

from expecttest import TestCase
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client


class MCPEndToEndTestCase(TestCase, unittest.IsolatedAsyncioTestCase):
    """Base class for end-to-end tests of git-commit-aider.

    With ``in_process`` set, tools are called as plain coroutines; otherwise
    a real server is spawned and driven through an MCP client session.
    """

    in_process: bool = True

    async def asyncSetUp(self):
        """Async setup method to prepare the test environment."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.testing_time = "1112911993"  # Fixed timestamp for git

        self.env = os.environ.copy()
        # Set environment variables for reproducible git behavior
        self.env.setdefault("GIT_TERMINAL_PROMPT", "0")
        self.env.setdefault("EDITOR", ":")
        self.env.setdefault("GIT_MERGE_AUTOEDIT", "no")
        self.env["LANG"] = "C"
        self.env["LC_ALL"] = "C"
        self.env.setdefault("PAGER", "cat")
        self.env.setdefault("TZ", "UTC")
        self.env.setdefault("TERM", "dumb")
        # Keep the user's global and system git config out of the tests
        self.env["GIT_CONFIG_GLOBAL"] = os.devnull
        self.env["GIT_CONFIG_NOSYSTEM"] = "1"
        self.env["GIT_COMMITTER_DATE"] = f"{self.testing_time} -0700"
        self.env["GIT_AUTHOR_DATE"] = f"{self.testing_time} -0700"
        # Identity comes from the repository config unless a test sets these
        for var in (
            "GIT_AUTHOR_NAME",
            "GIT_AUTHOR_EMAIL",
            "GIT_COMMITTER_NAME",
            "GIT_COMMITTER_EMAIL",
        ):
            self.env.pop(var, None)

        # Log files go outside the repository and away from the user's home
        self.config_dir = tempfile.TemporaryDirectory()
        with open(os.path.join(self.config_dir.name, "config.toml"), "w") as f:
            f.write("[logger]\n")
            f.write(f"path = {json.dumps(os.path.join(self.config_dir.name, 'logs'))}\n")
        self.env["GIT_COMMIT_AIDER_CONFIG_DIR"] = self.config_dir.name

        self.env_patcher = mock.patch(
            "git_commit_aider.shell.get_subprocess_env", return_value=self.env
        )
        self.env_patcher.start()

        await self.setup_repository()

    async def asyncTearDown(self):
        """Async teardown to clean up after the test."""
        self.env_patcher.stop()
        self.temp_dir.cleanup()
        self.config_dir.cleanup()

    async def setup_repository(self):
        """Setup a git repository for testing with an initial commit.

        This method can be overridden by subclasses to customize the repository setup.
        """
        try:
            await self.git_run(["init", "-b", "main"])
        except subprocess.CalledProcessError:
            self.fail(
                "git version is too old for tests! Please install a newer version of git."
            )
        await self.git_run(["config", "user.email", "test@example.com"])
        await self.git_run(["config", "user.name", "Test User"])

        readme_path = os.path.join(self.temp_dir.name, "README.md")
        with open(readme_path, "w") as f:  # noqa: ASYNC230
            f.write("# Test Repository\n")

        await self.git_run(["add", "README.md"])
        await self.git_run(["commit", "-m", "Initial commit"])

    def write_file(self, name: str, content: str) -> str:
        """Write a file into the test repository and return its path."""
        path = os.path.join(self.temp_dir.name, name)
        with open(path, "w") as f:
            f.write(content)
        return path

    def normalize_path(self, text: Any) -> Any:
        """Normalize temporary directory paths in output text."""
        if isinstance(text, str) and self.temp_dir and self.temp_dir.name:
            return text.replace(self.temp_dir.name, "/tmp/test_dir")
        return text

    def extract_text_from_result(self, result: Any) -> str:
        """Extract text content from various result formats for assertions.

        Args:
            result: The result object (could be string, list of TextContent, etc.)

        Returns:
            str: The extracted text content
        """
        if isinstance(result, str):
            return result

        if isinstance(result, list):
            if not result:
                return "[]"
            obj = result[0]
            text_attr = getattr(obj, "text", None)
            if isinstance(text_attr, str):
                return text_attr
            return str(result)

        return str(result)

    async def _call_in_process(self, tool_name: str, kwargs: Dict[str, Any]) -> Any:
        if tool_name == "commit_staged":
            from git_commit_aider.tools.commit_staged import commit_staged

            return await commit_staged(**kwargs)

        raise ValueError(f"Unknown tool: {tool_name}")

    async def call_tool_assert_error(
        self,
        session: Optional[ClientSession],
        tool_name: str,
        tool_params: Dict[str, Any],
    ) -> str:
        """Call a tool and assert that it fails (isError=True).

        Returns:
            str: The extracted, path-normalized error message

        Raises:
            AssertionError: If the tool call does not result in an error
        """
        if not self.in_process:
            assert session is not None, "Session cannot be None when in_process=False"
            result = await session.call_tool(tool_name, tool_params)
            self.assertTrue(result.isError, result)
            error_message = self.extract_text_from_result(result.content)
            return cast(str, self.normalize_path(error_message))

        try:
            await self._call_in_process(tool_name, tool_params)
        except Exception as e:
            error_message = f"Error executing tool {tool_name}: {e!s}"
            return cast(str, self.normalize_path(error_message))
        self.fail(f"Tool call to {tool_name} succeeded, expected to fail")

    async def call_tool_assert_success(
        self,
        session: Optional[ClientSession],
        tool_name: str,
        tool_params: Dict[str, Any],
    ) -> str:
        """Call a tool and assert that it succeeds (isError=False).

        Returns:
            str: The extracted, path-normalized text content of the result

        Raises:
            AssertionError: If the tool call results in an error
        """
        if self.in_process:
            result = await self._call_in_process(tool_name, tool_params)
            return self.extract_text_from_result(self.normalize_path(result))

        assert session is not None, "Session cannot be None when in_process=False"
        result = await session.call_tool(tool_name, tool_params)
        self.assertFalse(result.isError, result)
        return cast(
            str, self.normalize_path(self.extract_text_from_result(result.content))
        )

    @asynccontextmanager
    async def create_client_session(
        self,
    ) -> AsyncGenerator[Optional[ClientSession], None]:
        """Create an MCP client session connected to the git-commit-aider server."""
        if self.in_process:
            yield None
            return

        server_params = StdioServerParameters(
            command=sys.executable,
            args=["-m", "git_commit_aider"],
            env=self.env,
        )

        async with stdio_client(server_params) as (read, write):
            async with ClientSession(read, write) as session:
                await session.initialize()
                yield session

    async def git_run(
        self,
        args: List[str],
        check: bool = True,
        capture_output: bool = False,
        text: bool = False,
        **kwargs: Any,
    ) -> Union[subprocess.CompletedProcess[bytes], str]:
        """Run git command asynchronously with appropriate temp_dir and env settings.

        Args:
            args: List of git command arguments (without 'git' prefix)
            check: If True, raises if the command returns a non-zero exit code
            capture_output: If True, captures stdout and stderr
            text: If True, decodes stdout and stderr using the preferred encoding
            **kwargs: Additional keyword arguments to pass to the subprocess

        Returns:
            If capture_output is False: subprocess.CompletedProcess instance
            If capture_output is True and text is True: The stdout content as string

        Example:
            log_output = await self.git_run(["log", "--oneline"], capture_output=True, text=True)
        """
        cmd = ["git"] + args

        kwargs.setdefault("cwd", self.temp_dir.name)
        kwargs.setdefault("env", self.env)

        if capture_output:
            kwargs.setdefault("stdout", subprocess.PIPE)
            kwargs.setdefault("stderr", subprocess.PIPE)

        proc = await asyncio.create_subprocess_exec(
            *cmd,
            **kwargs,
        )

        stdout, stderr = await proc.communicate()

        result = subprocess.CompletedProcess[bytes](
            args=cmd,
            returncode=proc.returncode or 0,
            stdout=stdout,
            stderr=stderr,
        )

        if check and proc.returncode and proc.returncode != 0:
            cmd_str = " ".join(cmd)
            raise subprocess.CalledProcessError(
                proc.returncode, cmd_str, output=stdout, stderr=stderr
            )

        if capture_output and text:
            return stdout.decode().strip() if stdout else ""
        return result
