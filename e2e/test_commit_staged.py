#!/usr/bin/env python3

"""End-to-end tests for the commit_staged tool against a real repository."""

import os
import unittest

from git_commit_aider.testing import MCPEndToEndTestCase


class CommitStagedTest(MCPEndToEndTestCase):
    """Commit staged changes in a temporary repository."""

    async def head_author(self) -> str:
        return await self.git_run(
            ["log", "-1", "--format=%an <%ae>"], capture_output=True, text=True
        )

    async def commit_count(self) -> str:
        return await self.git_run(
            ["rev-list", "--count", "HEAD"], capture_output=True, text=True
        )

    async def test_commits_as_aider(self):
        self.write_file("feature.py", "print('feature')\n")
        await self.git_run(["add", "feature.py"])

        async with self.create_client_session() as session:
            result = await self.call_tool_assert_success(
                session,
                "commit_staged",
                {"message": "feat: add feature", "cwd": self.temp_dir.name},
            )

        self.assertTrue(result.startswith("Commit successful:"), result)
        self.assertIn("feat: add feature", result)
        self.assertEqual(await self.head_author(), "Test User (aider) <test@example.com>")

        # Only the author is rewritten
        committer = await self.git_run(
            ["log", "-1", "--format=%cn <%ce>"], capture_output=True, text=True
        )
        self.assertEqual(committer, "Test User <test@example.com>")
        self.assertEqual(await self.commit_count(), "2")

    async def test_environment_overrides_identity(self):
        self.env["GIT_COMMITTER_NAME"] = "Ada"
        self.env["GIT_COMMITTER_EMAIL"] = "ada@x.io"
        self.write_file("bug.py", "fixed = True\n")
        await self.git_run(["add", "bug.py"])

        async with self.create_client_session() as session:
            result = await self.call_tool_assert_success(
                session,
                "commit_staged",
                {"message": "fix bug", "cwd": self.temp_dir.name},
            )

        self.assertTrue(result.startswith("Commit successful:"), result)
        self.assertEqual(await self.head_author(), "Ada (aider) <ada@x.io>")

    async def test_message_is_kept_verbatim(self):
        message = 'fix: handle "quotes" and $(subshells)\n\nBody with `backticks`'
        self.write_file("quotes.txt", "q\n")
        await self.git_run(["add", "quotes.txt"])

        async with self.create_client_session() as session:
            await self.call_tool_assert_success(
                session,
                "commit_staged",
                {"message": message, "cwd": self.temp_dir.name},
            )

        body = await self.git_run(["log", "-1", "--format=%B"], capture_output=True, text=True)
        self.assertEqual(body, message)

    async def test_clean_tree_is_skipped(self):
        async with self.create_client_session() as session:
            result = await self.call_tool_assert_success(
                session,
                "commit_staged",
                {"message": "nothing here", "cwd": self.temp_dir.name},
            )

        self.assertTrue(result.startswith("Git commit skipped:"), result)
        self.assertIn("nothing to commit, working tree clean", result)
        self.assertEqual(await self.commit_count(), "1")

    async def test_unstaged_changes_are_skipped(self):
        self.write_file("README.md", "# Changed but not staged\n")

        async with self.create_client_session() as session:
            result = await self.call_tool_assert_success(
                session,
                "commit_staged",
                {"message": "not staged", "cwd": self.temp_dir.name},
            )

        self.assertTrue(result.startswith("Git commit skipped:"), result)
        self.assertIn("no changes added to commit", result)
        self.assertEqual(await self.commit_count(), "1")

    async def test_missing_email_fails_before_commit(self):
        await self.git_run(["config", "--unset", "user.email"])
        self.write_file("staged.txt", "staged\n")
        await self.git_run(["add", "staged.txt"])

        async with self.create_client_session() as session:
            error = await self.call_tool_assert_error(
                session,
                "commit_staged",
                {"message": "should not commit", "cwd": self.temp_dir.name},
            )

        self.assertTrue(
            error.startswith("Error executing tool commit_staged: Git commit failed:"),
            error,
        )
        self.assertIn("Git commit failed: Could not determine git user.email", error)
        self.assertIn("GIT_COMMITTER_EMAIL", error)
        self.assertNotIn("user.name", error)
        self.assertEqual(await self.commit_count(), "1")

        # The staged change is still waiting to be committed
        staged = await self.git_run(
            ["diff", "--cached", "--name-only"], capture_output=True, text=True
        )
        self.assertEqual(staged, "staged.txt")

    async def test_commit_from_subdirectory(self):
        subdir = os.path.join(self.temp_dir.name, "pkg")
        os.makedirs(subdir)
        self.write_file(os.path.join("pkg", "module.py"), "x = 1\n")
        await self.git_run(["add", "pkg/module.py"])

        async with self.create_client_session() as session:
            result = await self.call_tool_assert_success(
                session,
                "commit_staged",
                {"message": "add module", "cwd": subdir},
            )

        self.assertTrue(result.startswith("Commit successful:"), result)
        self.assertEqual(await self.commit_count(), "2")

    async def test_nonexistent_cwd_fails(self):
        missing = os.path.join(self.temp_dir.name, "does-not-exist")

        async with self.create_client_session() as session:
            error = await self.call_tool_assert_error(
                session,
                "commit_staged",
                {"message": "nowhere", "cwd": missing},
            )

        self.assertIn("Git commit failed:", error)
        self.assertIn("/tmp/test_dir/does-not-exist", error)


class CommitStagedOverStdioTest(CommitStagedTest):
    """Run the same scenarios through a real MCP stdio session."""

    in_process = False


if __name__ == "__main__":
    unittest.main()
