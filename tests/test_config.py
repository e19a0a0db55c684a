#!/usr/bin/env python3

"""Tests for the user configuration file."""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from git_commit_aider import config


class ConfigTest(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)

        # Point every lookup location into the temp dir
        self.home = Path(self.temp_dir.name) / "home"
        self.home.mkdir()
        home_patch = patch("pathlib.Path.home", return_value=self.home)
        home_patch.start()
        self.addCleanup(home_patch.stop)

        env = {
            k: v
            for k, v in os.environ.items()
            if k not in ("GIT_COMMIT_AIDER_CONFIG_DIR", "XDG_CONFIG_HOME")
        }
        env_patch = patch.dict(os.environ, env, clear=True)
        env_patch.start()
        self.addCleanup(env_patch.stop)

    def write(self, path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    def test_defaults_without_config_file(self):
        self.assertEqual(config.get_config_path(), self.home / ".git-commit-aiderrc")
        self.assertEqual(config.get_logger_verbosity(), "INFO")
        self.assertEqual(config.get_git_executable(), "git")

    def test_config_dir_takes_precedence(self):
        config_dir = Path(self.temp_dir.name) / "config"
        path = self.write(config_dir / "config.toml", '[git]\nexecutable = "/opt/git"\n')
        self.write(
            Path(self.temp_dir.name) / "xdg" / "git-commit-aider" / "config.toml",
            '[git]\nexecutable = "/xdg/git"\n',
        )
        os.environ["GIT_COMMIT_AIDER_CONFIG_DIR"] = str(config_dir)
        os.environ["XDG_CONFIG_HOME"] = str(Path(self.temp_dir.name) / "xdg")

        self.assertEqual(config.get_config_path(), path)
        self.assertEqual(config.get_git_executable(), "/opt/git")

    def test_xdg_config_home(self):
        xdg = Path(self.temp_dir.name) / "xdg"
        path = self.write(
            xdg / "git-commit-aider" / "config.toml", '[logger]\nverbosity = "DEBUG"\n'
        )
        os.environ["XDG_CONFIG_HOME"] = str(xdg)

        self.assertEqual(config.get_config_path(), path)
        self.assertEqual(config.get_logger_verbosity(), "DEBUG")
        # Unset keys keep their defaults
        self.assertEqual(config.get_git_executable(), "git")

    def test_missing_config_dir_file_falls_through(self):
        os.environ["GIT_COMMIT_AIDER_CONFIG_DIR"] = str(Path(self.temp_dir.name) / "empty")
        self.assertEqual(config.get_config_path(), self.home / ".git-commit-aiderrc")

    def test_logger_path_expands_tilde(self):
        self.write(self.home / ".git-commit-aiderrc", '[logger]\npath = "~/logs"\n')
        with patch("os.path.expanduser", side_effect=lambda p: p.replace("~", "/home/u")):
            self.assertEqual(config.get_logger_path(), "/home/u/logs")

    def test_malformed_config_uses_defaults(self):
        self.write(self.home / ".git-commit-aiderrc", "[logger\nverbosity = ")
        with patch("sys.stderr"):
            loaded = config.load_config()
        self.assertEqual(loaded, config.DEFAULT_CONFIG)

    def test_load_config_does_not_mutate_defaults(self):
        self.write(self.home / ".git-commit-aiderrc", '[git]\nexecutable = "/opt/git"\n')
        config.load_config()
        self.assertEqual(config.DEFAULT_CONFIG["git"]["executable"], "git")


if __name__ == "__main__":
    unittest.main()
