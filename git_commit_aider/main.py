#!/usr/bin/env python3

import logging
import os
import signal
from typing import List, Optional

import click
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from starlette.applications import Starlette
from starlette.routing import Mount

from .mcp import mcp
from .tools.commit_staged import commit_staged  # noqa: F401

__all__ = [
    "cli",
    "configure_logging",
    "create_sse_app",
    "run",
]


def configure_logging(log_file: str = "git-commit-aider.log") -> None:
    """Configure logging to write to both a file and the console.

    The log level is determined from the configuration file.
    It can be overridden by setting the GIT_COMMIT_AIDER_DEBUG_LEVEL environment
    variable, and GIT_COMMIT_AIDER_DEBUG=1 forces DEBUG.

    The log directory is read from the configuration file's logger.path setting.
    By default, logs are written to $HOME/.git-commit-aider.

    The console handler writes to stderr, stdout belongs to the stdio transport.
    Logs from the 'mcp' module are filtered out unless in debug mode.
    """
    from .config import get_logger_path, get_logger_verbosity

    log_dir = get_logger_path()
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, log_file)

    log_level_str = (
        os.environ.get("GIT_COMMIT_AIDER_DEBUG_LEVEL") or get_logger_verbosity()
    )

    log_level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    # Default to INFO if invalid
    log_level = log_level_map.get(log_level_str.upper(), logging.INFO)

    debug_mode = False
    if os.environ.get("GIT_COMMIT_AIDER_DEBUG"):
        log_level = logging.DEBUG
        debug_mode = True

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(log_level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    def module_filter(record: logging.LogRecord) -> bool:
        return debug_mode or not record.name.startswith("mcp")

    for handler in (file_handler, console_handler):
        handler.setFormatter(formatter)
        handler.addFilter(module_filter)
        root_logger.addHandler(handler)

    logging.info(f"Logging configured. Log file: {log_path}")
    logging.info(f"Log level set to: {logging.getLevelName(log_level)}")
    if not debug_mode:
        logging.info("Logs from 'mcp' module are being filtered")


def _install_exit_handlers() -> None:
    def handle_exit(sig, frame):
        logging.info(
            f"Received {signal.Signals(sig).name}, shutting down server without waiting for connections"
        )
        os._exit(0)

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """git-commit-aider: MCP server committing staged changes as "<name> (aider)"."""
    # Without a subcommand, serve over stdio
    if ctx.invoked_subcommand is None:
        run()


def create_sse_app(allowed_origins: Optional[List[str]] = None) -> Starlette:
    """Create an SSE app with the MCP server.

    Args:
        allowed_origins: List of origins to allow CORS for. If None, only claude.ai is allowed.

    Returns:
        A Starlette application with the MCP server mounted.
    """
    if allowed_origins is None:
        allowed_origins = ["https://claude.ai"]

    app = Starlette(
        routes=[
            Mount("/", app=mcp.sse_app()),
        ]
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    return app


def run() -> None:
    """Run the MCP server on stdio."""
    configure_logging()
    _install_exit_handlers()

    logging.info("Git Commit Aider MCP server running on stdio")
    try:
        mcp.run()
    except Exception:
        logging.exception("Failed to start server")
        raise SystemExit(1)


@cli.command()
@click.option(
    "--host",
    default="127.0.0.1",
    help="Host to bind the server to (default: 127.0.0.1)",
)
@click.option("--port", default=8000, help="Port to bind the server to (default: 8000)")
@click.option(
    "--cors-origin",
    multiple=True,
    help="Origins to allow CORS for (default: https://claude.ai)",
)
def serve(host: str, port: int, cors_origin: List[str]) -> None:
    """Run the MCP SSE server.

    This command mounts the MCP as an SSE server that can be connected to from web applications.
    By default, it allows CORS requests from claude.ai.
    """
    configure_logging()
    logging.info(f"Starting MCP SSE server on {host}:{port}")

    allowed_origins = list(cors_origin) if cors_origin else None
    if allowed_origins:
        logging.info(f"Allowing CORS for: {', '.join(allowed_origins)}")
    else:
        logging.info("Allowing CORS for: https://claude.ai")

    app = create_sse_app(allowed_origins)
    _install_exit_handlers()

    uvicorn.run(app, host=host, port=port, timeout_graceful_shutdown=0)
