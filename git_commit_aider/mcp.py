#!/usr/bin/env python3

from mcp.server.fastmcp import FastMCP

# Initialize FastMCP server
mcp = FastMCP(
    "git-commit-aider",
    instructions="Make git commits on behalf of AI, so that you can track AI contribution in your codebase",
)

__all__ = [
    "mcp",
]
