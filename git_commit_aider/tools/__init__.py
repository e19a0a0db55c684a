#!/usr/bin/env python3

from .commit_staged import commit_staged

__all__ = [
    "commit_staged",
]
