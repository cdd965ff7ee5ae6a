"""CLI module for ODI.

Provides the command-line interface for planning breakpoints, computing
focal crops, and generating or purging derivatives.
"""

from __future__ import annotations

from odi.cli.main import app

__all__ = ["app"]
