"""CLI application setup using Typer.

Provides the command-line interface for goose-reply.
"""

from goose_reply.cli.main import app

__all__ = ["app"]
