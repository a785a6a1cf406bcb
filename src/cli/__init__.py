"""CLI entry point for Canvus batch operations."""

from __future__ import annotations

import click

from src.cli.commands import run_batch, validate_batch


@click.group()
def cli() -> None:
    """Canvus batch operations."""


cli.add_command(run_batch)
cli.add_command(validate_batch)
