"""Command-line interface for chunkload.

This module provides the main CLI entry point and assembles all commands.

Commands:
- upload: Upload a file and print its download URL
- download: Download stored content into a file
- configure: Save the default server and upload settings
"""

from __future__ import annotations

import logging
import sys

import click

from chunkload.client.cli.config import (
    build_transfer_config,
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)
from chunkload.client.cli.configure import configure
from chunkload.client.cli.download import download
from chunkload.client.cli.upload import upload


def setup_logging(verbose: bool) -> None:
    """Send chunkload log records to stderr.

    Args:
        verbose: Show DEBUG records instead of warnings and errors only.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    chunkload_logger = logging.getLogger("chunkload")
    for existing in chunkload_logger.handlers[:]:
        chunkload_logger.removeHandler(existing)
    chunkload_logger.addHandler(handler)
    chunkload_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    chunkload_logger.propagate = False


@click.group()
@click.version_option(package_name="chunkload")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """chunkload - Chunked uploads and streamed downloads."""
    setup_logging(verbose)


# Transfer commands
cli.add_command(upload)
cli.add_command(download)

# Settings
cli.add_command(configure)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    "setup_logging",
    # Config utilities
    "build_transfer_config",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
]
