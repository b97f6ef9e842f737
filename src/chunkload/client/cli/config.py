"""Configuration utilities for the chunkload CLI.

This module provides shared configuration functions used across CLI commands.
Settings live in ~/.chunkload/config.json and are overridden per command by
options such as --server.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click

from chunkload.core.chunking import DEFAULT_CHUNK_SIZE
from chunkload.core.config import TransferConfig
from chunkload.core.types import TransportMode


def get_config_dir() -> Path:
    """Get the configuration directory for chunkload.

    Returns:
        Path to ~/.chunkload.
    """
    return Path.home() / ".chunkload"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def build_transfer_config(
    server: str | None = None,
    chunk_size: int | None = None,
    with_chunk_hashing: bool | None = None,
    websocket: bool = False,
) -> TransferConfig:
    """Merge saved settings with command options.

    Exits with an error message if no server URL is known or a value is invalid.
    """
    config = load_config()
    server_url = server or config.get("server_url")
    if not server_url:
        click.echo(
            "Error: No server configured. Run 'chunkload configure --server URL' "
            "or pass --server.",
            err=True,
        )
        sys.exit(1)

    transport = TransportMode.WEBSOCKET if websocket else config.get("transport", "http")
    try:
        return TransferConfig(
            server_url=server_url,
            chunk_size=chunk_size or config.get("chunk_size") or DEFAULT_CHUNK_SIZE,
            with_chunk_hashing=(
                config.get("with_chunk_hashing", True)
                if with_chunk_hashing is None
                else with_chunk_hashing
            ),
            transport=transport,
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
