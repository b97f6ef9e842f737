"""Configure command for the chunkload CLI.

Commands:
- configure: Save the default server and upload settings
"""

from __future__ import annotations

import click

from chunkload.client.cli.config import get_config_file, load_config, save_config


@click.command()
@click.option("--server", required=True, help="Server URL (e.g., https://files.example.com).")
@click.option("--chunk-size", type=click.IntRange(min=1), default=None, help="Chunk size in bytes.")
@click.option(
    "--chunk-hashing/--no-chunk-hashing",
    default=None,
    help="Send a SHA-1 with every chunk.",
)
@click.option(
    "--transport",
    type=click.Choice(["http", "websocket"]),
    default=None,
    help="How chunk bytes are sent.",
)
def configure(
    server: str,
    chunk_size: int | None,
    chunk_hashing: bool | None,
    transport: str | None,
) -> None:
    """Save the default server and upload settings."""
    config = load_config()
    config["server_url"] = server.rstrip("/")
    if chunk_size is not None:
        config["chunk_size"] = chunk_size
    if chunk_hashing is not None:
        config["with_chunk_hashing"] = chunk_hashing
    if transport is not None:
        config["transport"] = transport
    save_config(config)
    click.echo(f"Saved settings to {get_config_file()}")
