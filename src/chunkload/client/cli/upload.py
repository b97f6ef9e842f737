"""Upload command for the chunkload CLI.

Commands:
- upload: Upload a file and print its download URL
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path

import click

from chunkload.client.cli.config import build_transfer_config


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", default=None, help="Display name (default: file name).")
@click.option("--extension", default=None, help="Extension (default: file suffix).")
@click.option("--chunk-size", type=click.IntRange(min=1), default=None, help="Chunk size in bytes.")
@click.option("--no-chunk-hashing", is_flag=True, help="Do not send a SHA-1 per chunk.")
@click.option("--websocket", is_flag=True, help="Send chunks over a WebSocket.")
@click.option("--server", default=None, help="Server URL (default: configured server).")
def upload(
    path: Path,
    name: str | None,
    extension: str | None,
    chunk_size: int | None,
    no_chunk_hashing: bool,
    websocket: bool,
    server: str | None,
) -> None:
    """Upload PATH and print its download URL.

    Press Ctrl+C to cancel; the upload stops before the next chunk and the
    server is told to drop the session.
    """
    from chunkload.client.errors import TransferError
    from chunkload.client.transfer import (
        ChunkComplete,
        ChunkUploader,
        UploadCancelled,
        UploadFailed,
        UploadItem,
        UploadOutcome,
    )
    from chunkload.core.utils import format_size

    config = build_transfer_config(
        server=server,
        chunk_size=chunk_size,
        with_chunk_hashing=False if no_chunk_hashing else None,
        websocket=websocket,
    )

    try:
        item = UploadItem.from_file(path, extension=extension, name=name)
    except TransferError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    def on_chunk(event: ChunkComplete) -> None:
        click.echo(
            f"\r  Chunk {event.current_chunk}/{event.total_chunks} ({event.percent:.0f}%)",
            nl=False,
        )

    def on_failure(event: UploadFailed) -> None:
        if event.chunk_index is not None:
            click.echo(f"\n  Chunk {event.chunk_index + 1} failed: {event.error}. Retrying...")

    cancel_event = threading.Event()
    outcome: list[UploadOutcome] = []
    errors: list[Exception] = []

    click.echo(f"Uploading {path.name} ({format_size(path.stat().st_size)}) to {config.server_url}")

    with ChunkUploader(config) as uploader:
        uploader.events.subscribe(ChunkComplete, on_chunk)
        uploader.events.subscribe(UploadFailed, on_failure)

        def run() -> None:
            try:
                outcome.append(uploader.upload(item, cancel_check=cancel_event.is_set))
            except Exception as e:
                errors.append(e)

        worker = threading.Thread(target=run, name="chunkload-upload", daemon=True)
        worker.start()
        while worker.is_alive():
            try:
                worker.join(timeout=0.2)
            except KeyboardInterrupt:
                click.echo("\nCancelling...")
                cancel_event.set()

    click.echo("")
    if errors:
        click.echo(f"Error: {errors[0]}", err=True)
        sys.exit(1)

    result = outcome[0]
    if isinstance(result, UploadCancelled):
        click.echo("Upload cancelled.")
        sys.exit(130)
    click.echo(click.style(f"✓ {result.url}", fg="green"))
