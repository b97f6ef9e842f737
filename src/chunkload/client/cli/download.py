"""Download command for the chunkload CLI.

Commands:
- download: Download stored content into a file
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
import httpx

from chunkload.client.cli.config import build_transfer_config


@click.command()
@click.argument("url")
@click.argument("dest", type=click.Path(dir_okay=False, writable=True, path_type=Path))
@click.option("--server", default=None, help="Server URL, used when URL is a bare id.")
def download(url: str, dest: Path, server: str | None) -> None:
    """Download URL into DEST.

    URL may be a download link, a share link (/e/...) or, with a configured
    server, just the file id.
    """
    from chunkload.client.errors import TransferError
    from chunkload.client.transfer import DownloadItem, DownloadProgress, Downloader
    from chunkload.core.config import TransferConfig
    from chunkload.core.utils import format_size

    if "://" in url:
        parsed = httpx.URL(url)
        config = TransferConfig(server_url=f"{parsed.scheme}://{parsed.netloc.decode()}")
    else:
        config = build_transfer_config(server=server)

    def on_progress(event: DownloadProgress) -> None:
        done = format_size(event.bytes_downloaded)
        if event.percent is None:
            click.echo(f"\r  {done}", nl=False)
        else:
            total = format_size(event.total_size or 0)
            click.echo(f"\r  {done} / {total} ({event.percent}%)", nl=False)

    try:
        destination = DownloadItem.to_file(dest)
    except TransferError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    with Downloader(config) as downloader:
        downloader.events.subscribe(DownloadProgress, on_progress)
        try:
            result = downloader.download(url, destination)
        except TransferError as e:
            click.echo("")
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    click.echo("")
    click.echo(click.style(f"✓ {format_size(result.bytes_downloaded)} saved to {dest}", fg="green"))
