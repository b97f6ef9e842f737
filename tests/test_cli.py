"""Tests for CLI commands - configure, upload, download."""

import hashlib
import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from chunkload.client.cli import cli
from chunkload.client.transfer.items import SourceKind
from chunkload.client.transfer.types import UploadCancelled


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_dir(tmp_path: Path):  # type: ignore[no-untyped-def]
    """Point the CLI at a temporary config directory."""
    config = tmp_path / ".chunkload"
    with patch("chunkload.client.cli.config.get_config_dir", return_value=config):
        yield config


def write_config(config_dir: Path, **values: object) -> None:
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "config.json").write_text(json.dumps(values))


class TestConfigureCommand:
    """Tests for 'chunkload configure' command."""

    def test_saves_settings(self, runner: CliRunner, config_dir: Path) -> None:
        """Settings are written to config.json."""
        result = runner.invoke(
            cli,
            ["configure", "--server", "https://files.example.com/", "--chunk-size", "1024",
             "--no-chunk-hashing", "--transport", "websocket"],
        )

        assert result.exit_code == 0, result.output
        saved = json.loads((config_dir / "config.json").read_text())
        assert saved == {
            "server_url": "https://files.example.com",
            "chunk_size": 1024,
            "with_chunk_hashing": False,
            "transport": "websocket",
        }

    def test_keeps_other_settings(self, runner: CliRunner, config_dir: Path) -> None:
        """Only the given options change."""
        write_config(config_dir, server_url="http://old", chunk_size=10)

        result = runner.invoke(cli, ["configure", "--server", "http://new"])

        assert result.exit_code == 0
        saved = json.loads((config_dir / "config.json").read_text())
        assert saved == {"server_url": "http://new", "chunk_size": 10}


class TestUploadCommand:
    """Tests for 'chunkload upload' command."""

    def test_requires_server(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        """Without a configured server the command fails."""
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        result = runner.invoke(cli, ["upload", str(path)])

        assert result.exit_code == 1
        assert "No server configured" in result.output

    def test_uploads_file(self, runner: CliRunner, config_dir: Path, tmp_path: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """The file is uploaded and its URL printed."""
        write_config(config_dir, server_url="http://test")
        path = tmp_path / "notes.txt"
        path.write_bytes(b"hello")
        digest = hashlib.sha1(b"hello").hexdigest()
        httpx_mock.add_response(url="http://test/c/txt/notes", json={"stream": "s1"})
        httpx_mock.add_response(url=f"http://test/u/s1/{digest}")
        httpx_mock.add_response(url=f"http://test/f/s1/{digest}", json={"id": "abc"})

        result = runner.invoke(cli, ["upload", str(path)])

        assert result.exit_code == 0, result.output
        assert "http://test/d/abc" in result.output

    def test_server_option_and_name(self, runner: CliRunner, config_dir: Path, tmp_path: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """--server, --name and --no-chunk-hashing are honored."""
        path = tmp_path / "data.bin"
        path.write_bytes(b"12345")
        digest = hashlib.sha1(b"12345").hexdigest()
        httpx_mock.add_response(url="http://other/c/bin/renamed", json={"stream": "s2"})
        httpx_mock.add_response(url="http://other/u/s2")
        httpx_mock.add_response(url=f"http://other/f/s2/{digest}", json={"id": "xyz"})

        result = runner.invoke(
            cli,
            ["upload", str(path), "--server", "http://other", "--name", "renamed", "--no-chunk-hashing"],
        )

        assert result.exit_code == 0, result.output
        assert "http://other/d/xyz" in result.output

    def test_server_error(self, runner: CliRunner, config_dir: Path, tmp_path: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A refused session is reported and exits non-zero."""
        write_config(config_dir, server_url="http://test")
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        httpx_mock.add_response(
            url="http://test/c/txt/notes", status_code=400, json={"error": "Extension not allowed"}
        )

        result = runner.invoke(cli, ["upload", str(path)])

        assert result.exit_code == 1
        assert "Extension not allowed" in result.output

    def test_cancelled(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        """A cancelled upload exits with 130."""
        write_config(config_dir, server_url="http://test")
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        uploader = MagicMock()
        uploader.upload.return_value = UploadCancelled(session_id="s1", chunks_sent=0, notified=True)

        with patch("chunkload.client.transfer.ChunkUploader") as uploader_cls:
            uploader_cls.return_value.__enter__.return_value = uploader
            result = runner.invoke(cli, ["upload", str(path)])

        assert result.exit_code == 130
        assert "cancelled" in result.output

    def test_unexpected_error(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        """Errors outside the transfer errors are reported, not raised."""
        write_config(config_dir, server_url="http://test")
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        uploader = MagicMock()
        uploader.upload.side_effect = OSError("disk read error")

        with patch("chunkload.client.transfer.ChunkUploader") as uploader_cls:
            uploader_cls.return_value.__enter__.return_value = uploader
            result = runner.invoke(cli, ["upload", str(path)])

        assert result.exit_code == 1
        assert "disk read error" in result.output

    def test_rename_keeps_file_source(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        """--name and --extension do not load the file into memory."""
        write_config(config_dir, server_url="http://test")
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        uploader = MagicMock()
        uploader.upload.return_value = UploadCancelled(session_id="s1", chunks_sent=0, notified=True)

        with patch("chunkload.client.transfer.ChunkUploader") as uploader_cls:
            uploader_cls.return_value.__enter__.return_value = uploader
            runner.invoke(cli, ["upload", str(path), "--name", "memo", "--extension", "md"])

        item = uploader.upload.call_args.args[0]
        assert item.kind is SourceKind.FILE
        assert (item.extension, item.name) == ("md", "memo")
        assert item.file_path == path.resolve()


class TestDownloadCommand:
    """Tests for 'chunkload download' command."""

    def test_downloads_url(self, runner: CliRunner, config_dir: Path, tmp_path: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A share link is downloaded into DEST."""
        httpx_mock.add_response(url="http://test/d/abc", content=b"downloaded")
        dest = tmp_path / "out.txt"

        result = runner.invoke(cli, ["download", "http://test/e/abc", str(dest)])

        assert result.exit_code == 0, result.output
        assert dest.read_bytes() == b"downloaded"

    def test_bare_id_uses_configured_server(self, runner: CliRunner, config_dir: Path, tmp_path: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A bare id is resolved against the configured server."""
        write_config(config_dir, server_url="http://test")
        httpx_mock.add_response(url="http://test/d/abc", content=b"downloaded")
        dest = tmp_path / "out.txt"

        result = runner.invoke(cli, ["download", "abc", str(dest)])

        assert result.exit_code == 0, result.output
        assert dest.read_bytes() == b"downloaded"

    def test_not_found(self, runner: CliRunner, config_dir: Path, tmp_path: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Server errors are reported."""
        httpx_mock.add_response(
            url="http://test/d/missing", status_code=404, json={"error": "File with id not found"}
        )

        result = runner.invoke(cli, ["download", "http://test/d/missing", str(tmp_path / "out")])

        assert result.exit_code == 1
        assert "File with id not found" in result.output


class TestVerboseFlag:
    """Tests for the --verbose flag."""

    def test_verbose_enables_debug(self, runner: CliRunner, config_dir: Path) -> None:
        """--verbose switches the chunkload logger to DEBUG."""
        runner.invoke(cli, ["--verbose", "configure", "--server", "http://test"])
        assert logging.getLogger("chunkload").level == logging.DEBUG

        runner.invoke(cli, ["configure", "--server", "http://test"])
        assert logging.getLogger("chunkload").level == logging.WARNING
