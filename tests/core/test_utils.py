"""Tests for formatting helpers."""

from chunkload.core.utils import format_size


class TestFormatSize:
    """Tests for format_size."""

    def test_bytes(self) -> None:
        """Sizes under 1 KiB are shown in bytes."""
        assert format_size(0) == "0 bytes"
        assert format_size(512) == "512 bytes"

    def test_kib(self) -> None:
        """KiB values are rounded to 2 decimals."""
        assert format_size(1024) == "1.0 KiB"
        assert format_size(1536) == "1.5 KiB"

    def test_larger_units(self) -> None:
        """MiB, GiB and TiB are picked by magnitude."""
        assert format_size(2 * 1024**2) == "2.0 MiB"
        assert format_size(3 * 1024**3 + 1024**3 // 4) == "3.25 GiB"
        assert format_size(1024**4) == "1.0 TiB"
