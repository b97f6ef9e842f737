"""Small formatting helpers."""

from __future__ import annotations

_UNITS = (
    (1024**4, "TiB"),
    (1024**3, "GiB"),
    (1024**2, "MiB"),
    (1024, "KiB"),
)


def format_size(size: int) -> str:
    """Convert a byte count to a human readable string.

    Args:
        size: Size in bytes.

    Returns:
        e.g. "512 bytes", "1.5 KiB", "2.0 MiB".
    """
    for factor, unit in _UNITS:
        if size >= factor:
            return f"{round(size / factor, 2)} {unit}"
    return f"{size} bytes"
