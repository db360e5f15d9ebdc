"""Formatting helpers shared by the catalog engine and the CLI."""

from __future__ import annotations

from typing import Optional

from rich.text import Text

BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")

STATUS_STYLES = {
    "verified": "green",
    "downloaded": "yellow",
    "missing": "red",
}

__all__ = ["BYTE_UNITS", "STATUS_STYLES", "format_bytes", "format_progress", "styled_status"]


def format_bytes(num: int) -> str:
    """Return a human-readable representation for ``num`` bytes.

    Examples:
        >>> format_bytes(0)
        '0 B'
        >>> format_bytes(1536)
        '1.50 KB'
    """

    if num <= 0:
        return "0 B"
    value = float(num)
    for unit in BYTE_UNITS:
        if value < 1024.0 or unit == BYTE_UNITS[-1]:
            break
        value /= 1024.0
    return f"{value:.2f} {unit}"


def format_progress(downloaded: int, total: Optional[int], percentage: Optional[float]) -> str:
    """Render the one-line progress text shown while downloading."""

    if total and percentage is not None:
        return f"Progress: {format_bytes(downloaded)} / {format_bytes(total)} ({percentage}%)"
    return f"Downloaded: {format_bytes(downloaded)}"


def styled_status(status: str) -> Text:
    return Text(status, style=STATUS_STYLES.get(status, ""))
