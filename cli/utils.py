"""Utility functions for CLI output."""

from weedclient.schemas import SubmitResult


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def format_submit_result(result: SubmitResult) -> str:
    """One line per upload: the fid and URL on success, the error otherwise."""
    name = result.file_name or result.file_base
    if not result.succeeded:
        return f"Error uploading {name}: {result.error}"
    return f"Uploaded: {name} (fid: {result.fid}, Size: {format_file_size(result.size)}, URL: {result.file_url})"
