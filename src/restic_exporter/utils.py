"""Utility functions for restic-exporter."""


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format (binary units, as restic prints them)."""
    if size < 1024:
        return f"{int(size)} B"
    for unit in ["KiB", "MiB", "GiB", "TiB"]:
        size /= 1024
        if size < 1024:
            return f"{size:.1f} {unit}"
    return f"{size:.1f} PiB"
