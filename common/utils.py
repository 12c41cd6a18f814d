"""Formatting helpers shared by the server catalog and the client CLI."""


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to a human-readable string.

    Uses binary (1024-based) steps up to GB with at most two decimals.

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string (e.g., "0 Bytes", "1.5 KB", "5 MB")
    """
    if size_bytes == 0:
        return "0 Bytes"

    units = ['Bytes', 'KB', 'MB', 'GB']
    size = float(size_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1

    return f"{round(size, 2):g} {units[unit_index]}"
