"""
Helper functions for formatting data into human-readable strings.
"""


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_time(millis: int | float | None) -> str:
    """Formats a playback position in milliseconds as 'm:ss' (e.g., '3:07')."""
    if not millis or millis < 0:
        return "0:00"
    total_seconds = int(millis // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02}"


def format_progress(progress: float) -> str:
    """Formats a download fraction as a percentage string."""
    return f"{max(0.0, min(progress, 1.0)) * 100:.0f}%"
