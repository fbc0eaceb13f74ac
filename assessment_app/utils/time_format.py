"""Countdown formatting shared by the UI and the confirmation dialog."""

from __future__ import annotations


def format_duration(total_seconds: int) -> str:
    """Format seconds as ``m:ss``, or ``h:mm:ss`` from one hour up."""
    seconds = max(0, int(total_seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_countdown(total_seconds: int) -> str:
    """Longer countdowns (days away) are shown with a day count."""
    seconds = max(0, int(total_seconds))
    days, remainder = divmod(seconds, 86400)
    if days:
        return f"{days}d {format_duration(remainder)}"
    return format_duration(remainder)
