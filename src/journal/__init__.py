"""
Journal module for daily note discovery.

This module provides functionality for:
- Resolving the daily note path for a given date
- Listing daily notes under the diary root (cancellable)
"""

from src.journal.daily_notes import (
    build_daily_note_path,
    find_latest_daily_note,
    list_daily_notes,
    note_date,
)

__all__ = [
    "build_daily_note_path",
    "find_latest_daily_note",
    "list_daily_notes",
    "note_date",
]
