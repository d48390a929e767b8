"""Daily Notes

日次ノートのパス解決と日記ディレクトリの走査。

ディレクトリ構成:
    <diary>/<YYYY>/<MM>-<Mon>/<YYYY>-<MM>-<DD>-<Dow>.md
    例: diary/2025/01-Jan/2025-01-15-Wed.md
"""

from __future__ import annotations

import logging
import re
import threading
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

# ロケールに依存しない英語表記
MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
WEEKDAY_ABBR = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

NOTE_NAME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})-[A-Za-z]{3}\.md$")


def build_daily_note_path(diary_dir: Union[str, Path], day: date) -> Path:
    """
    指定日の日次ノートのパスを組み立てる

    Args:
        diary_dir: 日記のルートディレクトリ
        day: 対象日

    Returns:
        日次ノートのパス（存在するとは限らない）
    """
    month_dir = f"{day.month:02d}-{MONTH_ABBR[day.month - 1]}"
    filename = f"{day.isoformat()}-{WEEKDAY_ABBR[day.weekday()]}.md"
    return Path(diary_dir) / f"{day.year:04d}" / month_dir / filename


def note_date(path: Union[str, Path]) -> Optional[date]:
    """ファイル名から日付を取り出す（日次ノートでなければNone）"""
    match = NOTE_NAME_RE.match(Path(path).name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), "%Y-%m-%d").date()
    except ValueError:
        return None


def list_daily_notes(
    diary_dir: Union[str, Path],
    cancel_event: Optional[threading.Event] = None,
    limit: Optional[int] = None,
) -> List[Path]:
    """
    日次ノートを新しい順に列挙

    cancel_event がセットされた時点で走査を打ち切り、
    それまでに見つかった分だけを返す。

    Args:
        diary_dir: 日記のルートディレクトリ
        cancel_event: キャンセル通知
        limit: 返す最大件数

    Returns:
        日次ノートのパスのリスト（新しい順）
    """
    root = Path(diary_dir)
    if not root.is_dir():
        return []

    found: List[tuple[date, Path]] = []
    for year_dir in sorted(root.iterdir(), reverse=True):
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Diary scan cancelled after {len(found)} notes")
            break
        if not year_dir.is_dir() or not year_dir.name.isdigit():
            continue

        for path in year_dir.rglob("*.md"):
            if cancel_event is not None and cancel_event.is_set():
                break
            day = note_date(path)
            if day is not None:
                found.append((day, path))

    found.sort(key=lambda item: item[0], reverse=True)
    paths = [path for _, path in found]
    return paths[:limit] if limit is not None else paths


def find_latest_daily_note(
    diary_dir: Union[str, Path],
    before: Optional[date] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Optional[Path]:
    """指定日より前で最も新しい日次ノートを返す"""
    for path in list_daily_notes(diary_dir, cancel_event):
        day = note_date(path)
        if before is None or (day is not None and day < before):
            return path
    return None
