#!/usr/bin/env python3
"""
タスク同期CLI - 日次ノートと正規リストの同期・アーカイブを実行する

Usage:
    python -m src.todo [--config PATH] [--base-dir DIR] sync [--date YYYY-MM-DD] [--format json|text]
    python -m src.todo [--config PATH] [--base-dir DIR] archive [--date YYYY-MM-DD] [--format json|text]
    python -m src.todo [--config PATH] [--base-dir DIR] status [--format json|text]

終了コード:
    0: 成功（今日のノートがない場合も含む）
    1: 競合・エラー
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

from src.durable_io import DurableIOError
from src.task_sync import (
    DailyNoteNotFoundError,
    SyncConfig,
    TaskArchiveEngine,
    TaskSyncEngine,
    TaskSyncError,
    setup_logger,
)
from src.task_sync.archive_engine import ArchiveResult
from src.task_sync.sync_engine import SyncResult

from .repository import TodoStateRepository

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"不正な日付: {value}（YYYY-MM-DD形式で指定してください）") from e


def _emit(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False))


def format_sync_text(result: SyncResult) -> str:
    """同期結果をテキスト形式で整形"""
    if result.has_conflicts:
        lines = [f"競合が {len(result.conflicts)} 件あります。何も書き込みませんでした:"]
        for conflict in result.conflicts:
            lines.append(f"  [{conflict.identifier}] {conflict.reason}")
        return "\n".join(lines)

    if not (
        result.tasks_synced
        or result.tasks_updated
        or result.tasks_adopted
        or result.tasks_migrated
        or result.tasks_deleted
    ):
        return f"同期済みです（{result.tasks_read} 件のタスクを確認）"

    return (
        f"同期しました: 新規 {result.tasks_synced} 件 / 更新 {result.tasks_updated} 件 / "
        f"取り込み {result.tasks_adopted} 件 / 移行 {result.tasks_migrated} 件 / 削除 {result.tasks_deleted} 件"
    )


def format_archive_text(result: ArchiveResult) -> str:
    """アーカイブ結果をテキスト形式で整形"""
    if result.archived_count == 0:
        return f"アーカイブ対象の完了タスクはありません（未完了 {result.remaining_count} 件）"
    return (
        f"{result.archived_count} 件をアーカイブしました: {result.archive_path}"
        f"（未完了 {result.remaining_count} 件）"
    )


def cmd_sync(config: SyncConfig, today: Optional[date], output_format: str) -> int:
    """今日の日次ノートを同期"""
    engine = TaskSyncEngine(config)
    try:
        result = engine.sync_tasks(today)
    except DailyNoteNotFoundError as exc:
        # ノートがないのは回復可能な状態
        if output_format == "json":
            _emit({"synced": False, "reason": str(exc), "daily_path": str(exc.path)})
        print(str(exc), file=sys.stderr)
        return 0

    if output_format == "json":
        _emit(result.to_dict())
    else:
        print(format_sync_text(result))
    return 1 if result.has_conflicts else 0


def cmd_archive(config: SyncConfig, today: Optional[date], output_format: str) -> int:
    """完了タスクをアーカイブ"""
    result = TaskArchiveEngine(config).archive_tasks(today)

    if output_format == "json":
        _emit(result.to_dict())
    else:
        print(format_archive_text(result))
    return 0


def cmd_status(config: SyncConfig, output_format: str) -> int:
    """State Storeの件数を表示"""
    repo = TodoStateRepository(config.state_path)
    state = repo.read()

    payload = {
        "state_path": str(repo.state_path),
        "todo_path": str(config.todo_path),
        "exists": repo.exists(),
        "migrated": state.migrated,
        "total": len(state.tasks),
        "open": len(state.get_open_tasks()),
        "completed": len(state.get_completed_tasks()),
        "archived": sum(1 for t in state.tasks.values() if t.archived and not t.deleted),
        "deleted": sum(1 for t in state.tasks.values() if t.deleted),
        "last_sync": state.last_sync.isoformat() if state.last_sync else None,
        "last_archive": state.last_archive.isoformat() if state.last_archive else None,
    }

    if output_format == "json":
        _emit(payload)
    else:
        print(f"状態ファイル: {payload['state_path']}")
        print(
            f"タスク: 全 {payload['total']} 件 / 未完了 {payload['open']} 件 / "
            f"完了 {payload['completed']} 件 / アーカイブ済み {payload['archived']} 件 / 削除 {payload['deleted']} 件"
        )
        print(f"最終同期: {payload['last_sync'] or '未実行'}")
        print(f"最終アーカイブ: {payload['last_archive'] or '未実行'}")
    return 0


def load_config(args: argparse.Namespace) -> SyncConfig:
    """引数から設定を構築（--config があればYAML、なければ環境変数）"""
    if args.config:
        config = SyncConfig.from_yaml(Path(args.config))
        if args.base_dir:
            config = replace(config, base_dir=args.base_dir)
    else:
        config = SyncConfig.from_env(base_dir=args.base_dir)

    if args.verbose:
        config = replace(config, verbose=True)
    if args.log_file is not None:
        config = replace(config, log_file=args.log_file)
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="タスク同期CLI - 日次ノートのタスクを正規リストへ同期・アーカイブする",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=str, help="YAML設定ファイルのパス")
    parser.add_argument("--base-dir", type=str, help="ベースディレクトリ（diary/ と todo.md の親）")
    parser.add_argument("--verbose", action="store_true", help="詳細ログを出力")
    parser.add_argument(
        "--log-file",
        type=str,
        help="ログファイルのパス（空文字でファイル出力なし）",
    )

    subparsers = parser.add_subparsers(dest="command", help="実行するコマンド", required=True)

    # sync コマンド
    parser_sync = subparsers.add_parser("sync", help="今日の日次ノートを正規リストへ同期")
    parser_sync.add_argument("--date", type=_parse_date, help="対象日（YYYY-MM-DD、デフォルト: 今日）")
    parser_sync.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="出力フォーマット（デフォルト: text）",
    )

    # archive コマンド
    parser_archive = subparsers.add_parser("archive", help="完了タスクを月次アーカイブへ移動")
    parser_archive.add_argument("--date", type=_parse_date, help="アーカイブ日（YYYY-MM-DD、デフォルト: 今日）")
    parser_archive.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="出力フォーマット（デフォルト: text）",
    )

    # status コマンド
    parser_status = subparsers.add_parser("status", help="State Storeの件数を表示")
    parser_status.add_argument(
        "--format",
        choices=["json", "text"],
        default="text",
        help="出力フォーマット（デフォルト: text）",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """CLIエントリポイント"""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except TaskSyncError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    setup_logger(config.log_level, config.log_file or None)

    try:
        if args.command == "sync":
            return cmd_sync(config, args.date, args.format)
        elif args.command == "archive":
            return cmd_archive(config, args.date, args.format)
        elif args.command == "status":
            return cmd_status(config, args.format)
        else:
            print(f"Error: 不明なコマンド: {args.command}", file=sys.stderr)
            return 1
    except (TaskSyncError, DurableIOError) as exc:
        logger.error(f"{args.command} failed: {exc}")
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
