"""Usage-log housekeeping: cleanup periods, log filtering and database size reports."""

from __future__ import annotations

import calendar
import os
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from os import PathLike
from typing import Iterable

_SIZE_PREFIX = "DBファイルサイズ: "


@dataclass(frozen=True)
class UsageLogEntry:
    """One recorded redemption of a reward."""

    id: int
    reward_name: str
    username: str
    timestamp: str


class CleanupPeriod(Enum):
    """Which usage logs a cleanup removes."""

    ALL = "all"
    ONE_WEEK = "1week"
    ONE_MONTH = "1month"
    THREE_MONTHS = "3months"

    @property
    def label(self) -> str:
        """Text shown when choosing the period."""
        return {
            CleanupPeriod.ALL: "全てのログデータを削除",
            CleanupPeriod.ONE_WEEK: "1週間以上前のログデータを削除",
            CleanupPeriod.ONE_MONTH: "1ヶ月以上前のログデータを削除",
            CleanupPeriod.THREE_MONTHS: "3ヶ月以上前のログデータを削除",
        }[self]

    @property
    def confirmation(self) -> str:
        """Question asked before the cleanup runs."""
        return {
            CleanupPeriod.ALL: (
                "本当に『すべての統計ログデータ』を削除しますか？\n"
                "(注意: 報酬の設定データ自体は削除されません。)"
            ),
            CleanupPeriod.ONE_WEEK: "1週間以上前の統計ログデータをクリーンアップしますか？",
            CleanupPeriod.ONE_MONTH: "1ヶ月以上前の統計ログデータをクリーンアップしますか？",
            CleanupPeriod.THREE_MONTHS: "3ヶ月以上前の統計ログデータをクリーンアップしますか？",
        }[self]


def _months_back(day: date, months: int) -> date:
    total = day.year * 12 + (day.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def cleanup_cutoff(period: CleanupPeriod | str, now: datetime | date | None = None) -> str | None:
    """The "YYYY-MM-DD" date before which logs are removed, or None to remove all.

    Months are counted back on the calendar, clamping to the last day of a
    shorter month.
    """
    period = CleanupPeriod(period)
    if now is None:
        now = datetime.now()
    today = now.date() if isinstance(now, datetime) else now
    if period is CleanupPeriod.ALL:
        return None
    if period is CleanupPeriod.ONE_WEEK:
        cutoff = today - timedelta(days=7)
    elif period is CleanupPeriod.ONE_MONTH:
        cutoff = _months_back(today, 1)
    else:
        cutoff = _months_back(today, 3)
    return cutoff.strftime("%Y-%m-%d")


def filter_logs(logs: Iterable[UsageLogEntry], text: str) -> list[UsageLogEntry]:
    """Logs whose reward name or username contains the text, ignoring case."""
    logs = list(logs)
    if not text:
        return logs
    needle = text.casefold()
    return [
        log
        for log in logs
        if needle in log.reward_name.casefold() or needle in log.username.casefold()
    ]


def size_text(path: str | PathLike[str] | None) -> str:
    """Label giving the size of the database file in megabytes."""
    if not path or not os.fspath(path):
        return _SIZE_PREFIX + "不明"
    if not os.path.exists(path):
        return _SIZE_PREFIX + "存在しません"
    size_mb = os.path.getsize(path) / (1024.0 * 1024.0)
    return f"{_SIZE_PREFIX}{size_mb:.2f} MB"


def savings_message(before_size: int, after_size: int) -> str:
    """Report shown after a cleanup, given the file size before and after it."""
    saved_kb = (before_size - after_size) / 1024.0
    message = "統計ログのクリーンアップが正常に完了しました。\n"
    if saved_kb > 0:
        message += f"データベースファイルが {saved_kb:.1f} KB 軽量化されました！"
    else:
        message += "データベースファイルは既に最適化されています。"
    return message