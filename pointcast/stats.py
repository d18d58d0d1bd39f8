"""Usage statistics tables: ranking rows, per-user rows, CSV export and styling."""

from __future__ import annotations

from dataclasses import dataclass
from os import PathLike
from typing import Iterable, Sequence

RANKING_HEADERS = ("順位", "報酬名", "再生回数")
USER_HEADERS = ("ユーザ名", "報酬名", "利用回数")

PERIODS = ("今日", "今週", "今月", "全期間")


@dataclass(frozen=True)
class UserUsageStat:
    """How often one user redeemed one reward."""

    username: str
    reward_name: str
    count: int


def ranking_rows(ranking: Iterable[tuple[str, int]]) -> list[tuple[str, str, str]]:
    """Table rows for a (name, count) ranking, numbered from first place."""
    return [
        (f"{place} 位", name, f"{count} 回")
        for place, (name, count) in enumerate(ranking, start=1)
    ]


def user_stat_rows(stats: Iterable[UserUsageStat]) -> list[tuple[str, str, str]]:
    """Table rows for per-user usage statistics."""
    return [(stat.username, stat.reward_name, f"{stat.count} 回") for stat in stats]


def user_spans(stats: Sequence[UserUsageStat]) -> list[tuple[int, int]]:
    """(first row, row count) for each run of two or more rows of the same user."""
    spans: list[tuple[int, int]] = []
    start = 0
    while start < len(stats):
        end = start + 1
        while end < len(stats) and stats[end].username == stats[start].username:
            end += 1
        if end - start > 1:
            spans.append((start, end - start))
        start = end
    return spans


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def export_csv(
    path: str | PathLike[str],
    headers: Sequence[str],
    rows: Sequence[Sequence[str | None]],
) -> None:
    """Write a table as UTF-8 CSV with a byte-order mark, every field quoted.

    Raises ValueError when there are no rows to write.
    """
    if not rows:
        raise ValueError("出力するデータがありません。")
    lines = [",".join('"' + header + '"' for header in headers)]
    for row in rows:
        lines.append(",".join(_quote(cell or "") for cell in row))
    with open(path, "w", encoding="utf-8", newline="") as out:
        out.write("\ufeff")
        out.write("".join(line + "\n" for line in lines))


def table_style(bg_image: str = "", text_color: str = "") -> str:
    """Style sheet for a statistics table with an optional background and text colour."""
    style = "QTableWidget { gridline-color: #333333; "
    if bg_image:
        style += f"border-image: url('{bg_image}') 0 0 0 0 stretch stretch; "
    if text_color:
        style += f"color: {text_color}; "
    style += "} "
    style += "QTableWidget::item { background-color: transparent; } "
    return style