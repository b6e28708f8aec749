from __future__ import annotations

from dataclasses import dataclass

"""Result models for one CLI run (generate / upload)."""

__all__ = [
    "RunResult",
]


@dataclass(frozen=True)
class RunResult:
    """Aggregated counters rendered into the SUMMARY line."""
    rows: int  # 正規化後の行数
    properties: int  # 生成した PropertyRecord 数
    option_errors: int  # Options セルのデコード失敗数
    created: int  # HubSpot 側で作成された数 (generate のみなら 0)
    elapsed_seconds: float
