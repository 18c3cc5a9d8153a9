"""服务层共用的日期与数值处理工具。

统计窗口在 Python 侧计算后作为绑定参数传入，SQLite 与服务器数据库都能执行。
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def days_ago(days: int) -> datetime:
    """``days`` 天前的 UTC 零点，相当于 ``CURDATE() - INTERVAL days DAY``。"""

    return datetime.combine(utc_today() - timedelta(days=days), time.min, tzinfo=timezone.utc)


def date_key(value: Any) -> Optional[str]:
    """``func.date`` 的结果在 SQLite 是字符串，在其他库是 date，统一成 ISO 字符串。"""

    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value)[:10]


def as_float(value: Any, digits: Optional[int] = None) -> float:
    if value is None:
        return 0.0
    result = float(value)
    return round(result, digits) if digits is not None else result


def as_int(value: Any) -> int:
    return int(value or 0)


def days_until(due: Optional[date]) -> Optional[int]:
    if due is None:
        return None
    return (due - utc_today()).days
