"""时间工具

全部时间戳使用 epoch 毫秒 (int)。绝对时间按用户时区解释。
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo
import time

__all__ = ["MINUTE_MS", "HOUR_MS", "DAY_MS",
           "now_ms", "local_now", "ms_to_local", "local_to_ms", "ms_to_local_min_str",
           "local_today_str", "local_tomorrow_str", "local_date_str"]

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


def now_ms() -> int:
    """获取当前 epoch 毫秒"""
    return int(time.time() * 1000)


def ms_to_local(ts_ms: int, user_tz: str) -> datetime:
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).astimezone(ZoneInfo(user_tz))


def local_now(now: int, user_tz: str) -> datetime:
    return ms_to_local(now, user_tz)


def local_to_ms(local_dt: datetime, user_tz: str) -> int:
    # local_dt: 不带时区的用户本地时间
    if local_dt.tzinfo is None:
        local_dt = local_dt.replace(tzinfo=ZoneInfo(user_tz))
    return int(local_dt.timestamp() * 1000)


def ms_to_local_min_str(ts_ms: int, user_tz: str) -> str:
    """格式: 'YYYY-MM-DD HH:MM'"""
    return ms_to_local(ts_ms, user_tz).strftime("%Y-%m-%d %H:%M")


def local_date_str(now: int, user_tz: str, days: int = 0) -> str:
    d: date = ms_to_local(now, user_tz).date() + timedelta(days=days)
    return d.isoformat()


def local_today_str(now: int, user_tz: str) -> str:
    return local_date_str(now, user_tz)


def local_tomorrow_str(now: int, user_tz: str) -> str:
    return local_date_str(now, user_tz, days=1)
