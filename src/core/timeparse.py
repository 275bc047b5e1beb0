"""时间表达式解析

- 相对时长: "10m" / "2 hours" / "1d", 单位必填, 数值 > 0
- 绝对时间: "HH:MM" (已过去则顺延到明天), "YYYY-MM-DD HH:MM" 或 "YYYY-MM-DDTHH:MM"

绝对时间一律按用户时区解释, 返回 epoch 毫秒。
"""

import re
from datetime import datetime, time, timedelta
from typing import Optional

from errors import InvalidAbsoluteTime, InvalidDuration, MissingTime
from utils import DAY_MS, HOUR_MS, MINUTE_MS, local_now, local_to_ms

__all__ = [
    "parse_duration_ms", "parse_absolute_ms", "parse_snooze_minutes", "resolve_when", "resolve_reminder_when",
    "tomorrow_at", "normalize_due", "parse_task_due_ms",
]

_DURATION_RE = re.compile(r"^(\d+)\s*(m|min|mins|minute|minutes|h|hr|hrs|hour|hours|d|day|days)$", re.IGNORECASE)
_SNOOZE_RE = re.compile(r"^(\d+)\s*(m|min|mins|minute|minutes|h|hr|hrs|hour|hours)$", re.IGNORECASE)
_DATETIME_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})[ T](\d{2}):(\d{2})$")
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

_DUE_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}$")
_DUE_CLOCK_RE = re.compile(r"^(\d{2}):(\d{2})$")
_DUE_DOTTED_TIME_RE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4}) (\d{2}:\d{2})$")
_DUE_DOTTED_RE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$")
_TASK_DUE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def parse_duration_ms(raw: str) -> Optional[int]:
    match = _DURATION_RE.match(str(raw or "").strip())
    if not match:
        return None
    value = int(match.group(1))
    if value <= 0:
        return None
    unit = match.group(2).lower()
    if unit.startswith("m"):
        return value * MINUTE_MS
    if unit.startswith("h"):
        return value * HOUR_MS
    return value * DAY_MS


def parse_absolute_ms(raw: str, now: int, user_tz: str) -> Optional[int]:
    """解析绝对时间, 无法解析返回 None"""
    raw = str(raw or "").strip()
    if not raw:
        return None

    match = _DATETIME_RE.match(raw)
    if match:
        try:
            local_dt = datetime(*(int(g) for g in match.groups()))
        except ValueError:
            return None
        return local_to_ms(local_dt, user_tz)

    match = _CLOCK_RE.match(raw)
    if match:
        hh, mm = int(match.group(1)), int(match.group(2))
        if hh > 23 or mm > 59:
            return None
        today = local_now(now, user_tz).date()
        target = local_to_ms(datetime.combine(today, time(hh, mm)), user_tz)
        if target < now:
            target = local_to_ms(datetime.combine(today + timedelta(days=1), time(hh, mm)), user_tz)
        return target

    return None


def parse_snooze_minutes(raw: Optional[str]) -> Optional[int]:
    match = _SNOOZE_RE.match(str(raw or "").strip())
    if not match:
        return None
    value = int(match.group(1))
    if value <= 0:
        return None
    return value * 60 if match.group(2).lower().startswith("h") else value


def resolve_when(when: Optional[str], at: Optional[str], now: int, user_tz: str) -> int:
    """把 --in / --at 转成截止时间 (epoch 毫秒), --in 优先"""
    if when:
        delta = parse_duration_ms(when)
        if delta is None:
            raise InvalidDuration(when)
        return now + delta
    if at:
        ts = parse_absolute_ms(at, now, user_tz)
        if ts is None:
            raise InvalidAbsoluteTime(at)
        return ts
    raise MissingTime()


def resolve_reminder_when(kind: str, value: str, now: int, user_tz: str) -> int:
    """聊天里的时间 (kind 为 in 或 at) 转截止时间, 错误同 resolve_when"""
    if kind == "in":
        return resolve_when(value, None, now, user_tz)
    return resolve_when(None, value, now, user_tz)


def tomorrow_at(now: int, user_tz: str, hour: int, minute: int = 0) -> str:
    """明天某个时刻, 格式 'YYYY-MM-DD HH:MM'"""
    tomorrow = local_now(now, user_tz).date() + timedelta(days=1)
    return f"{tomorrow.isoformat()} {hour:02d}:{minute:02d}"


def normalize_due(raw: str, now: int, user_tz: str) -> str:
    """把截止时间统一成 'YYYY-MM-DD HH:MM', 无法识别返回空串

    DD.MM.YYYY 没有时刻时取 09:00, 只有 HH:MM 时取今天。
    """
    due = _due_candidate(str(raw or "").strip(), now, user_tz)
    if not due:
        return ""
    try:
        datetime.strptime(due, "%Y-%m-%d %H:%M")
    except ValueError:
        return ""
    return due


def _due_candidate(raw: str, now: int, user_tz: str) -> str:
    if not raw:
        return ""
    if _DUE_ISO_RE.match(raw):
        return raw
    match = _DUE_CLOCK_RE.match(raw)
    if match:
        today = local_now(now, user_tz).date().isoformat()
        return f"{today} {match.group(1)}:{match.group(2)}"
    match = _DUE_DOTTED_TIME_RE.match(raw)
    if match:
        day, month, year, hhmm = match.groups()
        return f"{year}-{month}-{day} {hhmm}"
    match = _DUE_DOTTED_RE.match(raw)
    if match:
        day, month, year = match.groups()
        return f"{year}-{month}-{day} 09:00"
    return ""


def parse_task_due_ms(raw: Optional[str], user_tz: str) -> Optional[int]:
    """任务截止日期 YYYY-MM-DD, 取当天本地 17:00"""
    match = _TASK_DUE_RE.match(str(raw or "").strip())
    if not match:
        return None
    try:
        local_dt = datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)), 17, 0)
    except ValueError:
        return None
    return local_to_ms(local_dt, user_tz)
