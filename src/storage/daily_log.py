"""每日日志存储, 按日期只追加

文档格式: { <YYYY-MM-DD>: { schedule: [...], deviations: [...] } }
"""

from typing import Literal

from datamodel import DailyLog, DailyLogEntry
from logger import logger
from storage.document import DocumentStore

__all__ = ["daily_log_store", "load_daily_log", "record_daily_log"]

daily_log_store: DocumentStore[DailyLog] = DocumentStore("daily_log", DailyLog)


async def load_daily_log() -> DailyLog:
    return await daily_log_store.load()


async def record_daily_log(date: str, kind: Literal["schedule", "deviation"], lines: list[str]) -> DailyLogEntry:
    """把若干行追加到某天的 schedule 或 deviations"""
    log = await daily_log_store.load()
    entry = log.root.setdefault(date, DailyLogEntry())
    if kind == "schedule":
        entry.schedule.extend(lines)
    else:
        entry.deviations.extend(lines)
    await daily_log_store.save(log)
    logger.trace(f"追加每日日志: date={date}, kind={kind}, count={len(lines)}")
    return entry
