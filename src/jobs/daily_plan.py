"""每日计划相关的定时任务

- start_daily_plan: 晚上提醒用户规划明天, 每 10 分钟重复直到用户提交计划
- weekly_analysis: 汇总最近 7 天的计划数与偏差数
"""

from __future__ import annotations

from typing import Callable, List, Optional

from collaborators.base import Collaborators, deliver
from config.settings import *
from config.texts import *
from core.scheduler import ReminderScheduler
from datamodel import DailyLogEntry, DailyPlanIntent, Reminder
from logger import logger
from storage.chat_state import load_chat_states, save_chat_states
from storage.daily_log import load_daily_log
from utils import local_today_str, local_tomorrow_str, now_ms

__all__ = ["start_daily_plan", "build_weekly_summary", "weekly_analysis"]

MAX_DEVIATIONS_PER_DAY = 5


async def start_daily_plan(
    scheduler: ReminderScheduler,
    *,
    target: Optional[str] = None,
    at: str = DAILY_PLAN_REMINDER_AT,
    repeat_minutes: int = DAILY_PLAN_REPEAT_MINUTES,
    clock: Callable[[], int] = now_ms,
    user_tz: str = USER_TIMEZONE,
) -> Reminder:
    """重新开始每日计划流程

    清空 daily-plan 分组, 新建晚间提醒, 并在兜底聊天没有其他 pending 时设置 daily-plan pending。
    """
    target = (target or scheduler.default_target).strip()
    await scheduler.clear_group(DAILY_PLAN_GROUP)
    reminder = await scheduler.add(
        DAILY_PLAN_PROMPT, at=at, repeat_minutes=repeat_minutes, target=target, group=DAILY_PLAN_GROUP
    )

    states = await load_chat_states()
    entry = states.get_or_create(target)
    if entry.pending is None:
        entry.pending = DailyPlanIntent(date=local_tomorrow_str(clock(), user_tz))
        await save_chat_states(states)
        logger.info(f"设置 daily-plan pending: chat={target}, date={entry.pending.date}")
    else:
        logger.info(f"聊天已有 pending ({entry.pending.type}), 不设置 daily-plan: chat={target}")
    return reminder


def build_weekly_summary(entries: List[tuple[str, DailyLogEntry]]) -> List[str]:
    scheduled = 0
    deviations = 0
    lines: List[str] = []
    for date, entry in entries:
        scheduled += len(entry.schedule)
        deviations += len(entry.deviations)
        lines.append(WEEKLY_DAY.format(date=date, scheduled=len(entry.schedule), deviations=len(entry.deviations)))
        for item in entry.deviations[:MAX_DEVIATIONS_PER_DAY]:
            lines.append(f"  - {item}")
    lines.append(WEEKLY_TOTAL_SCHEDULED.format(count=scheduled))
    lines.append(WEEKLY_TOTAL_DEVIATIONS.format(count=deviations))
    return lines


async def weekly_analysis(
    collaborators: Collaborators,
    *,
    target: str = DEFAULT_TARGET,
    clock: Callable[[], int] = now_ms,
    user_tz: str = USER_TIMEZONE,
) -> List[str]:
    """发送最近 7 个有记录日期的汇总, 并追加到今天的日程页; 没有日志时什么也不做"""
    log = await load_daily_log()
    dates = sorted(log.root)
    if not dates:
        logger.info("每日日志为空, 跳过周分析")
        return []

    lines = build_weekly_summary([(date, log.root[date]) for date in dates[-7:]])
    if target:
        message = WEEKLY_HEADER + "\n" + "\n".join(f"• {line}" for line in lines)
        await deliver(collaborators.messenger, target, message)
    else:
        logger.warning("未设置 DEFAULT_TARGET, 周分析只写入日程页")

    today = local_today_str(clock(), user_tz)
    for line in lines:
        await collaborators.notes.append_schedule(today, WEEKLY_SCHEDULE_PREFIX.format(line=line))
    logger.info(f"周分析完成: days={min(len(dates), 7)}")
    return lines
