"""提醒调度器

每个操作都是一次完整的 load → 修改 → save, 不持有长期状态。
tick 由外部定时触发 (cron / CLI), 到期提醒按 repeat_minutes 反复发送直到被确认。
"""

from __future__ import annotations

from typing import Callable, List, Optional, Union

from collaborators.base import Messenger, deliver
from config.settings import *
from config.texts import REMINDER_ADDED, REMINDER_DONE, REMINDER_FIRED, REMINDER_SNOOZED
from core.timeparse import parse_snooze_minutes, resolve_when
from datamodel import GroupConfig, Reminder, RemindersState
from errors import CollaboratorError, MissingText, NoPendingReminder, NotFoundError, ValidationError
from events import bus, E
from logger import logger
from storage.document import DocumentStore
from storage.reminder import next_reminder_id, reminders_store
from utils import MINUTE_MS, now_ms

__all__ = ["ReminderScheduler"]


class ReminderScheduler:
    def __init__(
        self,
        messenger: Messenger,
        *,
        default_target: str = DEFAULT_TARGET,
        default_repeat_minutes: int = DEFAULT_REPEAT_MINUTES,
        user_tz: str = USER_TIMEZONE,
        clock: Callable[[], int] = now_ms,
        store: DocumentStore[RemindersState] = reminders_store,
    ) -> None:
        self.messenger = messenger
        self.default_target = default_target
        self.default_repeat_minutes = default_repeat_minutes
        self.user_tz = user_tz
        self.clock = clock
        self.store = store

    def _repeat_minutes(self, value: Optional[int]) -> int:
        if value is None or value <= 0:
            return self.default_repeat_minutes
        return value

    async def add(
        self,
        text: str,
        when: Optional[str] = None,
        repeat_minutes: Optional[int] = None,
        target: Optional[str] = None,
        group: Optional[str] = None,
        *,
        at: Optional[str] = None,
    ) -> Reminder:
        """新建提醒, when 是相对时长 (10m), at 是绝对时间 (18:30), 二者必须给一个"""
        text = (text or "").strip()
        if not text:
            raise MissingText()
        now = self.clock()
        due_at = resolve_when(when, at, now, self.user_tz)
        target = (target or self.default_target).strip()
        if not target:
            raise ValidationError("Missing target chat for reminder delivery.")
        repeat = self._repeat_minutes(repeat_minutes)
        group = (group or "").strip() or None

        state = await self.store.load()
        if group and group not in state.groups:
            state.groups[group] = GroupConfig(repeat_minutes=repeat)
        reminder = Reminder(
            id=next_reminder_id(state.reminders),
            text=text,
            created_at=now,
            due_at=due_at,
            next_at=due_at,
            repeat_minutes=repeat,
            target=target,
            group=group,
        )
        state.reminders.append(reminder)
        await self.store.save(state)
        logger.info(f"[add] id={reminder.id} due_at={due_at} group={group} text=\"{text}\"")
        bus.emit(E.REMINDER_CREATED, reminder=reminder)

        await deliver(self.messenger, target, REMINDER_ADDED.format(text=text))
        return reminder

    def _select(
        self,
        state: RemindersState,
        id: Optional[str],
        group: Optional[str],
        target: Optional[str],
        action: str,
    ) -> Reminder:
        id = (id or "").strip()
        if id:
            for reminder in state.reminders:
                if reminder.id == id and reminder.status == "pending":
                    return reminder
            raise NotFoundError(f"Reminder {id} not found or already done.")

        target = (target or self.default_target).strip()
        # 倒序查找, 最近创建的优先
        for reminder in reversed(state.reminders):
            if reminder.status != "pending" or reminder.target != target:
                continue
            if group and reminder.group != group:
                continue
            return reminder
        raise NoPendingReminder(action)

    async def done(
        self, id: Optional[str] = None, group: Optional[str] = None, target: Optional[str] = None
    ) -> Reminder:
        state = await self.store.load()
        reminder = self._select(state, id, group, target, "mark done")
        reminder.status = "done"
        reminder.done_at = self.clock()
        await self.store.save(state)
        logger.info(f"[done] id={reminder.id}")
        bus.emit(E.REMINDER_DONE, reminder=reminder)

        await deliver(self.messenger, reminder.target or self.default_target, REMINDER_DONE.format(text=reminder.text))
        return reminder

    async def snooze(
        self,
        id: Optional[str] = None,
        minutes: Union[str, int, None] = None,
        group: Optional[str] = None,
        target: Optional[str] = None,
    ) -> Reminder:
        """推迟提醒; 没给时长或时长无法解析时, 使用分组的间隔 (再退回默认间隔)"""
        state = await self.store.load()
        reminder = self._select(state, id, group, target, "snooze")

        if isinstance(minutes, int):
            parsed = minutes if minutes > 0 else None
        else:
            parsed = parse_snooze_minutes(minutes)
        if parsed is None:
            group_config = state.groups.get(group or reminder.group or "")
            parsed = group_config.repeat_minutes if group_config else self.default_repeat_minutes

        reminder.next_at = self.clock() + parsed * MINUTE_MS
        await self.store.save(state)
        logger.info(f"[snooze] id={reminder.id} next_at={reminder.next_at}")
        bus.emit(E.REMINDER_SNOOZED, reminder=reminder)

        await deliver(
            self.messenger, reminder.target or self.default_target, REMINDER_SNOOZED.format(text=reminder.text)
        )
        return reminder

    async def list(self, group: Optional[str] = None) -> List[Reminder]:
        state = await self.store.load()
        return [r for r in state.reminders if r.status == "pending" and (not group or r.group == group)]

    async def tick(self, group: Optional[str] = None) -> int:
        """发送所有到期提醒, 返回发送数量

        单个提醒投递失败只记录日志, 该提醒保持到期状态, 下次 tick 再发。
        """
        now = self.clock()
        state = await self.store.load()
        sent = 0
        for reminder in state.reminders:
            if reminder.status != "pending" or reminder.next_at > now:
                continue
            if group and reminder.group != group:
                continue
            try:
                await deliver(
                    self.messenger, reminder.target or self.default_target, REMINDER_FIRED.format(text=reminder.text)
                )
            except CollaboratorError as e:
                logger.error(f"[tick] 提醒投递失败 id={reminder.id}: {e}")
                continue
            reminder.last_sent_at = now
            reminder.next_at = now + self._repeat_minutes(reminder.repeat_minutes) * MINUTE_MS
            sent += 1
            bus.emit(E.REMINDER_FIRED, reminder=reminder)

        if sent > 0:
            await self.store.save(state)
        logger.info(f"[tick] sent={sent}")
        return sent

    async def clear_group(self, group: str) -> int:
        """删除分组内全部提醒 (包括已完成的), 返回删除数量"""
        state = await self.store.load()
        before = len(state.reminders)
        state.reminders = [r for r in state.reminders if r.group != group]
        removed = before - len(state.reminders)
        await self.store.save(state)
        logger.info(f"[clear] group={group} removed={removed}")
        return removed

    async def complete_group(self, group: str) -> int:
        """把分组内所有待发提醒标记为完成, 不发送确认消息"""
        state = await self.store.load()
        now = self.clock()
        completed = 0
        for reminder in state.reminders:
            if reminder.status == "pending" and reminder.group == group:
                reminder.status = "done"
                reminder.done_at = now
                completed += 1
                bus.emit(E.REMINDER_DONE, reminder=reminder)
        if completed > 0:
            await self.store.save(state)
        logger.info(f"[done] group={group} completed={completed}")
        return completed

    async def reschedule_group(self, group: str, at_ms: int) -> int:
        """把分组内所有待发提醒的下次触发时间移到 at_ms"""
        state = await self.store.load()
        moved = 0
        for reminder in state.reminders:
            if reminder.status == "pending" and reminder.group == group:
                reminder.next_at = at_ms
                moved += 1
        if moved > 0:
            await self.store.save(state)
        logger.info(f"[reschedule] group={group} moved={moved} next_at={at_ms}")
        return moved
