"""聊天消息入口

处理顺序:
1. 只有语音没有文字 → 转写 (失败直接回复错误, 不再往下走)
2. 空文本 → 未处理
3. /smart, /script 切换模式; smart 模式下其余消息都交给调用方
4. 有 pending → 只交给 PendingIntentRouter
5. 无状态命令
6. 都不匹配 → 未处理, 调用方可以交给其他兜底逻辑
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple

from collaborators.base import Collaborators, deliver
from config.settings import *
from config.texts import *
from core.parsers import *
from core.router import PendingIntentRouter, format_destination_choices
from core.scheduler import ReminderScheduler
from core.timeparse import parse_absolute_ms, resolve_reminder_when, tomorrow_at
from datamodel import *
from errors import CollaboratorError, NudgeError, ValidationError, truncate
from events import bus, E
from logger import logger
from storage.chat_state import load_chat_states, save_chat_states
from storage.daily_log import record_daily_log
from storage.destinations import load_destinations
from utils import local_today_str, local_tomorrow_str, ms_to_local_min_str, now_ms

__all__ = ["ChatDispatcher"]


class ChatDispatcher:
    def __init__(
        self,
        collaborators: Collaborators,
        scheduler: ReminderScheduler,
        router: Optional[PendingIntentRouter] = None,
        *,
        user_tz: str = USER_TIMEZONE,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.collaborators = collaborators
        self.scheduler = scheduler
        self.user_tz = user_tz
        self.clock = clock
        self.router = router or PendingIntentRouter(collaborators, scheduler, user_tz=user_tz, clock=clock)

    async def _reply(self, chat_id: str, text: Optional[str]) -> None:
        if text:
            await deliver(self.collaborators.messenger, chat_id, text)

    async def handle_message(self, message: IncomingMessage) -> DispatchResult:
        chat_id = str(message.chat_id)
        bus.emit(E.IO_MESSAGE_RECEIVED, message=message)
        try:
            return await self._handle(chat_id, message)
        except CollaboratorError as e:
            # 回复本身发送失败
            return DispatchResult(handled=True, error=str(e))

    async def _handle(self, chat_id: str, message: IncomingMessage) -> DispatchResult:
        text = (message.content or "").strip()
        origin = "text"
        if not text and message.audio_path:
            try:
                raw = await self.collaborators.transcriber.transcribe(message.audio_path)
            except CollaboratorError as e:
                logger.error(f"语音转写失败: chat={chat_id}, error={e}")
                bus.emit(E.COLLABORATOR_FAILED, collaborator=e.collaborator, error=e)
                await self._reply(chat_id, TRANSCRIBE_ERROR.format(error=truncate(e.detail)))
                return DispatchResult(handled=True, error=str(e))
            text = collapse_whitespace(raw)
            origin = "voice"
            logger.info(f"语音转写完成: chat={chat_id}, text=\"{text[:80]}\"")

        if not text:
            return DispatchResult(handled=False)

        states = await load_chat_states()
        entry = states.get_or_create(chat_id)
        before = entry.model_dump_json()

        toggle = parse_smart_toggle(text)
        if toggle is not None:
            entry.smart = toggle
            await save_chat_states(states)
            if text.lower().startswith("/script"):
                await self._reply(chat_id, SCRIPT_MODE)
            else:
                await self._reply(chat_id, SMART_ON if toggle else SMART_OFF)
            return DispatchResult(handled=True)

        if entry.smart:
            return DispatchResult(handled=False)

        if entry.pending is not None:
            try:
                reply = await self.router.resume(chat_id, entry, text, origin)
            except ValidationError as e:
                logger.debug(f"追问: chat={chat_id}, type={entry.pending.type}, reason={e}")
                await self._reply(chat_id, e.reply or str(e))
                return DispatchResult(handled=True)
            await save_chat_states(states)
            await self._reply(chat_id, reply)
            return DispatchResult(handled=True)

        handled, reply = await self._run_command(chat_id, entry, text, origin)
        if not handled:
            logger.debug(f"未匹配任何命令: chat={chat_id}")
            return DispatchResult(handled=False)
        if entry.model_dump_json() != before:
            await save_chat_states(states)
        await self._reply(chat_id, reply)
        return DispatchResult(handled=True)

    async def _run_command(
        self, chat_id: str, entry: ChatState, text: str, origin: str
    ) -> Tuple[bool, Optional[str]]:
        """无状态命令, 返回 (是否处理, 回复文本)"""
        if is_help(text):
            return True, HELP_TEXT

        task = parse_task_create(text)
        if task is not None:
            if not task.title:
                entry.pending = TaskTitleIntent(assignee=task.assignee or None, list=task.list or None)
                return True, ASK_TASK_TITLE
            return True, await self.router.create_task(
                entry, task.title, task.assignee or None, task.list or None, task.due or None, task.priority
            )

        phrase = parse_reminder_relative(text) or parse_reminder_absolute(text)
        if phrase is not None:
            if not phrase.text:
                try:
                    resolve_reminder_when(phrase.when.kind, phrase.when.value, self.clock(), self.user_tz)
                except ValidationError as e:
                    return True, REMINDER_ERROR.format(error=truncate(str(e)))
                entry.pending = ReminderTextIntent(when=phrase.when)
                return True, ASK_REMINDER_TEXT
            return True, await self._add_reminder(chat_id, phrase.text, phrase.when)

        request = parse_reminder_request(text)
        if request is not None:
            entry.pending = ReminderTimeIntent(text=request)
            return True, ASK_REMINDER_WHEN

        if is_done_shortcut(text):
            return True, await self._guard(self.scheduler.done(group=TASKS_GROUP, target=chat_id))

        snooze = parse_snooze_shortcut(text)
        if snooze is not None:
            return True, await self._guard(self.scheduler.snooze(minutes=snooze, group=TASKS_GROUP, target=chat_id))

        capture = parse_note_capture(text)
        if capture is not None:
            return True, await self._capture_note(entry, capture, origin)

        if is_daily_planner(text):
            entry.pending = DailyPlanIntent(date=local_tomorrow_str(self.clock(), self.user_tz))
            return True, ASK_PLAN

        if is_postpone_plan(text):
            return True, await self._postpone_plan()

        deviation = parse_deviation(text)
        if deviation is not None:
            date = local_today_str(self.clock(), self.user_tz)
            await record_daily_log(date, "deviation", [deviation])
            return True, DEVIATION_SAVED.format(date=date)

        if is_list_reminders(text):
            return True, await self._list_reminders(chat_id)

        return False, None

    async def _guard(self, operation) -> Optional[str]:
        """执行提醒操作; 成功时确认消息已由调度器发出, 失败时返回错误文本"""
        try:
            await operation
        except NudgeError as e:
            logger.warning(f"提醒操作失败: {e}")
            return REMINDER_ERROR.format(error=truncate(str(e)))
        return None

    async def _add_reminder(self, chat_id: str, text: str, when: ReminderWhen) -> Optional[str]:
        if when.kind == "in":
            operation = self.scheduler.add(text, when=when.value, group=TASKS_GROUP, target=chat_id)
        else:
            operation = self.scheduler.add(text, at=when.value, group=TASKS_GROUP, target=chat_id)
        return await self._guard(operation)

    async def _capture_note(self, entry: ChatState, capture: NoteCapture, origin: str) -> str:
        if capture.kind == "ask":
            entry.pending = NoteDestinationIntent(title=capture.title)
            return ASK_DESTINATION
        if capture.kind == "task" and not capture.due:
            entry.pending = NoteDueIntent(title=capture.title, origin=origin)
            return ASK_DUE.format(title=capture.title)

        destinations = await load_destinations()
        if not destinations.targets:
            return NO_DESTINATIONS
        entry.pending = NoteTargetIntent(title=capture.title, due=capture.due or None, origin=origin)
        return ASK_TARGET.format(choices=format_destination_choices(destinations))

    async def _postpone_plan(self) -> str:
        now = self.clock()
        at_ms = parse_absolute_ms(tomorrow_at(now, self.user_tz, 9), now, self.user_tz)
        moved = await self.scheduler.reschedule_group(DAILY_PLAN_GROUP, at_ms)
        return PLAN_POSTPONED if moved else PLAN_NOT_ACTIVE

    async def _list_reminders(self, chat_id: str) -> str:
        reminders = [r for r in await self.scheduler.list() if r.target == chat_id]
        if not reminders:
            return REMINDER_LIST_EMPTY
        lines = [REMINDER_LIST_HEADER.format(count=len(reminders))]
        for r in reminders:
            lines.append(f"- ({r.id}) {r.text} | {ms_to_local_min_str(r.next_at, self.user_tz)}")
        return "\n".join(lines)
