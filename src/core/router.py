"""待回答问题路由 (PendingIntent 状态机)

每个聊天最多一个 pending。收到消息时按 pending.type 选择处理器:
- 输入无法识别: 抛出带 reply 的 ValidationError, pending 保持不变
- 进入下一步: 替换 entry.pending, 返回下一个问题
- 终止步骤: 先清空 entry.pending, 再调用外部协作方; 协作方失败时返回错误文本

路由器只修改传入的 ChatState, 持久化由调用方负责。
"""

from __future__ import annotations

from typing import Awaitable, Callable, Dict, Literal, Optional

from collaborators.base import Collaborators
from config.settings import *
from config.texts import *
from core.catalog import resolve_assignees, resolve_list
from core.parsers import (
    build_schedule_lines, is_no_deadline, parse_destination_choice, parse_reminder_time_answer,
    parse_when_expression, parse_yes_no, strip_note_target_prefix,
)
from core.scheduler import ReminderScheduler
from core.timeparse import normalize_due, parse_task_due_ms, resolve_reminder_when
from datamodel import *
from errors import AmbiguousMatchError, CollaboratorError, MissingList, NotFoundError, NudgeError, ValidationError, truncate
from events import bus, E
from logger import logger
from storage.daily_log import record_daily_log
from storage.destinations import load_destinations
from utils import local_today_str, now_ms

__all__ = ["PendingIntentRouter", "format_destination_choices"]

Origin = Literal["voice", "text"]
Handler = Callable[[str, ChatState, object, str, Origin], Awaitable[Optional[str]]]


def format_destination_choices(destinations: NoteDestinations) -> str:
    return "\n".join(f"• {key} - {dest.name}" for key, dest in destinations.targets.items())


def _match_destination(destinations: NoteDestinations, raw: str) -> Optional[str]:
    """按 key 或显示名 (不区分大小写) 找目标"""
    if raw in destinations.targets:
        return raw
    needle = raw.lower()
    for key, dest in destinations.targets.items():
        if key.lower() == needle or dest.name.lower() == needle:
            return key
    return None


class PendingIntentRouter:
    def __init__(
        self,
        collaborators: Collaborators,
        scheduler: ReminderScheduler,
        *,
        user_tz: str = USER_TIMEZONE,
        clock: Callable[[], int] = now_ms,
        default_list: str = CLICKUP_DEFAULT_LIST,
        default_assignee: str = CLICKUP_DEFAULT_ASSIGNEE,
        default_note_target: str = DEFAULT_NOTE_TARGET,
    ) -> None:
        self.collaborators = collaborators
        self.scheduler = scheduler
        self.user_tz = user_tz
        self.clock = clock
        self.default_list = default_list
        self.default_assignee = default_assignee
        self.default_note_target = default_note_target

        self._handlers: Dict[str, Handler] = {
            "note-destination": self._on_note_destination,
            "note-target": self._on_note_target,
            "note-due": self._on_note_due,
            "note-reminder-ask": self._on_note_reminder_ask,
            "note-reminder-time": self._on_note_reminder_time,
            "clickup-title": self._on_task_title,
            "clickup-list": self._on_task_list,
            "daily-plan": self._on_daily_plan,
            "reminder-text": self._on_reminder_text,
            "reminder-time": self._on_reminder_time,
        }
        missing = set(PENDING_INTENT_TYPES) - set(self._handlers)
        if missing:
            raise RuntimeError(f"PendingIntent 缺少处理器: {sorted(missing)}")

    async def resume(self, chat_id: str, entry: ChatState, text: str, origin: Origin = "text") -> Optional[str]:
        """把 text 当作 pending 问题的回答处理, 返回要回复的文本 (None 表示不需要回复)"""
        pending = entry.pending
        if pending is None:
            raise NotFoundError(f"No pending intent for chat {chat_id}.")
        logger.debug(f"恢复 pending: chat={chat_id}, type={pending.type}")
        before = pending.type
        reply = await self._handlers[pending.type](chat_id, entry, pending, text, origin)
        after = entry.pending.type if entry.pending is not None else None
        if after != before:
            logger.info(f"pending 变化: chat={chat_id}, {before} -> {after}")
            bus.emit(E.PENDING_CHANGED, chat_id=chat_id, before=before, after=after)
        return reply

    def _collaborator_failed(self, e: CollaboratorError, template: str) -> str:
        logger.error(f"外部调用失败: {e}")
        bus.emit(E.COLLABORATOR_FAILED, collaborator=e.collaborator, error=e)
        return template.format(error=truncate(str(e)))

    async def _create_note(self, target_key: str, title: str, body: Optional[str], fallback: str) -> str:
        try:
            out = await self.collaborators.notes.create_note(target_key, title, body)
        except CollaboratorError as e:
            return self._collaborator_failed(e, NOTION_ERROR)
        logger.info(f"创建笔记: target={target_key}, title=\"{title}\"")
        return out or fallback

    def _check_when(self, when: ReminderWhen, reply: str) -> None:
        """格式像时间但取值非法 (如 25:00) 时追问, pending 保持不变"""
        try:
            resolve_reminder_when(when.kind, when.value, self.clock(), self.user_tz)
        except ValidationError as e:
            raise ValidationError(str(e), reply=reply) from e

    def _due_body(self, due: Optional[str]) -> Optional[str]:
        if not due:
            return None
        return DUE_PREFIX.format(due=normalize_due(due, self.clock(), self.user_tz) or due)

    # ----------------- 笔记 ----------------
    async def _on_note_destination(self, chat_id, entry, pending: NoteDestinationIntent, text, origin):
        choice = parse_destination_choice(text)
        if choice == "notion":
            destinations = await load_destinations()
            if not destinations.targets:
                raise ValidationError("no destinations configured", reply=NO_DESTINATIONS)
            entry.pending = NoteTargetIntent(title=pending.title, origin=origin)
            return ASK_TARGET.format(choices=format_destination_choices(destinations))
        if choice == "clickup":
            entry.pending = None
            return await self.create_task(entry, pending.title)
        raise ValidationError("unrecognised destination", reply=REPROMPT_DESTINATION)

    async def _on_note_target(self, chat_id, entry, pending: NoteTargetIntent, text, origin):
        raw = strip_note_target_prefix(text)
        destinations = await load_destinations()
        key = _match_destination(destinations, raw) if raw else None
        if key is None:
            raise ValidationError(
                f"unknown destination '{raw}'",
                reply=REPROMPT_TARGET.format(choices=format_destination_choices(destinations)),
            )
        entry.pending = NoteReminderAskIntent(title=pending.title, target_key=key, due=pending.due)
        return ASK_REMINDER

    async def _on_note_reminder_ask(self, chat_id, entry, pending: NoteReminderAskIntent, text, origin):
        answer = parse_yes_no(text)
        if answer is None:
            raise ValidationError("expected yes or no", reply=REPROMPT_REMINDER)
        if answer:
            entry.pending = NoteReminderTimeIntent(title=pending.title, target_key=pending.target_key, due=pending.due)
            return ASK_REMINDER_TIME
        entry.pending = None
        return await self._create_note(
            pending.target_key, pending.title, self._due_body(pending.due), NOTE_SAVED_NO_REMINDER
        )

    async def _on_note_reminder_time(self, chat_id, entry, pending: NoteReminderTimeIntent, text, origin):
        when = parse_reminder_time_answer(text, self.clock(), self.user_tz)
        if when is None:
            raise ValidationError("unrecognised reminder time", reply=REPROMPT_REMINDER_TIME)
        self._check_when(when, REPROMPT_REMINDER_TIME)
        entry.pending = None
        try:
            await self.collaborators.notes.create_note(pending.target_key, pending.title, self._due_body(pending.due))
        except CollaboratorError as e:
            return self._collaborator_failed(e, NOTION_ERROR)

        try:
            await self._add_reminder(NOTE_REMINDER_TEXT.format(title=pending.title), when, chat_id)
        except NudgeError as e:
            logger.error(f"笔记已保存, 但提醒创建失败: {e}")
            return NOTE_SAVED_REMINDER_FAILED.format(error=truncate(str(e)))
        return NOTE_SAVED_WITH_REMINDER

    async def _on_note_due(self, chat_id, entry, pending: NoteDueIntent, text, origin):
        if is_no_deadline(text):
            body = NO_DUE_BODY
        else:
            due = normalize_due(text, self.clock(), self.user_tz)
            if not due:
                raise ValidationError("unrecognised due date", reply=REPROMPT_DUE)
            body = DUE_PREFIX.format(due=due)
        entry.pending = None
        return await self._create_note(
            pending.target_key or self.default_note_target, pending.title or text.strip(), body, NOTE_SAVED
        )

    # ----------------- 任务 ----------------
    async def create_task(
        self,
        entry: ChatState,
        title: str,
        assignee: Optional[str] = None,
        list_name: Optional[str] = None,
        due: Optional[str] = None,
        priority: Optional[int] = None,
    ) -> str:
        """创建任务; 列表缺失或有歧义时转入 clickup-list 追问"""
        tasks = self.collaborators.tasks
        try:
            task_list = await resolve_list(tasks, list_name, self.default_list)
            assignee_ids = await resolve_assignees(tasks, assignee or self.default_assignee)
            out = await tasks.create_task(
                title, task_list.id, assignee_ids, parse_task_due_ms(due, self.user_tz), priority
            )
        except MissingList as e:
            entry.pending = TaskListIntent(title=title, assignee=assignee, due=due or None, priority=priority)
            return ASK_TASK_LIST.format(candidates="\n".join(e.candidates))
        except AmbiguousMatchError as e:
            if e.kind != "list":
                return CLICKUP_ERROR.format(error=truncate(str(e)))
            entry.pending = TaskListIntent(title=title, assignee=assignee, due=due or None, priority=priority)
            return ASK_TASK_LIST.format(candidates="\n".join(e.candidates))
        except NotFoundError as e:
            return CLICKUP_ERROR.format(error=truncate(str(e)))
        except CollaboratorError as e:
            return self._collaborator_failed(e, CLICKUP_ERROR)
        logger.info(f"创建任务: list={task_list.id}, title=\"{title}\"")
        return out or TASK_CREATED

    async def _on_task_title(self, chat_id, entry, pending: TaskTitleIntent, text, origin):
        title = text.strip()
        if not title:
            raise ValidationError("missing task title", reply=ASK_TASK_TITLE)
        entry.pending = None
        return await self.create_task(entry, title, assignee=pending.assignee, list_name=pending.list)

    async def _on_task_list(self, chat_id, entry, pending: TaskListIntent, text, origin):
        list_text = text.strip()
        use_default = list_text.lower() in ("", "default", "по подразбиране")
        entry.pending = None
        return await self.create_task(
            entry,
            pending.title,
            assignee=pending.assignee,
            list_name=None if use_default else list_text,
            due=pending.due,
            priority=pending.priority,
        )

    # ----------------- 每日计划 ----------------
    async def _on_daily_plan(self, chat_id, entry, pending: DailyPlanIntent, text, origin):
        plan = text.strip()
        if not plan:
            raise ValidationError("empty plan", reply=ASK_PLAN)
        date = pending.date or local_today_str(self.clock(), self.user_tz)
        lines = build_schedule_lines(plan)
        entry.pending = None

        await record_daily_log(date, "schedule", lines)
        await self.scheduler.complete_group(DAILY_PLAN_GROUP)
        try:
            for line in lines:
                await self.collaborators.notes.append_schedule(date, line)
        except CollaboratorError as e:
            return self._collaborator_failed(e, NOTION_ERROR)
        return PLAN_SAVED.format(date=date, lines="\n".join(f"• {line}" for line in lines))

    # ----------------- 提醒 ----------------
    async def _add_reminder(self, text: str, when: ReminderWhen, chat_id: str) -> Reminder:
        if when.kind == "in":
            return await self.scheduler.add(text, when=when.value, group=TASKS_GROUP, target=chat_id)
        return await self.scheduler.add(text, at=when.value, group=TASKS_GROUP, target=chat_id)

    async def _on_reminder_text(self, chat_id, entry, pending: ReminderTextIntent, text, origin):
        body = text.strip()
        if not body:
            raise ValidationError("missing reminder text", reply=ASK_REMINDER_TEXT)
        entry.pending = None
        try:
            await self._add_reminder(body, pending.when, chat_id)
        except NudgeError as e:
            return REMINDER_ERROR.format(error=truncate(str(e)))
        return None

    async def _on_reminder_time(self, chat_id, entry, pending: ReminderTimeIntent, text, origin):
        when = parse_when_expression(text)
        if when is None:
            raise ValidationError("unrecognised reminder time", reply=REPROMPT_REMINDER_WHEN)
        self._check_when(when, REPROMPT_REMINDER_WHEN)
        entry.pending = None
        try:
            await self._add_reminder(pending.text, when, chat_id)
        except NudgeError as e:
            return REMINDER_ERROR.format(error=truncate(str(e)))
        return None
