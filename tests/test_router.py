import typing

import pytest

from conftest import CHAT
from config.texts import *
from datamodel import *
from errors import ValidationError
from storage.daily_log import load_daily_log
from storage.destinations import default_destinations, save_destinations
from storage.reminder import load_reminders


def _entry(pending) -> ChatState:
    return ChatState(pending=pending)


def test_every_pending_variant_has_a_handler(router):
    union = typing.get_args(typing.get_args(PendingIntent)[0])
    tags = {model.model_fields["type"].default for model in union}
    assert tags == set(PENDING_INTENT_TYPES)
    assert set(router._handlers) == tags


@pytest.mark.asyncio
async def test_note_destination_notion_without_destinations(router):
    pending = NoteDestinationIntent(title="Идея")
    entry = _entry(pending)
    with pytest.raises(ValidationError, match="no destinations configured") as exc:
        await router.resume(CHAT, entry, "Notion")
    assert exc.value.reply == NO_DESTINATIONS
    assert entry.pending is pending


@pytest.mark.asyncio
async def test_note_destination_notion_offers_destinations(router):
    await save_destinations(default_destinations())
    entry = _entry(NoteDestinationIntent(title="Идея"))
    reply = await router.resume(CHAT, entry, "в notion", origin="voice")
    assert isinstance(entry.pending, NoteTargetIntent)
    assert entry.pending.origin == "voice"
    assert "quick_tasks - Quick Task/Notes" in reply


@pytest.mark.asyncio
async def test_note_destination_unrecognised_reprompts(router):
    entry = _entry(NoteDestinationIntent(title="Идея"))
    with pytest.raises(ValidationError) as exc:
        await router.resume(CHAT, entry, "не знам")
    assert exc.value.reply == REPROMPT_DESTINATION
    assert entry.pending.type == "note-destination"


@pytest.mark.asyncio
async def test_note_destination_clickup_creates_task(router, collaborators):
    entry = _entry(NoteDestinationIntent(title="Купи тонер"))
    reply = await router.resume(CHAT, entry, "ClickUp")
    assert reply == TASK_CREATED
    assert entry.pending is None
    assert collaborators.tasks.created[0]["title"] == "Купи тонер"
    assert collaborators.tasks.created[0]["list_id"] == "L1"


@pytest.mark.asyncio
async def test_note_target_by_key_or_name(router):
    await save_destinations(default_destinations())
    entry = _entry(NoteTargetIntent(title="Идея", due="14:00"))
    reply = await router.resume(CHAT, entry, "/note-target quick_tasks")
    assert reply == ASK_REMINDER
    assert entry.pending == NoteReminderAskIntent(title="Идея", target_key="quick_tasks", due="14:00")

    entry = _entry(NoteTargetIntent(title="Идея"))
    await router.resume(CHAT, entry, "daily schedule")
    assert entry.pending.target_key == "daily_schedule"


@pytest.mark.asyncio
async def test_note_target_unknown_reprompts(router):
    await save_destinations(default_destinations())
    entry = _entry(NoteTargetIntent(title="Идея"))
    with pytest.raises(ValidationError) as exc:
        await router.resume(CHAT, entry, "somewhere")
    assert "quick_tasks" in exc.value.reply
    assert entry.pending.type == "note-target"


@pytest.mark.asyncio
async def test_reminder_ask_no_creates_note_without_reminder(router, collaborators):
    entry = _entry(NoteReminderAskIntent(title="Отчет", target_key="quick_tasks", due="06.01.2026 12:00"))
    reply = await router.resume(CHAT, entry, "no")
    assert reply == NOTE_SAVED_NO_REMINDER
    assert entry.pending is None
    assert collaborators.notes.notes == [("quick_tasks", "Отчет", "До 2026-01-06 12:00")]
    assert (await load_reminders()).reminders == []


@pytest.mark.asyncio
async def test_reminder_ask_yes_asks_time(router, collaborators):
    entry = _entry(NoteReminderAskIntent(title="Отчет", target_key="quick_tasks"))
    reply = await router.resume(CHAT, entry, "/reminder-ask да")
    assert reply == ASK_REMINDER_TIME
    assert isinstance(entry.pending, NoteReminderTimeIntent)
    assert collaborators.notes.notes == []


@pytest.mark.asyncio
async def test_reminder_ask_requires_exact_answer(router):
    entry = _entry(NoteReminderAskIntent(title="Отчет", target_key="quick_tasks"))
    with pytest.raises(ValidationError) as exc:
        await router.resume(CHAT, entry, "може би")
    assert exc.value.reply == REPROMPT_REMINDER
    assert entry.pending.type == "note-reminder-ask"


@pytest.mark.asyncio
async def test_reminder_time_creates_note_and_reminder(router, collaborators, clock):
    entry = _entry(NoteReminderTimeIntent(title="Отчет", target_key="quick_tasks"))
    reply = await router.resume(CHAT, entry, "/reminder-time 30m")
    assert reply == NOTE_SAVED_WITH_REMINDER
    assert entry.pending is None
    assert collaborators.notes.notes == [("quick_tasks", "Отчет", None)]

    reminder = (await load_reminders()).reminders[0]
    assert reminder.text == "Напомняне: Отчет"
    assert reminder.group == "tasks"
    assert reminder.target == CHAT
    assert reminder.due_at == clock.now + 30 * 60_000


@pytest.mark.asyncio
async def test_reminder_time_unrecognised_reprompts(router, collaborators):
    entry = _entry(NoteReminderTimeIntent(title="Отчет", target_key="quick_tasks"))
    with pytest.raises(ValidationError):
        await router.resume(CHAT, entry, "някой ден")
    assert entry.pending.type == "note-reminder-time"
    assert collaborators.notes.notes == []


@pytest.mark.asyncio
async def test_reminder_time_note_failure_clears_pending(router, collaborators):
    collaborators.notes.fail = True
    entry = _entry(NoteReminderTimeIntent(title="Отчет", target_key="quick_tasks"))
    reply = await router.resume(CHAT, entry, "1h")
    assert reply.startswith("Грешка при Notion:")
    assert entry.pending is None
    assert (await load_reminders()).reminders == []


@pytest.mark.asyncio
async def test_note_due_variants(router, collaborators):
    entry = _entry(NoteDueIntent(title="Отчет"))
    assert await router.resume(CHAT, entry, "няма краен срок") == NOTE_SAVED
    entry = _entry(NoteDueIntent(title="План", target_key="realtime_work_log"))
    await router.resume(CHAT, entry, "06.01.2026")
    assert collaborators.notes.notes == [
        ("quick_tasks", "Отчет", NO_DUE_BODY),
        ("realtime_work_log", "План", "До 2026-01-06 09:00"),
    ]


@pytest.mark.asyncio
async def test_note_due_unrecognised_reprompts(router):
    entry = _entry(NoteDueIntent(title="Отчет"))
    with pytest.raises(ValidationError) as exc:
        await router.resume(CHAT, entry, "скоро")
    assert exc.value.reply == REPROMPT_DUE
    assert entry.pending.type == "note-due"


@pytest.mark.asyncio
async def test_task_title_uses_accumulated_fields(router, collaborators):
    entry = _entry(TaskTitleIntent(assignee="ivan"))
    reply = await router.resume(CHAT, entry, "Подготви оферта")
    assert reply == TASK_CREATED
    assert entry.pending is None
    assert collaborators.tasks.created == [
        {"title": "Подготви оферта", "list_id": "L1", "assignee_ids": ["U1"], "due_ms": None, "priority": None}
    ]


@pytest.mark.asyncio
async def test_missing_list_moves_to_list_question(router, collaborators):
    collaborators.tasks.catalog["list"] = [
        CatalogEntity(id="L1", name="Inbox"), CatalogEntity(id="L2", name="Маркетинг", scope="Work"),
    ]
    entry = _entry(TaskTitleIntent())
    reply = await router.resume(CHAT, entry, "Пусни кампания")
    assert entry.pending == TaskListIntent(title="Пусни кампания")
    assert "Маркетинг (Work, id=L2)" in reply
    assert collaborators.tasks.created == []

    reply = await router.resume(CHAT, entry, "маркетинг")
    assert reply == TASK_CREATED
    assert entry.pending is None
    assert collaborators.tasks.created[0]["list_id"] == "L2"


@pytest.mark.asyncio
async def test_ambiguous_list_moves_to_list_question(router, collaborators):
    collaborators.tasks.catalog["list"] = [
        CatalogEntity(id="L1", name="Sales EU"), CatalogEntity(id="L2", name="Sales US"),
    ]
    entry = ChatState()
    reply = await router.create_task(entry, "Call", list_name="sales", priority=2)
    assert entry.pending == TaskListIntent(title="Call", priority=2)
    assert "Sales EU (L1)" in reply


@pytest.mark.asyncio
async def test_task_failure_is_surfaced(router, collaborators):
    collaborators.tasks.fail = True
    entry = _entry(TaskListIntent(title="Call"))
    reply = await router.resume(CHAT, entry, "по подразбиране")
    assert reply.startswith("Грешка при ClickUp: tasks failed: clickup is down")
    assert entry.pending is None


@pytest.mark.asyncio
async def test_daily_plan_records_schedule(router, collaborators, scheduler):
    await scheduler.add("plan", "1m", 10, CHAT, "daily-plan")
    entry = _entry(DailyPlanIntent(date="2026-01-06"))
    reply = await router.resume(CHAT, entry, "09:30 call bank; write report")

    assert entry.pending is None
    assert collaborators.notes.schedule == [
        ("2026-01-06", "09:30 - call bank"),
        ("2026-01-06", "11:00 - write report"),
    ]
    log = await load_daily_log()
    assert log.root["2026-01-06"].schedule == ["09:30 - call bank", "11:00 - write report"]
    assert await scheduler.list("daily-plan") == []
    assert reply == "Записах графика за 2026-01-06:\n• 09:30 - call bank\n• 11:00 - write report"


@pytest.mark.asyncio
async def test_reminder_text_adds_reminder(router, clock):
    entry = _entry(ReminderTextIntent(when=ReminderWhen(kind="in", value="10m")))
    assert await router.resume(CHAT, entry, "купи мляко") is None
    assert entry.pending is None
    reminder = (await load_reminders()).reminders[0]
    assert reminder.text == "купи мляко"
    assert reminder.next_at == clock.now + 600_000


@pytest.mark.asyncio
async def test_reminder_time_accepts_days(router, clock):
    entry = _entry(ReminderTimeIntent(text="плати наема"))
    assert await router.resume(CHAT, entry, "след 2 дни") is None
    reminder = (await load_reminders()).reminders[0]
    assert reminder.due_at == clock.now + 2 * 86_400_000
    assert reminder.group == "tasks"


@pytest.mark.asyncio
async def test_reminder_time_unrecognised_keeps_pending(router):
    entry = _entry(ReminderTimeIntent(text="плати наема"))
    with pytest.raises(ValidationError) as exc:
        await router.resume(CHAT, entry, "скоро")
    assert exc.value.reply == REPROMPT_REMINDER_WHEN
    assert entry.pending.type == "reminder-time"


@pytest.mark.asyncio
@pytest.mark.parametrize("answer", ["25:00", "2026-02-30 10:00"])
async def test_reminder_time_out_of_range_keeps_pending(router, answer):
    entry = _entry(ReminderTimeIntent(text="обади се на мама"))
    with pytest.raises(ValidationError) as exc:
        await router.resume(CHAT, entry, answer)
    assert exc.value.reply == REPROMPT_REMINDER_WHEN
    assert entry.pending == ReminderTimeIntent(text="обади се на мама")
    assert (await load_reminders()).reminders == []


@pytest.mark.asyncio
async def test_note_reminder_time_out_of_range_creates_nothing(router, collaborators):
    entry = _entry(NoteReminderTimeIntent(title="Отчет", target_key="quick_tasks"))
    with pytest.raises(ValidationError) as exc:
        await router.resume(CHAT, entry, "99:99")
    assert exc.value.reply == REPROMPT_REMINDER_TIME
    assert entry.pending.type == "note-reminder-time"
    assert collaborators.notes.notes == []
    assert (await load_reminders()).reminders == []
