import json

import aiosqlite
import pytest

import storage.db_config as db_config
from datamodel import *
from errors import StorageError
from storage.chat_state import load_chat_states, save_chat_states
from storage.daily_log import load_daily_log, record_daily_log
from storage.destinations import default_destinations, load_destinations, save_destinations
from storage.reminder import load_reminders, next_reminder_id, reminders_store, save_reminders


def _reminder(id: str, **kwargs) -> Reminder:
    values = dict(id=id, text=f"r{id}", created_at=1, due_at=2, next_at=2, repeat_minutes=5, target="42")
    values.update(kwargs)
    return Reminder(**values)


async def _raw(name: str) -> str:
    async with db_config.conn.execute("SELECT body FROM documents WHERE name = ?", (name,)) as cursor:
        row = await cursor.fetchone()
    return row[0]


@pytest.mark.asyncio
async def test_missing_document_loads_default(db):
    state = await load_reminders()
    assert state.reminders == []
    assert state.groups == {}


@pytest.mark.asyncio
async def test_save_writes_camel_case_document(db):
    state = RemindersState(reminders=[_reminder("1", group="tasks")], groups={"tasks": GroupConfig(repeat_minutes=7)})
    await save_reminders(state)

    body = json.loads(await _raw("reminders"))
    assert body["reminders"][0]["nextAt"] == 2
    assert body["reminders"][0]["repeatMinutes"] == 5
    assert "doneAt" not in body["reminders"][0]
    assert body["groups"] == {"tasks": {"repeatMinutes": 7}}

    loaded = await load_reminders()
    assert loaded == state


@pytest.mark.asyncio
async def test_corrupt_document_falls_back_to_default(db):
    await db.execute("INSERT INTO documents (name, body) VALUES (?, ?)", ("reminders", "{not json"))
    await db.commit()
    state = await load_reminders()
    assert state.reminders == []


@pytest.mark.asyncio
async def test_wrong_shape_document_falls_back_to_default(db):
    await db.execute(
        "INSERT INTO documents (name, body) VALUES (?, ?)", ("reminders", json.dumps({"reminders": [{"id": 1}]}))
    )
    await db.commit()
    state = await load_reminders()
    assert state.reminders == []


class _BrokenConnection:
    def __init__(self, real):
        self.real = real

    async def execute(self, *args, **kwargs):
        raise aiosqlite.OperationalError("disk I/O error")

    async def commit(self):
        await self.real.commit()

    async def rollback(self):
        await self.real.rollback()


@pytest.mark.asyncio
async def test_failed_save_raises_and_keeps_previous_document(db, monkeypatch):
    await save_reminders(RemindersState(reminders=[_reminder("1")]))

    monkeypatch.setattr(db_config, "conn", _BrokenConnection(db))
    with pytest.raises(StorageError):
        await reminders_store.save(RemindersState(reminders=[_reminder("1"), _reminder("2")]))
    monkeypatch.setattr(db_config, "conn", db)

    state = await load_reminders()
    assert [r.id for r in state.reminders] == ["1"]


def test_next_reminder_id():
    assert next_reminder_id([]) == "1"
    assert next_reminder_id([_reminder("3"), _reminder("abc"), _reminder("10")]) == "11"
    assert next_reminder_id([_reminder("x")]) == "1"


@pytest.mark.asyncio
async def test_chat_state_round_trips_pending_variant(db):
    states = ChatStates()
    states.get_or_create("42").pending = NoteReminderAskIntent(title="Отчет", target_key="quick_tasks", due="14:00")
    states.get_or_create("7").smart = True
    await save_chat_states(states)

    body = json.loads(await _raw("chat_states"))
    assert body["42"]["pending"] == {
        "type": "note-reminder-ask", "title": "Отчет", "targetKey": "quick_tasks", "due": "14:00",
    }

    loaded = await load_chat_states()
    pending = loaded.root["42"].pending
    assert isinstance(pending, NoteReminderAskIntent)
    assert pending.target_key == "quick_tasks"
    assert loaded.root["7"].smart is True
    assert loaded.root["7"].pending is None


@pytest.mark.asyncio
async def test_chat_state_unknown_pending_type_falls_back(db):
    await db.execute(
        "INSERT INTO documents (name, body) VALUES (?, ?)",
        ("chat_states", json.dumps({"42": {"smart": False, "pending": {"type": "nope"}}})),
    )
    await db.commit()
    states = await load_chat_states()
    assert states.root == {}


@pytest.mark.asyncio
async def test_daily_log_is_append_only_per_date(db):
    await record_daily_log("2026-01-06", "schedule", ["09:00 - a"])
    await record_daily_log("2026-01-06", "schedule", ["11:00 - b"])
    await record_daily_log("2026-01-06", "deviation", ["late"])
    log = await load_daily_log()
    assert log.root["2026-01-06"].schedule == ["09:00 - a", "11:00 - b"]
    assert log.root["2026-01-06"].deviations == ["late"]


@pytest.mark.asyncio
async def test_destinations_registry(db):
    assert (await load_destinations()).targets == {}
    await save_destinations(default_destinations())
    loaded = await load_destinations()
    assert set(loaded.targets) == {"quick_tasks", "realtime_work_log", "daily_schedule"}
    assert loaded.targets["daily_schedule"].type == "schedule"
    body = json.loads(await _raw("note_destinations"))
    assert "pageId" in body["targets"]["quick_tasks"]
