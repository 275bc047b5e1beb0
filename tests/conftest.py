"""Pytest configuration and fixtures."""

from datetime import datetime
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

import storage.db_config as db_config
from collaborators.base import Collaborators, Messenger, NoteService, TaskService, Transcriber
from core.dispatcher import ChatDispatcher
from core.router import PendingIntentRouter
from core.scheduler import ReminderScheduler
from datamodel import CatalogEntity
from errors import CollaboratorError
from metrics import runtime_metrics
from utils import local_to_ms

TZ = "Europe/Sofia"
CHAT = "42"
# 2026-01-05 10:00 (Europe/Sofia), 星期一
START_MS = local_to_ms(datetime(2026, 1, 5, 10, 0), TZ)


class FakeClock:
    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeMessenger(Messenger):
    def __init__(self) -> None:
        self.sent: List[tuple] = []
        self.failing_targets: set = set()

    async def send_message(self, target: str, text: str) -> None:
        if target in self.failing_targets:
            raise CollaboratorError("messenger", f"cannot reach {target}")
        self.sent.append((target, text))

    def texts_to(self, target: str) -> List[str]:
        return [text for t, text in self.sent if t == target]


class FakeNotes(NoteService):
    def __init__(self) -> None:
        self.notes: List[tuple] = []
        self.schedule: List[tuple] = []
        self.fail = False

    async def create_note(self, destination_key: str, title: str, body: Optional[str] = None) -> str:
        if self.fail:
            raise CollaboratorError("notes", "notion is down")
        self.notes.append((destination_key, title, body))
        return ""

    async def append_schedule(self, date: str, text: str) -> None:
        if self.fail:
            raise CollaboratorError("schedule", "notion is down")
        self.schedule.append((date, text))


class FakeTasks(TaskService):
    def __init__(self) -> None:
        self.catalog: Dict[str, List[CatalogEntity]] = {
            "list": [CatalogEntity(id="L1", name="Inbox", scope="Personal")],
            "assignee": [CatalogEntity(id="U1", name="Ivan Petrov"), CatalogEntity(id="U2", name="Maria")],
        }
        self.created: List[dict] = []
        self.fail = False

    async def list_catalog(self, kind):
        return list(self.catalog[kind])

    async def create_task(self, title, list_id, assignee_ids, due_ms=None, priority=None) -> str:
        if self.fail:
            raise CollaboratorError("tasks", "clickup is down")
        self.created.append({
            "title": title, "list_id": list_id, "assignee_ids": assignee_ids, "due_ms": due_ms, "priority": priority,
        })
        return ""


class FakeTranscriber(Transcriber):
    def __init__(self) -> None:
        self.text = ""
        self.error: Optional[str] = None

    async def transcribe(self, file_path: str) -> str:
        if self.error:
            raise CollaboratorError("transcriber", self.error)
        return self.text


@pytest.fixture(autouse=True)
def reset_metrics():
    runtime_metrics.reset()
    yield


@pytest_asyncio.fixture
async def db(tmp_path):
    """每个测试一个临时 SQLite 数据库"""
    await db_config.init_db(str(tmp_path / "data" / "test.db"))
    yield db_config.conn
    await db_config.close_db()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def collaborators():
    return Collaborators(
        messenger=FakeMessenger(),
        notes=FakeNotes(),
        tasks=FakeTasks(),
        transcriber=FakeTranscriber(),
    )


@pytest.fixture
def scheduler(db, collaborators, clock):
    return ReminderScheduler(
        collaborators.messenger,
        default_target=CHAT,
        default_repeat_minutes=5,
        user_tz=TZ,
        clock=clock,
    )


@pytest.fixture
def router(collaborators, scheduler, clock):
    return PendingIntentRouter(
        collaborators, scheduler, user_tz=TZ, clock=clock, default_list="", default_assignee="",
        default_note_target="quick_tasks",
    )


@pytest.fixture
def dispatcher(collaborators, scheduler, router, clock):
    return ChatDispatcher(collaborators, scheduler, router, user_tz=TZ, clock=clock)
