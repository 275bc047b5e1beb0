"""提醒存储

文档格式: { reminders: [Reminder...], groups: { name: { repeatMinutes } } }
"""

from datamodel import Reminder, RemindersState
from storage.document import DocumentStore

__all__ = ["reminders_store", "load_reminders", "save_reminders", "next_reminder_id"]

reminders_store: DocumentStore[RemindersState] = DocumentStore("reminders", RemindersState)


async def load_reminders() -> RemindersState:
    return await reminders_store.load()


async def save_reminders(state: RemindersState) -> None:
    await reminders_store.save(state)


def next_reminder_id(reminders: list[Reminder]) -> str:
    """当前最大数字 ID + 1, 非数字 ID 忽略"""
    ids = [int(r.id) for r in reminders if r.id.isdigit()]
    return str(max(ids) + 1 if ids else 1)
