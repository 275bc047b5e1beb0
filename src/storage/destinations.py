"""笔记目标 (Notion 页面/数据库) 注册表

文档格式: { targets: { <key>: { name, pageId, dbId, type } } }
"""

from datamodel import NoteDestination, NoteDestinations
from storage.document import DocumentStore

__all__ = ["destinations_store", "load_destinations", "save_destinations", "default_destinations"]

destinations_store: DocumentStore[NoteDestinations] = DocumentStore("note_destinations", NoteDestinations)


def default_destinations() -> NoteDestinations:
    """初始化时写入的默认目标"""
    return NoteDestinations(targets={
        "quick_tasks": NoteDestination(name="Quick Task/Notes", type="tasks"),
        "realtime_work_log": NoteDestination(name="Real-time Work Log", type="tasks"),
        "daily_schedule": NoteDestination(name="Daily Schedule", type="schedule"),
    })


async def load_destinations() -> NoteDestinations:
    return await destinations_store.load()


async def save_destinations(destinations: NoteDestinations) -> None:
    await destinations_store.save(destinations)
