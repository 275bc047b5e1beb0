from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Literal, Optional

from datamodel import CatalogEntity
from errors import CollaboratorError
from events import bus, E
from logger import logger

__all__ = [
    "Messenger", "NoteService", "TaskService", "Transcriber", "Collaborators",
    "CatalogKind", "deliver",
]

CatalogKind = Literal["list", "assignee"]


class Messenger(ABC):
    """向某个聊天发送文本"""

    @abstractmethod
    async def send_message(self, target: str, text: str) -> None:
        pass


class NoteService(ABC):
    @abstractmethod
    async def create_note(self, destination_key: str, title: str, body: Optional[str] = None) -> str:
        """创建笔记, 返回协作方的确认文本 (可以为空)"""
        pass

    @abstractmethod
    async def append_schedule(self, date: str, text: str) -> None:
        """把一行追加到某天的日程页"""
        pass


class TaskService(ABC):
    @abstractmethod
    async def list_catalog(self, kind: CatalogKind) -> List[CatalogEntity]:
        pass

    @abstractmethod
    async def create_task(
        self,
        title: str,
        list_id: str,
        assignee_ids: List[str],
        due_ms: Optional[int] = None,
        priority: Optional[int] = None,
    ) -> str:
        """创建任务, 返回协作方的确认文本 (可以为空)"""
        pass


class Transcriber(ABC):
    @abstractmethod
    async def transcribe(self, file_path: str) -> str:
        pass


@dataclass
class Collaborators:
    messenger: Messenger
    notes: NoteService
    tasks: TaskService
    transcriber: Transcriber


async def deliver(messenger: Messenger, target: str, text: str) -> None:
    """发送消息并广播事件; 失败时抛出 CollaboratorError"""
    if not target:
        raise CollaboratorError("messenger", "missing target for message delivery")
    try:
        await messenger.send_message(target, text)
    except CollaboratorError as e:
        logger.error(f"发送消息失败: target={target}, error={e}")
        bus.emit(E.COLLABORATOR_FAILED, collaborator="messenger", error=e)
        raise
    logger.info(f"发送消息给 {target}: {text[:80]}")
    bus.emit(E.IO_SEND_MESSAGE, target=target, text=text)
