"""聊天状态存储

文档格式: { <chatId>: { smart: bool, pending: PendingIntent | null } }
"""

from datamodel import ChatStates
from storage.document import DocumentStore

__all__ = ["chat_states_store", "load_chat_states", "save_chat_states"]

chat_states_store: DocumentStore[ChatStates] = DocumentStore("chat_states", ChatStates)


async def load_chat_states() -> ChatStates:
    return await chat_states_store.load()


async def save_chat_states(states: ChatStates) -> None:
    await chat_states_store.save(states)
