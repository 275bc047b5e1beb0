from collaborators.base import Messenger, deliver
from config.texts import ASK_DUE, UNTITLED_TASK
from errors import CollaboratorError
from logger import logger
from storage.chat_state import load_chat_states

__all__ = ["due_check"]


async def due_check(messenger: Messenger) -> int:
    """给所有还在等截止时间 (note-due) 的聊天重新发送问题, 返回发送数量"""
    states = await load_chat_states()
    sent = 0
    for chat_id, entry in states.root.items():
        pending = entry.pending
        if pending is None or pending.type != "note-due":
            continue
        try:
            await deliver(messenger, chat_id, ASK_DUE.format(title=pending.title or UNTITLED_TASK))
        except CollaboratorError as e:
            logger.error(f"截止时间追问发送失败: chat={chat_id}, error={e}")
            continue
        sent += 1
    logger.info(f"[due-check] sent={sent}")
    return sent
