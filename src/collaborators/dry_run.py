from collaborators.base import Messenger
from logger import logger

__all__ = ["DryRunMessenger"]


class DryRunMessenger(Messenger):
    """--dry-run 时使用: 只写日志, 不真正发送"""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def send_message(self, target: str, text: str) -> None:
        self.sent.append((target, text))
        logger.info(f"[dry-run] send to {target}: {text[:160]}")
