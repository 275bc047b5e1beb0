"""事件总线模块，定义了事件总线类 Bus 及事件名集合 E

核心逻辑 (scheduler / router / dispatcher) 只负责 emit, 指标统计等旁路逻辑通过 bus.on 订阅。
处理器可以是同步函数也可以是协程; 同步处理器在 emit 时立即执行。
"""

from __future__ import annotations
from pyee.asyncio import AsyncIOEventEmitter
from typing import Any, Callable

from logger import logger

Handler = Callable[..., Any]

# 事件名集中定义
class E:
    IO_MESSAGE_RECEIVED = "io.message_received"
    IO_SEND_MESSAGE = "io.send_message"
    REMINDER_CREATED = "reminder.created"
    REMINDER_FIRED = "reminder.fired"
    REMINDER_DONE = "reminder.done"
    REMINDER_SNOOZED = "reminder.snoozed"
    PENDING_CHANGED = "chat.pending_changed"
    COLLABORATOR_FAILED = "collaborator.failed"


class Bus(AsyncIOEventEmitter):
    def on(self, event: str) -> Callable[[Handler], Handler]:
        """注册事件处理器装饰器"""
        def decorator(handler: Handler) -> Handler:
            logger.debug(f"注册事件处理器: {event} -> {handler.__name__}")
            super(Bus, self).on(event, handler)
            return handler

        return decorator


bus = Bus()

__all__ = ["bus", "E"]
