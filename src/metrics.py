"""
一个简单的运行时指标收集类，统计一次调用内的消息流量、提醒与外部调用失败次数。
每次 CLI 调用结束时输出 snapshot 到日志。
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from events import bus, E


@dataclass
class RuntimeMetrics:
    started_at: float = field(default_factory=time.time)
    msg_in_count: int = 0
    msg_out_count: int = 0
    reminder_created_count: int = 0
    reminder_fired_count: int = 0
    reminder_done_count: int = 0
    reminder_snoozed_count: int = 0
    collaborator_error_count: int = 0
    pending_changed_count: int = 0

    def record_msg_in(self) -> None:
        self.msg_in_count += 1

    def record_msg_out(self) -> None:
        self.msg_out_count += 1

    def record_reminder_created(self) -> None:
        self.reminder_created_count += 1

    def record_reminder_fired(self) -> None:
        self.reminder_fired_count += 1

    def record_reminder_done(self) -> None:
        self.reminder_done_count += 1

    def record_reminder_snoozed(self) -> None:
        self.reminder_snoozed_count += 1

    def record_collaborator_error(self) -> None:
        self.collaborator_error_count += 1

    def record_pending_changed(self) -> None:
        self.pending_changed_count += 1

    def reset(self) -> None:
        fresh = RuntimeMetrics()
        self.__dict__.update(fresh.__dict__)

    def snapshot(self) -> dict:
        return {
            "elapsed_ms": round((time.time() - self.started_at) * 1000, 2),
            "msg_in_count": self.msg_in_count,
            "msg_out_count": self.msg_out_count,
            "reminder_created_count": self.reminder_created_count,
            "reminder_fired_count": self.reminder_fired_count,
            "reminder_done_count": self.reminder_done_count,
            "reminder_snoozed_count": self.reminder_snoozed_count,
            "collaborator_error_count": self.collaborator_error_count,
            "pending_changed_count": self.pending_changed_count,
        }


runtime_metrics = RuntimeMetrics()


@bus.on(E.IO_MESSAGE_RECEIVED)
def _on_message_received(*args, **kwargs) -> None:
    runtime_metrics.record_msg_in()


@bus.on(E.IO_SEND_MESSAGE)
def _on_send_message(*args, **kwargs) -> None:
    runtime_metrics.record_msg_out()


@bus.on(E.REMINDER_CREATED)
def _on_reminder_created(*args, **kwargs) -> None:
    runtime_metrics.record_reminder_created()


@bus.on(E.REMINDER_FIRED)
def _on_reminder_fired(*args, **kwargs) -> None:
    runtime_metrics.record_reminder_fired()


@bus.on(E.REMINDER_DONE)
def _on_reminder_done(*args, **kwargs) -> None:
    runtime_metrics.record_reminder_done()


@bus.on(E.REMINDER_SNOOZED)
def _on_reminder_snoozed(*args, **kwargs) -> None:
    runtime_metrics.record_reminder_snoozed()


@bus.on(E.COLLABORATOR_FAILED)
def _on_collaborator_failed(*args, **kwargs) -> None:
    runtime_metrics.record_collaborator_error()


@bus.on(E.PENDING_CHANGED)
def _on_pending_changed(*args, **kwargs) -> None:
    runtime_metrics.record_pending_changed()


__all__ = ["RuntimeMetrics", "runtime_metrics"]
