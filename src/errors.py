"""错误分类

- ValidationError: 用户输入错误或缺失, 只会导致追问或拒绝命令
- NotFoundError: 找不到匹配的提醒或实体
- AmbiguousMatchError: 在目录中匹配到多个候选
- CollaboratorError: 外部调用失败, 本地已修改的状态不回滚
- StorageError: 存储读写失败; 读失败由调用方回退到默认值
"""

from __future__ import annotations

__all__ = [
    "NudgeError",
    "ValidationError", "InvalidDuration", "InvalidAbsoluteTime", "MissingText", "MissingTime", "MissingList",
    "NotFoundError", "NoPendingReminder",
    "AmbiguousMatchError",
    "CollaboratorError",
    "StorageError",
    "truncate",
]

MAX_ERROR_CHARS = 400
MAX_CANDIDATES_PREVIEW = 8


def truncate(text: str, limit: int = MAX_ERROR_CHARS) -> str:
    text = str(text).strip()
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


class NudgeError(Exception):
    """所有业务错误的基类, str(e) 可以直接展示给用户

    reply 是可选的面向用户的追问文本, 聊天里优先展示它
    """

    def __init__(self, *args, reply: str | None = None) -> None:
        super().__init__(*args)
        self.reply = reply


class ValidationError(NudgeError):
    pass


class InvalidDuration(ValidationError):
    def __init__(self, raw: str) -> None:
        super().__init__(f"Invalid duration '{raw}'. Use e.g. 10m, 2h, 1d.")
        self.raw = raw


class InvalidAbsoluteTime(ValidationError):
    def __init__(self, raw: str) -> None:
        super().__init__(f"Invalid time '{raw}'. Use HH:MM or YYYY-MM-DD HH:MM.")
        self.raw = raw


class MissingText(ValidationError):
    def __init__(self) -> None:
        super().__init__("Missing reminder text.")


class MissingTime(ValidationError):
    def __init__(self) -> None:
        super().__init__("Missing reminder time. Provide a duration or an absolute time.")


class MissingList(ValidationError):
    """创建任务时无法确定列表, candidates 为可选列表名"""

    def __init__(self, candidates: list[str]) -> None:
        preview = "; ".join(candidates[:10]) or "none found"
        super().__init__(f"Missing list. Candidate lists: {preview}")
        self.candidates = candidates


class NotFoundError(NudgeError):
    pass


class NoPendingReminder(NotFoundError):
    def __init__(self, action: str = "update") -> None:
        super().__init__(f"No pending reminder found to {action}.")
        self.action = action


class AmbiguousMatchError(NudgeError):
    def __init__(self, kind: str, query: str, candidates: list[str]) -> None:
        preview = ", ".join(candidates[:MAX_CANDIDATES_PREVIEW])
        super().__init__(f'Ambiguous {kind} "{query}". Matches: {preview}')
        self.kind = kind
        self.query = query
        self.candidates = candidates


class CollaboratorError(NudgeError):
    def __init__(self, collaborator: str, detail: str) -> None:
        super().__init__(f"{collaborator} failed: {truncate(detail)}")
        self.collaborator = collaborator
        self.detail = detail


class StorageError(NudgeError):
    pass
