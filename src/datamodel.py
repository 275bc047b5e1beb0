from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel
from pydantic.alias_generators import to_camel

__all__ = [
    "Reminder", "GroupConfig", "RemindersState",
    "ReminderWhen",
    "NoteDestinationIntent", "NoteTargetIntent", "NoteDueIntent", "NoteReminderAskIntent",
    "NoteReminderTimeIntent", "TaskTitleIntent", "TaskListIntent", "DailyPlanIntent",
    "ReminderTextIntent", "ReminderTimeIntent", "PendingIntent", "PENDING_INTENT_TYPES",
    "ChatState", "ChatStates",
    "DailyLogEntry", "DailyLog",
    "NoteDestination", "NoteDestinations",
    "IncomingMessage", "CatalogEntity", "DispatchResult",
]

# 持久化文档统一使用 camelCase 键名
_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----------------- Reminder 数据模型 ----------------
class Reminder(BaseModel):
    model_config = _WIRE

    id: str
    text: str
    status: Literal["pending", "done"] = "pending"
    created_at: int  # epoch 毫秒
    due_at: int  # 原始截止时间
    next_at: int  # 下次触发时间, tick/snooze 时推进
    repeat_minutes: int
    target: str = ""
    group: Optional[str] = None
    last_sent_at: Optional[int] = None
    done_at: Optional[int] = None


class GroupConfig(BaseModel):
    model_config = _WIRE

    repeat_minutes: int


class RemindersState(BaseModel):
    model_config = _WIRE

    reminders: List[Reminder] = Field(default_factory=list)
    groups: Dict[str, GroupConfig] = Field(default_factory=dict)


# ----------------- PendingIntent 数据模型 ----------------
# 以 type 字段区分的联合类型, type 决定下一条消息由哪个解析器处理
class ReminderWhen(BaseModel):
    kind: Literal["in", "at"]
    value: str


class NoteDestinationIntent(BaseModel):
    model_config = _WIRE
    type: Literal["note-destination"] = "note-destination"
    title: str
    body: Optional[str] = None


class NoteTargetIntent(BaseModel):
    model_config = _WIRE
    type: Literal["note-target"] = "note-target"
    title: str
    due: Optional[str] = None
    origin: Literal["voice", "text"] = "text"


class NoteDueIntent(BaseModel):
    model_config = _WIRE
    type: Literal["note-due"] = "note-due"
    title: str
    target_key: Optional[str] = None
    origin: Literal["voice", "text"] = "text"


class NoteReminderAskIntent(BaseModel):
    model_config = _WIRE
    type: Literal["note-reminder-ask"] = "note-reminder-ask"
    title: str
    target_key: str
    due: Optional[str] = None


class NoteReminderTimeIntent(BaseModel):
    model_config = _WIRE
    type: Literal["note-reminder-time"] = "note-reminder-time"
    title: str
    target_key: str
    due: Optional[str] = None


class TaskTitleIntent(BaseModel):
    model_config = _WIRE
    type: Literal["clickup-title"] = "clickup-title"
    assignee: Optional[str] = None
    list: Optional[str] = None


class TaskListIntent(BaseModel):
    model_config = _WIRE
    type: Literal["clickup-list"] = "clickup-list"
    title: str
    assignee: Optional[str] = None
    due: Optional[str] = None
    priority: Optional[int] = None


class DailyPlanIntent(BaseModel):
    model_config = _WIRE
    type: Literal["daily-plan"] = "daily-plan"
    date: Optional[str] = None  # YYYY-MM-DD


class ReminderTextIntent(BaseModel):
    model_config = _WIRE
    type: Literal["reminder-text"] = "reminder-text"
    when: ReminderWhen


class ReminderTimeIntent(BaseModel):
    model_config = _WIRE
    type: Literal["reminder-time"] = "reminder-time"
    text: str


PendingIntent = Annotated[
    Union[
        NoteDestinationIntent,
        NoteTargetIntent,
        NoteDueIntent,
        NoteReminderAskIntent,
        NoteReminderTimeIntent,
        TaskTitleIntent,
        TaskListIntent,
        DailyPlanIntent,
        ReminderTextIntent,
        ReminderTimeIntent,
    ],
    Field(discriminator="type"),
]

PENDING_INTENT_TYPES: tuple[str, ...] = (
    "note-destination", "note-target", "note-due", "note-reminder-ask", "note-reminder-time",
    "clickup-title", "clickup-list", "daily-plan", "reminder-text", "reminder-time",
)


# ----------------- ChatState 数据模型 ----------------
class ChatState(BaseModel):
    model_config = _WIRE

    smart: bool = False
    pending: Optional[PendingIntent] = None


class ChatStates(RootModel[Dict[str, ChatState]]):
    root: Dict[str, ChatState] = Field(default_factory=dict)

    def get_or_create(self, chat_id: str) -> ChatState:
        entry = self.root.get(chat_id)
        if entry is None:
            entry = ChatState()
            self.root[chat_id] = entry
        return entry


# ----------------- DailyLog 数据模型 ----------------
class DailyLogEntry(BaseModel):
    schedule: List[str] = Field(default_factory=list)
    deviations: List[str] = Field(default_factory=list)


class DailyLog(RootModel[Dict[str, DailyLogEntry]]):
    root: Dict[str, DailyLogEntry] = Field(default_factory=dict)


# ----------------- Note destinations 数据模型 ----------------
class NoteDestination(BaseModel):
    model_config = _WIRE

    name: str
    page_id: str = ""
    db_id: str = ""
    type: str = "tasks"


class NoteDestinations(BaseModel):
    targets: Dict[str, NoteDestination] = Field(default_factory=dict)


# ----------------- 消息与协作方数据模型 ----------------
@dataclass
class IncomingMessage:
    chat_id: str
    content: str = ""
    attachments: List[Dict[str, str]] = field(default_factory=list)  # {mime_type: str, path: str}
    timestamp: Optional[datetime] = None

    @property
    def audio_path(self) -> Optional[str]:
        for item in self.attachments:
            mime = str(item.get("mime_type", "")).lower()
            if mime.startswith("audio/") or mime.startswith("voice/"):
                return item.get("path")
        return None


@dataclass
class CatalogEntity:
    id: str
    name: str
    scope: Optional[str] = None  # 例如列表所属的 space/folder, 仅用于展示


@dataclass
class DispatchResult:
    handled: bool
    error: Optional[str] = None
