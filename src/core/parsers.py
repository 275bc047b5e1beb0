"""聊天文本解析器

全部是纯函数: 匹配成功返回结果, 否则返回 None。支持保加利亚语和英语两种写法。
"""

import re
from dataclasses import dataclass
from typing import List, Literal, Optional, Tuple

from core.timeparse import tomorrow_at
from datamodel import ReminderWhen

__all__ = [
    "ReminderPhrase", "TaskCommand", "NoteCapture",
    "collapse_whitespace", "unit_suffix",
    "parse_reminder_relative", "parse_reminder_absolute", "parse_reminder_request",
    "strip_task_fields", "parse_priority", "parse_task_create",
    "build_schedule_lines", "FALLBACK_SLOTS", "LATE_SLOT",
    "parse_due_text", "is_no_deadline",
    "parse_yes_no", "parse_destination_choice", "strip_note_target_prefix",
    "parse_reminder_time_answer", "parse_when_expression",
    "is_done_shortcut", "parse_snooze_shortcut", "parse_smart_toggle", "is_help",
    "parse_note_capture", "parse_deviation", "is_postpone_plan", "is_daily_planner", "is_list_reminders",
]

# 单位后面不能紧跟字母, 否则 "10 мини" 之类会被误认
_UNIT_END = r"(?![^\W\d_])"
_UNITS_MH = r"минути|минута|мин|м|minutes|minute|mins|min|m|часа|часове|час|ч|hours|hour|hrs|hr|h"
_UNITS_MHD = _UNITS_MH + r"|дни|дена|ден|д|days|day|d"

_RELATIVE_RE = re.compile(
    rf"(?:напомни\s+ми\s+след|remind\s+me\s+in)\s+(\d+)\s*({_UNITS_MHD}){_UNIT_END}\s*(.*)$",
    re.IGNORECASE | re.DOTALL,
)
_ABSOLUTE_RE = re.compile(
    r"(?:напомни\s+ми\s+в|remind\s+me\s+at)\s+(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}|\d{1,2}:\d{2})\s*(.*)$",
    re.IGNORECASE | re.DOTALL,
)
_REQUEST_RE = re.compile(r"^(?:напомни\s+ми|remind\s+me)\s*:\s*(.*)$", re.IGNORECASE | re.DOTALL)

_WHEN_ABSOLUTE_RE = re.compile(r"(?<!\d)(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}|\d{1,2}:\d{2})(?!\d)")
_WHEN_RELATIVE_MH_RE = re.compile(rf"(\d+)\s*({_UNITS_MH}){_UNIT_END}", re.IGNORECASE)
_WHEN_RELATIVE_MHD_RE = re.compile(rf"(\d+)\s*({_UNITS_MHD}){_UNIT_END}", re.IGNORECASE)

_TASK_DUE_RE = re.compile(r"\b(?:срок|due)\s+(\d{4}-\d{2}-\d{2})", re.IGNORECASE)
_TASK_PRIORITY_RE = re.compile(r"\b(?:приоритет|priority)\s+(urgent|high|normal|medium|low|[1-4])\b", re.IGNORECASE)
_PRIORITIES = {"urgent": 1, "1": 1, "high": 2, "2": 2, "normal": 3, "medium": 3, "3": 3, "low": 4, "4": 4}

_TASK_FOR = r"(?:нова\s+задача\s+към|new\s+task\s+for)"
_TASK_IN = r"(?:в|in)"
_TASK_PATTERNS: List[Tuple[re.Pattern, Literal["assignee-list", "assignee", "title"]]] = [
    (re.compile(rf"^{_TASK_FOR}\s+(.+?)\s+{_TASK_IN}\s+(.+?):\s*(.*)$", re.IGNORECASE | re.DOTALL), "assignee-list"),
    (re.compile(rf"^{_TASK_FOR}\s+(.+?):\s*(.*)$", re.IGNORECASE | re.DOTALL), "assignee"),
    (re.compile(
        r"^(?:нова\s+задача|създай\s+задача|създай\s+в\s+clickup|запиши\s+в\s+clickup|new\s+task|create\s+task)"
        r"\s*:\s*(.*)$",
        re.IGNORECASE | re.DOTALL,
    ), "title"),
    # 没有冒号也没有标题: "нова задача към Иван в Маркетинг"
    (re.compile(rf"^{_TASK_FOR}\s+(.+?)\s+{_TASK_IN}\s+(.+?)\s*$", re.IGNORECASE), "assignee-list"),
    (re.compile(rf"^{_TASK_FOR}\s+(.+?)\s*$", re.IGNORECASE), "assignee"),
]

FALLBACK_SLOTS = ("09:00", "11:00", "13:30", "15:30", "17:30", "19:00")
LATE_SLOT = "20:30"
_PLAN_SPLIT_RE = re.compile(r"[\n;]")
_PLAN_BULLET_RE = re.compile(r"^[-*]\s*")
_PLAN_TIME_RE = re.compile(r"\b(\d{1,2}):(\d{2})\b")
_PLAN_TASK_LEAD_RE = re.compile(r"^[-–:]\s*")

_DUE_TEXT_RE = re.compile(
    r"\bдо\s*(\d{2}\.\d{2}\.\d{4}\s+\d{2}:\d{2}|\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}|\d{2}\.\d{2}\.\d{4}|\d{2}:\d{2})",
    re.IGNORECASE,
)
_NO_DEADLINE_RE = re.compile(r"няма\s+краен\s+срок|без\s+краен\s+срок|няма\s+срок|no\s+deadline", re.IGNORECASE)

_NOTE_TARGET_PREFIX_RE = re.compile(r"^/note-target\s+", re.IGNORECASE)
_REMINDER_ASK_PREFIX_RE = re.compile(r"^/reminder-ask\s+", re.IGNORECASE)
_REMINDER_TIME_PREFIX_RE = re.compile(r"^/reminder-time\s+", re.IGNORECASE)

_DONE_RE = re.compile(r"^(?:готово|свърших|done)$", re.IGNORECASE)
_SNOOZE_RE = re.compile(rf"^(?:по[-\s]?късно|later|snooze)\s+(\d+)\s*({_UNITS_MH}){_UNIT_END}$", re.IGNORECASE)
_SMART_RE = re.compile(r"^/smart(?:\s+(on|off))?$", re.IGNORECASE)
_SCRIPT_RE = re.compile(r"^/script\b", re.IGNORECASE)
_HELP_WORDS = {"/help", "/start", "помощ", "help"}

_NOTE_ASK_RE = re.compile(r"^запиши\s+ми\s*:\s*(.+)$", re.IGNORECASE | re.DOTALL)
_NOTE_NOTION_RE = re.compile(r"^запиши\s+в\s+notion\s*:\s*(.+)$", re.IGNORECASE | re.DOTALL)
_NOTE_TASK_RE = re.compile(r"^задача\s*:\s*(.+)$", re.IGNORECASE | re.DOTALL)
_DEVIATION_RE = re.compile(r"^отклонение\s*:\s*(.+)$", re.IGNORECASE | re.DOTALL)
_POSTPONE_RE = re.compile(r"^утре\s+сутрин$", re.IGNORECASE)
_DAILY_PLANNER_RE = re.compile(r"^/daily_planner\b", re.IGNORECASE)
_REMINDERS_RE = re.compile(r"^/reminders\b", re.IGNORECASE)


@dataclass
class ReminderPhrase:
    when: ReminderWhen
    text: str


@dataclass
class TaskCommand:
    title: str
    assignee: str = ""
    list: str = ""
    due: str = ""
    priority: Optional[int] = None


@dataclass
class NoteCapture:
    kind: Literal["ask", "notion", "task"]
    title: str
    due: str = ""


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", str(text or "")).strip()


def unit_suffix(unit: str) -> str:
    """把单位归一成 m / h / d"""
    unit = unit.lower()
    if unit.startswith(("ч", "h")):
        return "h"
    if unit.startswith(("д", "d")):
        return "d"
    return "m"


# ----------------- 提醒 ----------------
def parse_reminder_relative(text: str) -> Optional[ReminderPhrase]:
    match = _RELATIVE_RE.search(text.strip())
    if not match:
        return None
    value = int(match.group(1))
    if value <= 0:
        return None
    rest = re.sub(r"^[.,:;]\s*", "", match.group(3).strip(), count=1)
    return ReminderPhrase(ReminderWhen(kind="in", value=f"{value}{unit_suffix(match.group(2))}"), rest)


def parse_reminder_absolute(text: str) -> Optional[ReminderPhrase]:
    match = _ABSOLUTE_RE.search(text.strip())
    if not match:
        return None
    return ReminderPhrase(ReminderWhen(kind="at", value=collapse_whitespace(match.group(1))), match.group(2).strip())


def parse_reminder_request(text: str) -> Optional[str]:
    """"напомни ми: <текст>" 返回提醒内容, 时间之后再问"""
    match = _REQUEST_RE.match(text.strip())
    if not match:
        return None
    body = match.group(1).strip()
    return body or None


# ----------------- 任务 ----------------
def parse_priority(raw: Optional[str]) -> Optional[int]:
    return _PRIORITIES.get(str(raw or "").strip().lower())


def strip_task_fields(text: str) -> Tuple[str, str, Optional[int]]:
    """从标题中取出 'срок YYYY-MM-DD' 和 'приоритет X', 返回 (title, due, priority)"""
    title = text.strip()
    due = ""
    priority = None
    match = _TASK_DUE_RE.search(title)
    if match:
        due = match.group(1)
        title = title.replace(match.group(0), "", 1)
    match = _TASK_PRIORITY_RE.search(title)
    if match:
        priority = parse_priority(match.group(1))
        title = title.replace(match.group(0), "", 1)
    return collapse_whitespace(title), due, priority


def parse_task_create(text: str) -> Optional[TaskCommand]:
    """解析建任务命令, 标题可以为空 (之后追问)"""
    trimmed = text.strip()
    for pattern, kind in _TASK_PATTERNS:
        match = pattern.match(trimmed)
        if not match:
            continue
        groups = match.groups()
        if kind == "assignee-list":
            assignee, list_name = groups[0], groups[1]
            raw_title = groups[2] if len(groups) > 2 else ""
        elif kind == "assignee":
            assignee, list_name = groups[0], ""
            raw_title = groups[1] if len(groups) > 1 else ""
        else:
            assignee, list_name, raw_title = "", "", groups[0]
        title, due, priority = strip_task_fields(raw_title or "")
        return TaskCommand(
            title=title, assignee=assignee.strip(), list=list_name.strip(), due=due, priority=priority
        )
    return None


# ----------------- 每日计划 ----------------
def build_schedule_lines(text: str) -> List[str]:
    """把计划文本排成 'HH:MM - 任务' 列表

    第 i 行 (从 0 开始, 计入所有行) 没有写时间时使用 FALLBACK_SLOTS[i], 超出部分用 LATE_SLOT。
    写了 H:MM 的行使用自己的时间, 时间从任务文本中去掉。结果按时间稳定排序。
    """
    lines = [_PLAN_BULLET_RE.sub("", line).strip() for line in _PLAN_SPLIT_RE.split(text)]
    lines = [line for line in lines if line]

    scheduled: List[Tuple[str, str]] = []
    for i, line in enumerate(lines):
        match = _PLAN_TIME_RE.search(line)
        if match:
            slot = f"{int(match.group(1)):02d}:{match.group(2)}"
            task = _PLAN_TASK_LEAD_RE.sub("", line.replace(match.group(0), "", 1).strip())
            scheduled.append((slot, task or line))
        else:
            slot = FALLBACK_SLOTS[i] if i < len(FALLBACK_SLOTS) else LATE_SLOT
            scheduled.append((slot, line))

    scheduled.sort(key=lambda item: item[0])
    return [f"{slot} - {task}" for slot, task in scheduled]


# ----------------- 笔记 ----------------
def parse_due_text(text: str) -> Tuple[str, str]:
    """'<标题> до <日期>' 拆成 (title, due); 没有截止时间时 due 为空串"""
    match = _DUE_TEXT_RE.search(text)
    if not match:
        return text.strip(), ""
    due = collapse_whitespace(match.group(1))
    title = collapse_whitespace(text.replace(match.group(0), "", 1))
    return title, due


def is_no_deadline(text: str) -> bool:
    return bool(_NO_DEADLINE_RE.search(text))


# ----------------- 待回答问题的答复 ----------------
def parse_yes_no(text: str) -> Optional[bool]:
    answer = _REMINDER_ASK_PREFIX_RE.sub("", text.strip()).strip().lower()
    if answer in ("yes", "да"):
        return True
    if answer in ("no", "не"):
        return False
    return None


def parse_destination_choice(text: str) -> Optional[Literal["notion", "clickup"]]:
    choice = text.strip().lower()
    if "notion" in choice:
        return "notion"
    if "clickup" in choice or "click up" in choice:
        return "clickup"
    return None


def strip_note_target_prefix(text: str) -> str:
    return _NOTE_TARGET_PREFIX_RE.sub("", text.strip()).strip()


def parse_when_expression(text: str, allow_days: bool = True) -> Optional[ReminderWhen]:
    """从自由文本中找时间: 先找绝对时间, 再找 '<N> <单位>'"""
    match = _WHEN_ABSOLUTE_RE.search(text)
    if match:
        return ReminderWhen(kind="at", value=collapse_whitespace(match.group(1)))
    pattern = _WHEN_RELATIVE_MHD_RE if allow_days else _WHEN_RELATIVE_MH_RE
    match = pattern.search(text)
    if match and int(match.group(1)) > 0:
        return ReminderWhen(kind="in", value=f"{int(match.group(1))}{unit_suffix(match.group(2))}")
    return None


def parse_reminder_time_answer(text: str, now: int, user_tz: str) -> Optional[ReminderWhen]:
    """笔记提醒时间: 快捷选项 30m / 1h / 2h / tomorrow-9 / tomorrow-18, 或自由文本"""
    answer = _REMINDER_TIME_PREFIX_RE.sub("", text.strip()).strip()
    if answer in ("30m", "1h", "2h"):
        return ReminderWhen(kind="in", value=answer)
    if answer == "tomorrow-9":
        return ReminderWhen(kind="at", value=tomorrow_at(now, user_tz, 9))
    if answer == "tomorrow-18":
        return ReminderWhen(kind="at", value=tomorrow_at(now, user_tz, 18))
    return parse_when_expression(answer, allow_days=False)


# ----------------- 无状态命令 ----------------
def is_done_shortcut(text: str) -> bool:
    return bool(_DONE_RE.match(text.strip()))


def parse_snooze_shortcut(text: str) -> Optional[str]:
    """'по-късно 30 мин' 返回 '30m' 这样的时长"""
    match = _SNOOZE_RE.match(text.strip())
    if not match or int(match.group(1)) <= 0:
        return None
    return f"{int(match.group(1))}{unit_suffix(match.group(2))}"


def parse_smart_toggle(text: str) -> Optional[bool]:
    """/smart [on|off] 返回目标状态, /script 返回 False, 其他返回 None"""
    text = text.strip()
    match = _SMART_RE.match(text)
    if match:
        return (match.group(1) or "on").lower() != "off"
    if _SCRIPT_RE.match(text):
        return False
    return None


def is_help(text: str) -> bool:
    return text.strip().lower() in _HELP_WORDS


def parse_note_capture(text: str) -> Optional[NoteCapture]:
    text = text.strip()
    match = _NOTE_ASK_RE.match(text)
    if match:
        return NoteCapture(kind="ask", title=match.group(1).strip())
    match = _NOTE_NOTION_RE.match(text)
    if match:
        return NoteCapture(kind="notion", title=match.group(1).strip())
    match = _NOTE_TASK_RE.match(text)
    if match:
        title, due = parse_due_text(match.group(1))
        return NoteCapture(kind="task", title=title, due=due)
    return None


def parse_deviation(text: str) -> Optional[str]:
    match = _DEVIATION_RE.match(text.strip())
    return match.group(1).strip() if match else None


def is_postpone_plan(text: str) -> bool:
    return bool(_POSTPONE_RE.match(text.strip()))


def is_daily_planner(text: str) -> bool:
    return bool(_DAILY_PLANNER_RE.match(text.strip()))


def is_list_reminders(text: str) -> bool:
    return bool(_REMINDERS_RE.match(text.strip()))
