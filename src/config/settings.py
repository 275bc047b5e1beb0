import os
from pathlib import Path
from dotenv import load_dotenv
from logger import logger
load_dotenv()

__all__ = [
    "DATA_DIR", "DB_FILE", "LOG_FILE", "LOG_LEVEL",
    "DEFAULT_TARGET", "DEFAULT_REPEAT_MINUTES",
    "DAILY_PLAN_GROUP", "DAILY_PLAN_REPEAT_MINUTES", "DAILY_PLAN_REMINDER_AT",
    "TASKS_GROUP", "USER_TIMEZONE", "COLLABORATOR_TIMEOUT_SECONDS",
    "CLICKUP_DEFAULT_LIST", "CLICKUP_DEFAULT_ASSIGNEE", "DEFAULT_NOTE_TARGET",
    "SEND_MESSAGE_COMMAND", "CREATE_NOTE_COMMAND", "APPEND_SCHEDULE_COMMAND",
    "CREATE_TASK_COMMAND", "TASK_CATALOG_COMMAND", "TRANSCRIBE_COMMAND",
]


def _parse_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"{name} 非法: {raw}, 已回退到 {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} 必须大于 0: {raw}, 已回退到 {default}")
        return default
    return value


def _parse_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"{name} 非法: {raw}, 已回退到 {default}")
        return default


# 数据与日志位置
DATA_DIR = Path(os.getenv("NUDGE_DATA_DIR", str(Path.home() / ".nudge"))).expanduser()
DB_FILE = Path(os.getenv("NUDGE_DB_FILE", str(DATA_DIR / "nudge.db"))).expanduser()
LOG_FILE = Path(os.getenv("NUDGE_LOG_FILE", str(DATA_DIR / "logs" / "nudge.log"))).expanduser()
LOG_LEVEL = os.getenv("NUDGE_LOG_LEVEL", "DEBUG").strip().upper()

# 用户信息
USER_TIMEZONE = os.getenv("USER_TIMEZONE", "Europe/Sofia")

# 提醒默认值
# DEFAULT_TARGET 是没有显式 --target 时的兜底聊天 ID（单用户）
DEFAULT_TARGET = os.getenv("DEFAULT_TARGET", os.getenv("TELEGRAM_TARGET", "")).strip()
if DEFAULT_TARGET == "":
    logger.debug("未设置 DEFAULT_TARGET, 没有 --target 的提醒将无法投递")

DEFAULT_REPEAT_MINUTES = _parse_int("DEFAULT_REPEAT_MINUTES", 5)
TASKS_GROUP = "tasks"

# 每日计划工作流
DAILY_PLAN_GROUP = "daily-plan"
DAILY_PLAN_REPEAT_MINUTES = _parse_int("DAILY_PLAN_REPEAT_MINUTES", 10)
DAILY_PLAN_REMINDER_AT = os.getenv("DAILY_PLAN_REMINDER_AT", "21:00").strip()

# 外部协作方
COLLABORATOR_TIMEOUT_SECONDS = _parse_float("COLLABORATOR_TIMEOUT_SECONDS", 120.0)

CLICKUP_DEFAULT_LIST = os.getenv("CLICKUP_DEFAULT_LIST", "").strip()
CLICKUP_DEFAULT_ASSIGNEE = os.getenv("CLICKUP_DEFAULT_ASSIGNEE", "").strip()

# "задача: ..." 没有选择目标时使用的笔记目标
DEFAULT_NOTE_TARGET = os.getenv("DEFAULT_NOTE_TARGET", "quick_tasks").strip()

# 外部命令模板, 占位符使用 str.format 语法, 例如:
# SEND_MESSAGE_COMMAND="clawdbot message send --channel telegram --target {target} --message {text}"
SEND_MESSAGE_COMMAND = os.getenv("SEND_MESSAGE_COMMAND", "")
CREATE_NOTE_COMMAND = os.getenv("CREATE_NOTE_COMMAND", "")
APPEND_SCHEDULE_COMMAND = os.getenv("APPEND_SCHEDULE_COMMAND", "")
CREATE_TASK_COMMAND = os.getenv("CREATE_TASK_COMMAND", "")
TASK_CATALOG_COMMAND = os.getenv("TASK_CATALOG_COMMAND", "")
TRANSCRIBE_COMMAND = os.getenv("TRANSCRIBE_COMMAND", "")
