"""日志模块

级别支持: TRACE/DEBUG/INFO/WARNING/ERROR/CRITICAL (兼容别名 FATAL -> CRITICAL)

使用：CLI 每次调用时先 setup_logging，然后 logger.info(...) 等写日志。
每次调用都是短生命周期进程，所以文件 sink 使用 enqueue=False，避免退出时丢日志。
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Literal, Union

from loguru import logger

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "FATAL"]

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level:<8}</level> | "
    "<cyan>{extra[invocation]}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {extra[invocation]} | "
    "{name}:{function}:{line} - {message}"
)

_LEVEL_ALIAS = {"FATAL": "CRITICAL"}


def _normalize_level(level: Union[str, LogLevel]) -> str:
    return _LEVEL_ALIAS.get(str(level).upper(), str(level).upper())


def _file_handler(
    path: Path,
    *,
    level: str,
    retention: str,
) -> dict:
    return {
        "sink": path,
        "level": level,
        "format": FILE_FORMAT,
        "rotation": "10 MB",
        "retention": retention,
        "compression": "zip",
        "encoding": "utf-8",
    }


def setup_logging(
    log_level: LogLevel,
    log_file: Union[str, Path, None],
    console_level: LogLevel = "INFO",
    invocation: str = "-",
) -> None:
    """配置全局 logger

    invocation 会写进每一行日志，用来区分 tick / chat / add 等不同的短进程调用。
    log_file 为 None 时只输出到控制台（测试与 --dry-run 场景）。
    """
    console_lv = _normalize_level(console_level)
    handlers: list[dict] = [
        {
            "sink": sys.stderr,
            "level": console_lv,
            "format": CONSOLE_FORMAT,
            "colorize": True,
        },
    ]

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_level = _normalize_level(log_level)
        error_log_file = log_file.with_name(f"{log_file.stem}_error{log_file.suffix}")
        handlers.append(_file_handler(log_file, level=file_level, retention="30 days"))
        handlers.append(_file_handler(error_log_file, level="ERROR", retention="90 days"))

    logger.configure(handlers=handlers, extra={"invocation": invocation})


# 未调用 setup_logging 时（例如被测试直接导入）也保证 extra[invocation] 存在
logger.configure(extra={"invocation": "-"})


__all__ = ["setup_logging", "logger"]
