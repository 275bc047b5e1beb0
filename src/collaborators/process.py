"""基于外部命令的协作方实现

每个能力对应一个命令模板 (见 config.settings), 模板先按 shell 规则拆分, 再对每个参数做
str.format 替换, 所以带空格的值始终是一个参数。每次调用都有超时, 超时后杀掉子进程。
"""

import asyncio
import json
import shlex
from collections import defaultdict
from typing import List, Optional

from collaborators.base import CatalogKind, Messenger, NoteService, TaskService, Transcriber
from config.settings import *
from datamodel import CatalogEntity
from errors import CollaboratorError
from logger import logger

__all__ = ["run_command", "ProcessMessenger", "ProcessNoteService", "ProcessTaskService", "ProcessTranscriber"]


def _build_argv(template: str, fields: dict) -> list[str]:
    values = defaultdict(str, {k: "" if v is None else str(v) for k, v in fields.items()})
    return [part.format_map(values) for part in shlex.split(template)]


async def run_command(name: str, template: str, timeout: float, **fields) -> str:
    """运行命令并返回 stdout; 非 0 退出、超时或无法启动时抛出 CollaboratorError"""
    if not template.strip():
        raise CollaboratorError(name, "command is not configured")
    try:
        argv = _build_argv(template, fields)
    except (ValueError, IndexError) as e:
        raise CollaboratorError(name, f"invalid command template: {e}") from e

    logger.trace(f"执行外部命令: {name} argv={argv}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise CollaboratorError(name, f"cannot start {argv[0]}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise CollaboratorError(name, f"timed out after {timeout:g}s")

    out = stdout.decode("utf-8", errors="replace").strip()
    err = stderr.decode("utf-8", errors="replace").strip()
    if proc.returncode != 0:
        raise CollaboratorError(name, f"exit {proc.returncode}: {err or out}")
    return out


class ProcessMessenger(Messenger):
    def __init__(self, template: str = SEND_MESSAGE_COMMAND, timeout: float = COLLABORATOR_TIMEOUT_SECONDS) -> None:
        self.template = template
        self.timeout = timeout

    async def send_message(self, target: str, text: str) -> None:
        await run_command("messenger", self.template, self.timeout, target=target, text=text)


class ProcessNoteService(NoteService):
    def __init__(
        self,
        note_template: str = CREATE_NOTE_COMMAND,
        schedule_template: str = APPEND_SCHEDULE_COMMAND,
        timeout: float = COLLABORATOR_TIMEOUT_SECONDS,
    ) -> None:
        self.note_template = note_template
        self.schedule_template = schedule_template
        self.timeout = timeout

    async def create_note(self, destination_key: str, title: str, body: Optional[str] = None) -> str:
        return await run_command(
            "notes", self.note_template, self.timeout, target=destination_key, title=title, body=body
        )

    async def append_schedule(self, date: str, text: str) -> None:
        await run_command("schedule", self.schedule_template, self.timeout, date=date, text=text)


class ProcessTaskService(TaskService):
    def __init__(
        self,
        task_template: str = CREATE_TASK_COMMAND,
        catalog_template: str = TASK_CATALOG_COMMAND,
        timeout: float = COLLABORATOR_TIMEOUT_SECONDS,
    ) -> None:
        self.task_template = task_template
        self.catalog_template = catalog_template
        self.timeout = timeout

    async def list_catalog(self, kind: CatalogKind) -> List[CatalogEntity]:
        # 目录命令输出 JSON 数组: [{"id": ..., "name": ..., "scope": ...}, ...]
        out = await run_command("tasks", self.catalog_template, self.timeout, kind=kind)
        try:
            rows = json.loads(out or "[]")
        except json.JSONDecodeError as e:
            raise CollaboratorError("tasks", f"catalog output is not JSON: {e}") from e
        if not isinstance(rows, list):
            raise CollaboratorError("tasks", "catalog output must be a JSON array")
        return [
            CatalogEntity(id=str(row["id"]), name=str(row.get("name") or row["id"]), scope=row.get("scope"))
            for row in rows
            if isinstance(row, dict) and row.get("id") is not None
        ]

    async def create_task(
        self,
        title: str,
        list_id: str,
        assignee_ids: List[str],
        due_ms: Optional[int] = None,
        priority: Optional[int] = None,
    ) -> str:
        return await run_command(
            "tasks",
            self.task_template,
            self.timeout,
            title=title,
            list=list_id,
            assignees=",".join(assignee_ids),
            due=due_ms,
            priority=priority,
        )


class ProcessTranscriber(Transcriber):
    def __init__(self, template: str = TRANSCRIBE_COMMAND, timeout: float = COLLABORATOR_TIMEOUT_SECONDS) -> None:
        self.template = template
        self.timeout = timeout

    async def transcribe(self, file_path: str) -> str:
        text = await run_command("transcriber", self.template, self.timeout, file=file_path)
        if not text:
            raise CollaboratorError("transcriber", "empty transcription")
        return text
