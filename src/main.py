from logger import setup_logging, logger
from config.settings import *

import argparse
import asyncio
import mimetypes
import sys
from dataclasses import dataclass
from typing import Optional

from collaborators.base import Collaborators
from collaborators.dry_run import DryRunMessenger
from collaborators.process import ProcessMessenger, ProcessNoteService, ProcessTaskService, ProcessTranscriber
from core.dispatcher import ChatDispatcher
from core.scheduler import ReminderScheduler
from datamodel import IncomingMessage, NoteDestination
from errors import NudgeError
from jobs.daily_plan import start_daily_plan, weekly_analysis
from jobs.note_due import due_check
from metrics import runtime_metrics
from storage.destinations import default_destinations, load_destinations, save_destinations
from utils import ms_to_local_min_str
import storage.db_config as db_config


@dataclass
class Context:
    collaborators: Collaborators
    scheduler: ReminderScheduler

    @property
    def dispatcher(self) -> ChatDispatcher:
        return ChatDispatcher(self.collaborators, self.scheduler)


def build_collaborators(dry_run: bool = False) -> Collaborators:
    """按配置的外部命令组装协作方; dry-run 时消息只写日志"""
    return Collaborators(
        messenger=DryRunMessenger() if dry_run else ProcessMessenger(),
        notes=ProcessNoteService(),
        tasks=ProcessTaskService(),
        transcriber=ProcessTranscriber(),
    )


# ----------------- reminders ----------------
async def cmd_reminders_add(args, ctx: Context) -> int:
    reminder = await ctx.scheduler.add(
        args.text, when=args.when, repeat_minutes=args.repeat_min, target=args.target, group=args.group, at=args.at
    )
    print(f"Added reminder {reminder.id}: next {ms_to_local_min_str(reminder.next_at, USER_TIMEZONE)}")
    return 0


async def cmd_reminders_list(args, ctx: Context) -> int:
    reminders = await ctx.scheduler.list(args.group)
    print(f"Pending reminders: {len(reminders)}")
    for r in reminders:
        print(f"- ({r.id}) {r.text} | next {ms_to_local_min_str(r.next_at, USER_TIMEZONE)}")
    return 0


async def cmd_reminders_done(args, ctx: Context) -> int:
    reminder = await ctx.scheduler.done(args.id, group=args.group, target=args.target)
    print(f"Done: ({reminder.id}) {reminder.text}")
    return 0


async def cmd_reminders_snooze(args, ctx: Context) -> int:
    reminder = await ctx.scheduler.snooze(args.id, minutes=args.when, group=args.group, target=args.target)
    print(f"Snoozed: ({reminder.id}) next {ms_to_local_min_str(reminder.next_at, USER_TIMEZONE)}")
    return 0


async def cmd_reminders_tick(args, ctx: Context) -> int:
    sent = await ctx.scheduler.tick(args.group)
    print(f"sent={sent}")
    return 0


async def cmd_reminders_clear(args, ctx: Context) -> int:
    removed = await ctx.scheduler.clear_group(args.group)
    print(f"removed={removed}")
    return 0


# ----------------- chat ----------------
def _audio_attachment(path: str) -> dict:
    mime_type, _ = mimetypes.guess_type(path)
    if not mime_type or not mime_type.startswith("audio/"):
        mime_type = "audio/ogg"
    return {"mime_type": mime_type, "path": path}


async def cmd_chat(args, ctx: Context) -> int:
    message = IncomingMessage(
        chat_id=str(args.chat_id),
        content=args.text or "",
        attachments=[_audio_attachment(args.audio)] if args.audio else [],
    )
    result = await ctx.dispatcher.handle_message(message)
    if result.error:
        print(result.error, file=sys.stderr)
        return 1
    print("handled" if result.handled else "unhandled")
    return 0


# ----------------- jobs ----------------
async def cmd_daily_plan_start(args, ctx: Context) -> int:
    reminder = await start_daily_plan(ctx.scheduler, target=args.target)
    print(f"Daily plan reminder {reminder.id}: next {ms_to_local_min_str(reminder.next_at, USER_TIMEZONE)}")
    return 0


async def cmd_daily_plan_weekly(args, ctx: Context) -> int:
    lines = await weekly_analysis(ctx.collaborators, target=args.target or DEFAULT_TARGET)
    for line in lines:
        print(line)
    return 0


async def cmd_notes_due_check(args, ctx: Context) -> int:
    sent = await due_check(ctx.collaborators.messenger)
    print(f"sent={sent}")
    return 0


# ----------------- destinations ----------------
async def cmd_destinations_list(args, ctx: Context) -> int:
    destinations = await load_destinations()
    if not destinations.targets:
        print("No destinations configured.")
    for key, dest in destinations.targets.items():
        print(f"{key}\t{dest.name}\t{dest.type}\tpage={dest.page_id or '-'}\tdb={dest.db_id or '-'}")
    return 0


async def cmd_destinations_add(args, ctx: Context) -> int:
    destinations = await load_destinations()
    destinations.targets[args.key] = NoteDestination(
        name=args.name, page_id=args.page_id, db_id=args.db_id, type=args.type
    )
    await save_destinations(destinations)
    logger.info(f"保存笔记目标: {args.key}")
    print(f"Saved destination {args.key}.")
    return 0


async def cmd_destinations_init(args, ctx: Context) -> int:
    destinations = await load_destinations()
    if destinations.targets:
        print("Destinations already exist.")
        return 0
    await save_destinations(default_destinations())
    print("Wrote default destinations.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nudge", description="Reminder scheduler and chat command router")
    parser.add_argument("--db", default=str(DB_FILE), help="SQLite database file")
    parser.add_argument("--log-file", default=str(LOG_FILE), help="Log file ('-' disables file logging)")
    parser.add_argument("--log-level", default=LOG_LEVEL, help="File log level")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--dry-run", action="store_true", help="Log outgoing messages instead of sending them")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # reminders
    reminders = subparsers.add_parser("reminders", help="Reminder scheduler operations")
    rsub = reminders.add_subparsers(dest="action", required=True)

    p = rsub.add_parser("add", parents=[common], help="Add a reminder")
    p.add_argument("--text", required=True)
    when = p.add_mutually_exclusive_group()
    when.add_argument("--in", dest="when", help="Relative duration, e.g. 10m, 2h, 1d")
    when.add_argument("--at", help="HH:MM or YYYY-MM-DD HH:MM")
    p.add_argument("--repeat-min", type=int, default=DEFAULT_REPEAT_MINUTES)
    p.add_argument("--target")
    p.add_argument("--group")
    p.set_defaults(func=cmd_reminders_add)

    p = rsub.add_parser("list", parents=[common], help="List pending reminders")
    p.add_argument("--group")
    p.set_defaults(func=cmd_reminders_list)

    p = rsub.add_parser("done", parents=[common], help="Mark a reminder as done")
    p.add_argument("--id")
    p.add_argument("--group")
    p.add_argument("--target")
    p.set_defaults(func=cmd_reminders_done)

    p = rsub.add_parser("snooze", parents=[common], help="Snooze a reminder")
    p.add_argument("--id")
    p.add_argument("--in", dest="when", help="e.g. 30m or 1h")
    p.add_argument("--group")
    p.add_argument("--target")
    p.set_defaults(func=cmd_reminders_snooze)

    p = rsub.add_parser("tick", parents=[common], help="Send every due reminder")
    p.add_argument("--group")
    p.set_defaults(func=cmd_reminders_tick)

    p = rsub.add_parser("clear", parents=[common], help="Delete every reminder of a group")
    p.add_argument("--group", required=True)
    p.set_defaults(func=cmd_reminders_clear)

    # chat
    p = subparsers.add_parser("chat", parents=[common], help="Handle one incoming chat message")
    p.add_argument("--chat-id", required=True)
    body = p.add_mutually_exclusive_group(required=True)
    body.add_argument("--text")
    body.add_argument("--audio", help="Path to a voice message to transcribe")
    p.set_defaults(func=cmd_chat)

    # daily-plan
    daily = subparsers.add_parser("daily-plan", help="Daily plan workflow jobs")
    dsub = daily.add_subparsers(dest="action", required=True)
    p = dsub.add_parser("start", parents=[common], help="Restart the evening planning reminder")
    p.add_argument("--target")
    p.set_defaults(func=cmd_daily_plan_start)
    p = dsub.add_parser("weekly", parents=[common], help="Send the weekly plan analysis")
    p.add_argument("--target")
    p.set_defaults(func=cmd_daily_plan_weekly)

    # notes
    notes = subparsers.add_parser("notes", help="Note workflow jobs")
    nsub = notes.add_subparsers(dest="action", required=True)
    p = nsub.add_parser("due-check", parents=[common], help="Re-ask chats that still owe a note deadline")
    p.set_defaults(func=cmd_notes_due_check)

    # destinations
    destinations = subparsers.add_parser("destinations", help="Note destinations registry")
    tsub = destinations.add_subparsers(dest="action", required=True)
    p = tsub.add_parser("list", parents=[common])
    p.set_defaults(func=cmd_destinations_list)
    p = tsub.add_parser("add", parents=[common])
    p.add_argument("key")
    p.add_argument("name")
    p.add_argument("--page-id", default="")
    p.add_argument("--db-id", default="")
    p.add_argument("--type", default="tasks")
    p.set_defaults(func=cmd_destinations_add)
    p = tsub.add_parser("init", parents=[common], help="Seed the default destinations")
    p.set_defaults(func=cmd_destinations_init)

    return parser


async def run(args: argparse.Namespace, collaborators: Optional[Collaborators] = None) -> int:
    await db_config.init_db(args.db)
    try:
        collaborators = collaborators or build_collaborators(args.dry_run)
        ctx = Context(collaborators=collaborators, scheduler=ReminderScheduler(collaborators.messenger))
        return await args.func(args, ctx)
    finally:
        await db_config.close_db()
        logger.debug(f"运行指标: {runtime_metrics.snapshot()}")


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    invocation = " ".join(filter(None, [args.command, getattr(args, "action", None)]))
    setup_logging(
        log_level=args.log_level,
        log_file=None if args.log_file == "-" else args.log_file,
        console_level="WARNING",
        invocation=invocation,
    )
    try:
        return asyncio.run(run(args))
    except NudgeError as e:
        logger.error(f"[{invocation}] {e}")
        print(str(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
