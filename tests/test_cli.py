import pytest

from loguru import logger

from main import build_parser, main


@pytest.fixture
def cli(tmp_path):
    db = str(tmp_path / "nudge.db")

    def invoke(*argv: str) -> int:
        return main(["--db", db, "--log-file", "-", *argv])

    yield invoke
    # main 会把 stderr sink 绑定到 capsys 的临时流
    logger.remove()


def test_reminder_lifecycle(cli, capsys):
    assert cli("reminders", "add", "--text", "Buy milk", "--in", "10m", "--target", "42", "--dry-run") == 0
    assert "Added reminder 1" in capsys.readouterr().out

    assert cli("reminders", "list") == 0
    out = capsys.readouterr().out
    assert "Pending reminders: 1" in out
    assert "(1) Buy milk" in out

    assert cli("reminders", "tick", "--dry-run") == 0
    assert capsys.readouterr().out.strip() == "sent=0"

    assert cli("reminders", "done", "--id", "1", "--dry-run") == 0
    assert "Done: (1) Buy milk" in capsys.readouterr().out

    assert cli("reminders", "list") == 0
    assert "Pending reminders: 0" in capsys.readouterr().out


def test_invalid_duration_exits_with_error(cli, capsys):
    assert cli("reminders", "add", "--text", "x", "--in", "soon", "--target", "42", "--dry-run") == 1
    assert "Invalid duration 'soon'" in capsys.readouterr().err


def test_done_without_pending_reminder(cli, capsys):
    assert cli("reminders", "done", "--id", "9", "--target", "42", "--dry-run") == 1
    assert capsys.readouterr().err.strip() != ""


def test_chat_command(cli, capsys):
    assert cli("chat", "--chat-id", "42", "--text", "/help", "--dry-run") == 0
    assert capsys.readouterr().out.strip() == "handled"
    assert cli("chat", "--chat-id", "42", "--text", "как си?", "--dry-run") == 0
    assert capsys.readouterr().out.strip() == "unhandled"


def test_destinations_registry(cli, capsys):
    assert cli("destinations", "list") == 0
    assert "No destinations configured." in capsys.readouterr().out
    assert cli("destinations", "init") == 0
    assert cli("destinations", "add", "ideas", "Ideas", "--db-id", "db-1") == 0
    capsys.readouterr()
    assert cli("destinations", "list") == 0
    out = capsys.readouterr().out
    assert "quick_tasks\tQuick Task/Notes\ttasks" in out
    assert "ideas\tIdeas\ttasks\tpage=-\tdb=db-1" in out


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
    args = build_parser().parse_args(["reminders", "snooze", "--in", "30m"])
    assert args.when == "30m"
    assert args.dry_run is False
