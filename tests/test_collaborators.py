import pytest

from collaborators.base import deliver
from collaborators.dry_run import DryRunMessenger
from collaborators.process import ProcessMessenger, ProcessTaskService, ProcessTranscriber, run_command
from conftest import FakeMessenger
from errors import CollaboratorError
from metrics import runtime_metrics


@pytest.mark.asyncio
async def test_run_command_keeps_values_as_single_arguments():
    out = await run_command("echo", "printf '%s|' {title} {missing}", 5, title="две думи")
    assert out == "две думи||"


@pytest.mark.asyncio
async def test_run_command_failures():
    with pytest.raises(CollaboratorError, match="not configured"):
        await run_command("messenger", "  ", 5)
    with pytest.raises(CollaboratorError, match="exit 3: boom"):
        await run_command("messenger", "sh -c 'echo boom >&2; exit 3'", 5)
    with pytest.raises(CollaboratorError, match="cannot start"):
        await run_command("messenger", "/nonexistent/nudge-send {text}", 5, text="x")
    with pytest.raises(CollaboratorError, match="timed out"):
        await run_command("messenger", "sleep 5", 0.2)


@pytest.mark.asyncio
async def test_process_messenger_and_transcriber():
    await ProcessMessenger("true {target} {text}").send_message("42", "hi")
    assert await ProcessTranscriber("echo  {file}").transcribe("/tmp/a.ogg") == "/tmp/a.ogg"
    with pytest.raises(CollaboratorError, match="empty transcription"):
        await ProcessTranscriber("true {file}").transcribe("/tmp/a.ogg")


@pytest.mark.asyncio
async def test_process_task_catalog_parses_json():
    tasks = ProcessTaskService(catalog_template=(
        """echo '[{{"id": 7, "name": "Inbox", "scope": "Work"}}, {{"name": "x"}}]'"""
    ))
    catalog = await tasks.list_catalog("list")
    assert [(c.id, c.name, c.scope) for c in catalog] == [("7", "Inbox", "Work")]

    broken = ProcessTaskService(catalog_template="echo not-json")
    with pytest.raises(CollaboratorError, match="not JSON"):
        await broken.list_catalog("list")


@pytest.mark.asyncio
async def test_deliver_counts_and_reports_failures():
    messenger = FakeMessenger()
    await deliver(messenger, "42", "hi")
    assert runtime_metrics.msg_out_count == 1

    messenger.failing_targets.add("7")
    with pytest.raises(CollaboratorError):
        await deliver(messenger, "7", "hi")
    with pytest.raises(CollaboratorError, match="missing target"):
        await deliver(messenger, "", "hi")
    assert runtime_metrics.collaborator_error_count == 1
    assert runtime_metrics.msg_out_count == 1


@pytest.mark.asyncio
async def test_dry_run_messenger_records():
    messenger = DryRunMessenger()
    await deliver(messenger, "42", "hi")
    assert messenger.sent == [("42", "hi")]
