# portwatch - Shell executor tests
import asyncio
import json

from portwatch.executor import ShellExecutor
from portwatch.reporter.activity import ActivityLogger


def test_exit_status_maps_to_success():
    ex = ShellExecutor()
    assert asyncio.run(ex.run("true")) is True
    assert asyncio.run(ex.run("exit 3")) is False


def test_shell_syntax_is_interpreted(tmp_path):
    out = tmp_path / "out.txt"
    ex = ShellExecutor()
    assert asyncio.run(ex.run(f"echo ADD 8080 | tr A-Z a-z > {out}")) is True
    assert out.read_text() == "add 8080\n"


def test_timeout_counts_as_failure():
    ex = ShellExecutor(timeout=0.2)
    assert asyncio.run(ex.run("sleep 5")) is False


def test_commands_are_recorded_in_activity_journal(tmp_path):
    path = tmp_path / "activity.jsonl"
    activity = ActivityLogger(path)

    async def go():
        await activity.start()
        ex = ShellExecutor(activity=activity)
        await ex.run("echo hello; echo oops >&2; exit 1", "ADD")
        await activity.stop()

    asyncio.run(go())
    (record,) = [json.loads(line) for line in path.read_text().splitlines()]
    assert record["type"] == "command_execution"
    assert record["exit_code"] == 1
    assert record["stdout_preview"] == "hello\n"
    assert record["stderr_preview"] == "oops\n"
    assert record["source"] == "ADD"
