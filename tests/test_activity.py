# portwatch - Activity journal tests
import asyncio
import json

from portwatch.models import RoundResult
from portwatch.reporter.activity import ActivityLogger


def test_round_records_appended(tmp_path):
    path = tmp_path / "log" / "activity.jsonl"
    activity = ActivityLogger(path)

    async def go():
        await activity.start()
        await activity.log_round(RoundResult(1, added=["22"], actions_run=1, actions_ok=1, triggered=True, trigger_ok=True))
        await activity.log_round(RoundResult(2, skipped=True, error="ss exited 1"))
        await activity.stop()

    asyncio.run(go())
    first, second = [json.loads(line) for line in path.read_text().splitlines()]
    assert first["type"] == "round"
    assert first["added"] == ["22"]
    assert first["outcome"] is True
    assert first["trigger_ok"] is True
    assert first["error"] is None
    assert first["ts"].endswith("Z")
    assert second["skipped"] is True
    assert second["error"] == "ss exited 1"


def test_disabled_journal_writes_nothing(tmp_path):
    path = tmp_path / "activity.jsonl"
    activity = ActivityLogger(path, enabled=False)

    async def go():
        await activity.start()
        await activity.log_round(RoundResult(1))
        await activity.stop()

    asyncio.run(go())
    assert not path.exists()
