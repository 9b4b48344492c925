# portwatch - Activity journal (append-only JSONL: rounds and command executions)
from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from portwatch.models import RoundResult

logger = __import__("logging").getLogger("portwatch.activity")


class ActivityLogger:
    """Records every polling round and every command the daemon runs."""

    def __init__(self, path: str | Path, enabled: bool = True) -> None:
        self._path = Path(path)
        self._file: Any = None
        self._lock: asyncio.Lock | None = None
        self._enabled = enabled

    @property
    def path(self) -> Path:
        return self._path

    async def start(self) -> None:
        if not self._enabled:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self._path, "a")
        logger.info("Activity journal: %s", self._path)

    async def stop(self) -> None:
        if self._file:
            self._file.close()
            self._file = None

    async def _write(self, record: dict[str, Any]) -> None:
        if not self._enabled or not self._file:
            return
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
            line = json.dumps({"ts": ts, **record}) + "\n"
            self._file.write(line)
            self._file.flush()

    async def log_round(self, result: RoundResult) -> None:
        await self._write({
            "type": "round",
            "round": result.round,
            "added": result.added,
            "removed": result.removed,
            "actions_run": result.actions_run,
            "actions_ok": result.actions_ok,
            "outcome": result.outcome,
            "triggered": result.triggered,
            "trigger_ok": result.trigger_ok,
            "skipped": result.skipped,
            "error": result.error or None,
        })

    async def log_command_execution(
        self,
        command: str,
        exit_code: int,
        stdout_preview: str,
        stderr_preview: str,
        duration_sec: float,
        source: str = "",
    ) -> None:
        await self._write({
            "type": "command_execution",
            "command": command,
            "exit_code": exit_code,
            "stdout_preview": stdout_preview[:2000] if stdout_preview else "",
            "stderr_preview": stderr_preview[:500] if stderr_preview else "",
            "duration_sec": round(duration_sec, 3),
            "source": source,
        })
