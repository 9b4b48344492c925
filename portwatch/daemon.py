# portwatch - Daemon: poll loop controller
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from portwatch.collector.sockets import SnapshotSource, make_source
from portwatch.differ import diff, initial_diff
from portwatch.dispatcher import ActionDispatcher
from portwatch.executor import CommandExecutor, ShellExecutor
from portwatch.models import BackendError, RoundResult, WatchConfig

logger = logging.getLogger("portwatch")


class Daemon:
    """Poll the snapshot source, diff against the last snapshot, run actions.

    The first round treats every observed item as added. Each later round
    runs add actions for new items and del actions for vanished ones, then
    the trigger once if at least one of those actions succeeded.
    """

    def __init__(
        self,
        config: WatchConfig,
        source: SnapshotSource | None = None,
        executor: CommandExecutor | None = None,
        activity: Any = None,
    ) -> None:
        self.config = config
        self._activity = activity
        self._source = source or make_source(config)
        self._executor = executor or ShellExecutor(config.command_timeout_sec, activity)
        self._dispatcher = ActionDispatcher(config, self._executor)
        self._previous: frozenset[str] | None = None
        self._round = 0
        self._stop: asyncio.Event | None = None

    @property
    def previous(self) -> frozenset[str] | None:
        return self._previous

    def shutdown(self) -> None:
        if self._stop is None:
            self._stop = asyncio.Event()
        self._stop.set()

    async def run(self) -> None:
        if self._stop is None:
            self._stop = asyncio.Event()
        logger.info(
            "portwatch starting (backend=%s granularity=%s interval=%ss)",
            self.config.backend.value,
            self.config.granularity.value,
            self.config.interval_sec,
        )
        await self.run_round()
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.config.interval_sec)
                break
            except asyncio.TimeoutError:
                pass
            await self.run_round()
        logger.info("portwatch stopped after %d rounds", self._round)

    async def _capture(self) -> frozenset[str]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._source.capture, self.config.ignore_ports)

    async def run_round(self) -> RoundResult:
        self._round += 1
        result = RoundResult(round=self._round)
        t0 = time.perf_counter()
        try:
            current = await self._capture()
        except BackendError as e:
            if self._previous is None or self.config.exit_on_backend_error:
                raise
            logger.error("Round %d skipped, cannot list listening sockets: %s", self._round, e)
            result.skipped = True
            result.error = str(e)
            await self._log_round(result)
            return result

        if self._previous is None:
            changes = initial_diff(current)
        else:
            changes = diff(self._previous, current)
        result.added = changes.sorted_added()
        result.removed = changes.sorted_removed()

        if not changes.empty:
            result.actions_run, result.actions_ok = await self._dispatcher.dispatch(changes)
        trigger_ok = await self._dispatcher.run_trigger(self.config.trigger_action, result.outcome)
        if trigger_ok is not None:
            result.triggered = True
            result.trigger_ok = trigger_ok

        self._previous = current
        logger.debug(
            "Round %d: %d listening, +%d -%d, %d/%d actions ok, trigger=%s (%.3fs)",
            self._round,
            len(current),
            len(result.added),
            len(result.removed),
            result.actions_ok,
            result.actions_run,
            result.trigger_ok,
            time.perf_counter() - t0,
        )
        await self._log_round(result)
        return result

    async def _log_round(self, result: RoundResult) -> None:
        if self._activity:
            await self._activity.log_round(result)
