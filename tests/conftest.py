# portwatch - Shared test doubles
from __future__ import annotations

import logging

import pytest

from portwatch.models import WatchConfig


class ScriptedSource:
    """Returns the queued snapshots in order; an exception in the queue is raised."""

    def __init__(self, *snapshots):
        self._queue = list(snapshots)
        self.calls = 0

    def capture(self, ignore_set):
        self.calls += 1
        nxt = self._queue.pop(0) if len(self._queue) > 1 else self._queue[0]
        if isinstance(nxt, Exception):
            raise nxt
        return frozenset(i for i in nxt if i.rsplit(":", 1)[-1] not in ignore_set)


class RecordingExecutor:
    """Records commands; commands listed in `failing` report failure."""

    def __init__(self, failing=()):
        self.commands: list[str] = []
        self.failing = set(failing)

    async def run(self, command, tag=""):
        self.commands.append(command)
        return command not in self.failing


@pytest.fixture
def port_config():
    from portwatch.models import Granularity

    return WatchConfig(
        add_action="echo ADD %p",
        del_action="echo DEL %p",
        trigger_action="reload",
        granularity=Granularity.PORT,
    )


@pytest.fixture(autouse=True)
def _reset_loggers():
    root = logging.getLogger()
    saved_level = root.level
    yield
    # drop what main.setup_logging installed via basicConfig
    for h in root.handlers[:]:
        if type(h) is logging.StreamHandler:
            root.removeHandler(h)
    root.setLevel(saved_level)
    events = logging.getLogger("portwatch.events")
    events.handlers.clear()
    events.propagate = True
    events.setLevel(logging.NOTSET)
