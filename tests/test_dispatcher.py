# portwatch - Action dispatcher and trigger tests
import asyncio
import logging

from portwatch.dispatcher import ActionDispatcher, render
from portwatch.models import ActionTag, Diff, Granularity

from conftest import RecordingExecutor


def test_render_port_granularity():
    assert render("notify.sh -p %p", "8080", Granularity.PORT) == "notify.sh -p 8080"
    # %n is only known for endpoints
    assert render("x %p %n", "8080", Granularity.PORT) == "x 8080 %n"


def test_render_endpoint_granularity():
    assert render("notify.sh -p %p -n %n", "10.0.0.1:8080", Granularity.ENDPOINT) == "notify.sh -p 8080 -n 10.0.0.1"
    assert render("%n/%p", "::1:631", Granularity.ENDPOINT) == "::1/631"


def test_render_leaves_unknown_sequences_and_does_not_rescan():
    assert render("printf '%s %p%%'", "22", Granularity.PORT) == "printf '%s 22%%'"
    assert render("%n", "%p:22", Granularity.ENDPOINT) == "%p"


def test_dispatch_runs_adds_then_dels_sorted(port_config):
    ex = RecordingExecutor()
    d = ActionDispatcher(port_config, ex)
    diff = Diff(added=frozenset({"8080", "443"}), removed=frozenset({"80", "22"}))
    ran, ok = asyncio.run(d.dispatch(diff))
    assert (ran, ok) == (4, 4)
    assert ex.commands == ["echo ADD 443", "echo ADD 8080", "echo DEL 22", "echo DEL 80"]


def test_failed_action_does_not_stop_the_round(port_config):
    ex = RecordingExecutor(failing={"echo ADD 443"})
    d = ActionDispatcher(port_config, ex)
    ran, ok = asyncio.run(d.dispatch(Diff(added=frozenset({"443", "8080"}))))
    assert (ran, ok) == (2, 1)
    assert ex.commands == ["echo ADD 443", "echo ADD 8080"]


def test_executor_exception_counts_as_failure(port_config):
    class Broken:
        async def run(self, command, tag=""):
            raise RuntimeError("no shell")

    d = ActionDispatcher(port_config, Broken())
    assert asyncio.run(d.run_action("22", "echo %p", ActionTag.ADD)) is False
    assert asyncio.run(d.run_trigger("reload", True)) is False


def test_trigger_gated_on_outcome_and_template(port_config):
    ex = RecordingExecutor()
    d = ActionDispatcher(port_config, ex)
    assert asyncio.run(d.run_trigger(None, True)) is None
    assert asyncio.run(d.run_trigger("", True)) is None
    assert asyncio.run(d.run_trigger("reload %p", False)) is None
    assert ex.commands == []
    assert asyncio.run(d.run_trigger("reload %p", True)) is True
    # trigger text is literal
    assert ex.commands == ["reload %p"]


def test_trigger_failure_is_reported_not_raised(port_config):
    ex = RecordingExecutor(failing={"reload"})
    d = ActionDispatcher(port_config, ex)
    assert asyncio.run(d.run_trigger("reload", True)) is False


def test_event_lines(port_config, caplog):
    ex = RecordingExecutor(failing={"echo DEL 80"})
    d = ActionDispatcher(port_config, ex)
    with caplog.at_level(logging.INFO, logger="portwatch.events"):
        asyncio.run(d.dispatch(Diff(added=frozenset({"8080"}), removed=frozenset({"80"}))))
        asyncio.run(d.run_trigger("reload", True))
    assert [r.getMessage() for r in caplog.records if r.name == "portwatch.events"] == [
        "[OK]  ADD: 8080",
        "[ERR]  DEL: 80",
        "[OK]  TRIGGER: reload",
    ]
