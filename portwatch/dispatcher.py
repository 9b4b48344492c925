# portwatch - Action dispatcher and round trigger
from __future__ import annotations

import logging
import re

from portwatch.executor import CommandExecutor
from portwatch.models import ActionTag, Diff, Granularity, WatchConfig, split_item

logger = logging.getLogger("portwatch.dispatcher")
# One line per action: "[OK]  ADD: 0.0.0.0:8080". Formatted and routed to
# stdout by main.setup_logging when -v is given.
events = logging.getLogger("portwatch.events")

PLACEHOLDER_RE = re.compile(r"%([pn])")


def render(template: str, item: str, granularity: Granularity) -> str:
    """Substitute %p (port) and %n (address) in an action template.

    Substituted text is never scanned again, so an address can't inject a
    placeholder. With port granularity only %p is known; %n stays as-is.
    """
    address, port = split_item(item)

    def _sub(m: re.Match[str]) -> str:
        if m.group(1) == "p":
            return port
        if granularity is Granularity.ENDPOINT:
            return address
        return m.group(0)

    return PLACEHOLDER_RE.sub(_sub, template)


def _event(ok: bool, tag: ActionTag, subject: str) -> None:
    events.info("[%s]  %s: %s", "OK" if ok else "ERR", tag.value, subject)


class ActionDispatcher:
    def __init__(self, config: WatchConfig, executor: CommandExecutor) -> None:
        self.config = config
        self._executor = executor

    async def run_action(self, item: str, template: str, tag: ActionTag) -> bool:
        command = render(template, item, self.config.granularity)
        try:
            ok = await self._executor.run(command, tag.value)
        except Exception as e:
            logger.error("%s action for %s failed to run: %s", tag.value, item, e)
            ok = False
        _event(ok, tag, item)
        return ok

    async def dispatch(self, diff: Diff) -> tuple[int, int]:
        """Run every add action, then every del action. Returns (ran, succeeded)."""
        ran = succeeded = 0
        for item in diff.sorted_added():
            ran += 1
            if await self.run_action(item, self.config.add_action, ActionTag.ADD):
                succeeded += 1
        for item in diff.sorted_removed():
            ran += 1
            if await self.run_action(item, self.config.del_action, ActionTag.DEL):
                succeeded += 1
        return ran, succeeded

    async def run_trigger(self, template: str | None, outcome: bool) -> bool | None:
        """Run the trigger once if configured and any action succeeded.

        Returns None when the trigger was not run, else its result.
        """
        if not template or not outcome:
            return None
        try:
            ok = await self._executor.run(template, ActionTag.TRIGGER.value)
        except Exception as e:
            logger.error("Trigger failed to run: %s", e)
            ok = False
        _event(ok, ActionTag.TRIGGER, template)
        return ok
