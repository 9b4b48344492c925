# portwatch - Command executor: run action strings through the shell
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Protocol

logger = logging.getLogger("portwatch.executor")


class CommandExecutor(Protocol):
    async def run(self, command: str, tag: str = "") -> bool: ...


class ShellExecutor:
    """Hand a command string to /bin/sh; exit status 0 means success.

    Commands come straight from the operator's configuration and are run
    with full shell syntax (pipes, redirections, variables). Whoever can
    edit the configuration can run anything as this process's user.
    """

    def __init__(self, timeout: float | None = None, activity: Any = None) -> None:
        self._timeout = timeout
        self._activity = activity

    async def run(self, command: str, tag: str = "") -> bool:
        t0 = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.debug("Could not start %r: %s", command, e)
            await self._record(command, -1, "", str(e), time.perf_counter() - t0, tag)
            return False
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            logger.warning("Command timed out after %ss: %s", self._timeout, command)
            await self._record(command, -1, "", "timeout", time.perf_counter() - t0, tag)
            return False
        exit_code = proc.returncode if proc.returncode is not None else -1
        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")
        duration = time.perf_counter() - t0
        logger.debug("%r exited %d in %.3fs stdout=%r stderr=%r", command, exit_code, duration, out[:200], err[:200])
        await self._record(command, exit_code, out, err, duration, tag)
        return exit_code == 0

    async def _record(
        self,
        command: str,
        exit_code: int,
        out: str,
        err: str,
        duration: float,
        tag: str,
    ) -> None:
        if self._activity:
            await self._activity.log_command_execution(command, exit_code, out, err, duration, source=tag)
