# portwatch - Listening socket collector (netstat / ss / psutil backends)
from __future__ import annotations

import shutil
import subprocess
from typing import Any, Iterable, Protocol

from portwatch.ignore import should_ignore
from portwatch.models import (
    Backend,
    BackendParseError,
    BackendUnavailable,
    Granularity,
    WatchConfig,
)

logger = __import__("logging").getLogger("portwatch.collector.sockets")

# Addresses that mean "every interface"
WILDCARD_ADDRESSES = {"", "*", "::", "0.0.0.0"}
ANY_ADDRESS = "0.0.0.0"

BACKEND_COMMANDS: dict[Backend, list[str]] = {
    Backend.NETSTAT: ["netstat", "-tln"],
    Backend.SS: ["ss", "-tln"],
}


class SnapshotSource(Protocol):
    def capture(self, ignore_set: frozenset[str]) -> frozenset[str]: ...


def normalize_address(address: str) -> str:
    # ss appends the interface zone after the brackets: 127.0.0.53%lo, [fe80::1]%eth0
    address = address.split("%", 1)[0].strip("[]")
    if address in WILDCARD_ADDRESSES:
        return ANY_ADDRESS
    return address


def parse_local_address(local: str) -> tuple[str, str]:
    """Split a local address column ("0.0.0.0:22", ":::22", "[::1]:631", "*:80")."""
    if ":" not in local:
        raise BackendParseError(f"local address without port: {local!r}")
    address, port = local.rsplit(":", 1)
    if not port.isdigit():
        raise BackendParseError(f"non-numeric port in local address: {local!r}")
    return normalize_address(address), str(int(port))


def _to_item(address: str, port: str, granularity: Granularity) -> str:
    if granularity is Granularity.PORT:
        return port
    return f"{address}:{port}"


def build_snapshot(
    pairs: Iterable[tuple[str, str]],
    granularity: Granularity,
    ignore_set: frozenset[str],
) -> frozenset[str]:
    return frozenset(
        _to_item(address, port, granularity)
        for address, port in pairs
        if not should_ignore(port, ignore_set)
    )


def parse_netstat(stdout: str) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for line in stdout.strip().split("\n"):
        parts = line.split()
        if len(parts) < 6 or not parts[0].startswith("tcp") or parts[-1] != "LISTEN":
            continue
        out.append(parse_local_address(parts[3]))
    return out


def parse_ss(stdout: str) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for line in stdout.strip().split("\n"):
        parts = line.split()
        if len(parts) < 4 or parts[0] != "LISTEN":
            continue
        out.append(parse_local_address(parts[3]))
    return out


PARSERS = {
    Backend.NETSTAT: parse_netstat,
    Backend.SS: parse_ss,
}


class CommandSource:
    """Run netstat or ss and parse its tabular output."""

    def __init__(self, backend: Backend, granularity: Granularity, timeout: float = 10) -> None:
        self.backend = backend
        self.granularity = granularity
        self._cmd = BACKEND_COMMANDS[backend]
        self._parser = PARSERS[backend]
        self._timeout = timeout

    def check_available(self) -> None:
        if shutil.which(self._cmd[0]) is None:
            raise BackendUnavailable(f"{self._cmd[0]} not found in PATH")

    def capture(self, ignore_set: frozenset[str]) -> frozenset[str]:
        try:
            r = subprocess.run(self._cmd, capture_output=True, text=True, timeout=self._timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise BackendUnavailable(f"cannot run {' '.join(self._cmd)}: {e}") from e
        if r.returncode != 0:
            raise BackendUnavailable(
                f"{' '.join(self._cmd)} exited with status {r.returncode}: {r.stderr.strip()[:200]}"
            )
        pairs = self._parser(r.stdout)
        logger.debug("%s reported %d listening sockets", self._cmd[0], len(pairs))
        return build_snapshot(pairs, self.granularity, ignore_set)


class PsutilSource:
    """List TCP listeners through psutil instead of parsing a utility's output."""

    backend = Backend.PSUTIL

    def __init__(self, granularity: Granularity) -> None:
        self.granularity = granularity

    def check_available(self) -> None:
        return None

    def capture(self, ignore_set: frozenset[str]) -> frozenset[str]:
        import psutil

        try:
            conns: list[Any] = psutil.net_connections(kind="tcp")
        except (psutil.AccessDenied, OSError) as e:
            raise BackendUnavailable(f"psutil cannot list sockets: {e}") from e
        pairs: list[tuple[str, str]] = []
        for c in conns:
            if c.status != psutil.CONN_LISTEN or not c.laddr:
                continue
            ip = c.laddr.ip if hasattr(c.laddr, "ip") else c.laddr[0]
            port = c.laddr.port if hasattr(c.laddr, "port") else c.laddr[1]
            pairs.append((normalize_address(ip), str(port)))
        return build_snapshot(pairs, self.granularity, ignore_set)


def make_source(config: WatchConfig) -> CommandSource | PsutilSource:
    if config.backend is Backend.PSUTIL:
        return PsutilSource(config.granularity)
    return CommandSource(config.backend, config.granularity)
