# portwatch - Data models (WatchConfig, Diff, RoundResult) and error types
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# --- Enums ---


class Granularity(str, Enum):
    PORT = "port"  # "8080"
    ENDPOINT = "endpoint"  # "0.0.0.0:8080"


class Backend(str, Enum):
    NETSTAT = "netstat"
    SS = "ss"
    PSUTIL = "psutil"


class ActionTag(str, Enum):
    ADD = "ADD"
    DEL = "DEL"
    TRIGGER = "TRIGGER"


# --- Errors ---


class PortwatchError(Exception):
    """Base class for every error raised by portwatch."""


class ConfigError(PortwatchError):
    pass


class BackendError(PortwatchError):
    pass


class BackendUnavailable(BackendError):
    """The socket listing facility could not be invoked."""


class BackendParseError(BackendError):
    """The socket listing output held a malformed listening row."""


# --- Core entities ---


@dataclass(frozen=True)
class Diff:
    added: frozenset[str] = frozenset()
    removed: frozenset[str] = frozenset()

    @property
    def empty(self) -> bool:
        return not self.added and not self.removed

    def sorted_added(self) -> list[str]:
        return sorted(self.added)

    def sorted_removed(self) -> list[str]:
        return sorted(self.removed)


@dataclass
class RoundResult:
    round: int
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    actions_run: int = 0
    actions_ok: int = 0
    triggered: bool = False
    trigger_ok: bool | None = None
    skipped: bool = False
    error: str = ""

    @property
    def outcome(self) -> bool:
        return self.actions_ok > 0


@dataclass(frozen=True)
class WatchConfig:
    add_action: str
    del_action: str
    trigger_action: str | None = None
    ignore_ports: frozenset[str] = frozenset()
    granularity: Granularity = Granularity.ENDPOINT
    backend: Backend = Backend.NETSTAT
    interval_sec: int = 1
    verbose: bool = False
    name: str = "portwatch"
    exit_on_backend_error: bool = False
    command_timeout_sec: float | None = None
    activity_enabled: bool = False
    activity_file: str = ""


def split_item(item: str) -> tuple[str, str]:
    """Return (address, port) for an item; address is "" for bare ports."""
    if ":" not in item:
        return "", item
    address, port = item.rsplit(":", 1)
    return address, port
