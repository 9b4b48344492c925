# portwatch - Ignore filter: ports excluded from every snapshot
from __future__ import annotations

from typing import Any, Iterable

from portwatch.models import ConfigError


def parse_ignore_ports(value: str | Iterable[Any] | None) -> frozenset[str]:
    """Parse "80,443" (or a YAML list of ports) into an ignore set.

    Whitespace around tokens is stripped and empty tokens are dropped, so
    "80, 443," and ["80", 443] both give {"80", "443"}.
    """
    if value is None:
        return frozenset()
    if isinstance(value, (str, int)):
        tokens = str(value).split(",")
    else:
        tokens = [str(v) for v in value]
    out: set[str] = set()
    for raw in tokens:
        tok = raw.strip()
        if not tok:
            continue
        if not tok.isdigit() or not 1 <= int(tok) <= 65535:
            raise ConfigError(f"invalid port in ignore list: {tok!r}")
        out.add(str(int(tok)))
    return frozenset(out)


def should_ignore(item_port: str, ignore_set: frozenset[str]) -> bool:
    # Whole-token match only: ignoring "80" never hides "8080" or "180".
    return item_port in ignore_set
