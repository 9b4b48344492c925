# portwatch - Snapshot differ
from __future__ import annotations

from typing import AbstractSet

from portwatch.models import Diff


def diff(previous: AbstractSet[str], current: AbstractSet[str]) -> Diff:
    """Items present now but not before are added; the reverse are removed."""
    return Diff(
        added=frozenset(current - previous),
        removed=frozenset(previous - current),
    )


def initial_diff(current: AbstractSet[str]) -> Diff:
    """First round: everything observed counts as added, nothing as removed."""
    return Diff(added=frozenset(current))
