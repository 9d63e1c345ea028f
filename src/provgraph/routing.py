"""Route flattened entries to typed groups by identifier code."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Final

from provgraph.flatten import FlatEntry

logger = logging.getLogger(__name__)

ENVIRONMENT_KEY: Final[str] = "environment"


class EntryCode(StrEnum):
    """Identifier codes used by rdt/rdtLite entry ids."""

    PROCESS = "p"
    DATA = "d"
    FUNCTION = "f"
    PROC_PROC = "pp"
    PROC_DATA = "pd"
    DATA_PROC = "dp"
    FUNC_PROC = "fp"
    FUNC_LIB = "m"
    AGENT = "a"
    LIBRARY = "l"


# Longer codes first so that "pp1" is never read as code "p".
_CODE_RE: Final[re.Pattern[str]] = re.compile(
    "^(?P<code>"
    + "|".join(re.escape(code.value) for code in sorted(EntryCode, key=lambda c: -len(c.value)))
    + r")\d"
)


def classify(key: str) -> EntryCode | None:
    """Return the code of an entry id, or ``None`` when it carries none.

    An id belongs to code ``X`` when it starts with ``X`` immediately followed
    by a digit.

    Returns
    -------
    EntryCode | None
        Matched code.
    """
    match = _CODE_RE.match(key)
    if match is None:
        return None
    return EntryCode(match.group("code"))


@dataclass(frozen=True)
class RoutedEntries:
    """Entries partitioned by code, plus the environment body."""

    groups: Mapping[EntryCode, tuple[FlatEntry, ...]]
    environment: Mapping[str, object] | None = None
    unrouted: tuple[str, ...] = field(default=())

    def group(self, code: EntryCode) -> tuple[FlatEntry, ...]:
        """Return the entries for ``code`` in document order.

        Returns
        -------
        tuple[FlatEntry, ...]
            Entries for the code; empty when none were routed.
        """
        return self.groups.get(code, ())


def route_entries(entries: Iterable[FlatEntry]) -> RoutedEntries:
    """Partition entries into code groups.

    Parameters
    ----------
    entries
        Flattened entries in document order.

    Returns
    -------
    RoutedEntries
        Groups keyed by code with order preserved inside each group.
    """
    buckets: dict[EntryCode, list[FlatEntry]] = {code: [] for code in EntryCode}
    environment: Mapping[str, object] | None = None
    unrouted: list[str] = []
    for entry in entries:
        if entry.key == ENVIRONMENT_KEY and isinstance(entry.body, dict):
            if environment is None:
                environment = entry.body
            else:
                logger.debug("Ignoring duplicate environment entry in section %r", entry.section)
            continue
        code = classify(entry.key)
        if code is None:
            unrouted.append(entry.key)
            continue
        buckets[code].append(entry)
    if unrouted:
        logger.debug("%d entries matched no identifier code: %s", len(unrouted), unrouted[:10])
    return RoutedEntries(
        groups=MappingProxyType({code: tuple(items) for code, items in buckets.items()}),
        environment=environment,
        unrouted=tuple(unrouted),
    )


__all__ = ["ENVIRONMENT_KEY", "EntryCode", "RoutedEntries", "classify", "route_entries"]
