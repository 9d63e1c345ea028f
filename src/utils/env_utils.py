"""Environment variable resolution for parse options."""

from __future__ import annotations

import logging
import os

_LOGGER = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "y", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "n", "off"})


def env_value(name: str) -> str | None:
    """Return the stripped value of ``name``, treating blank as unset.

    Returns
    -------
    str | None
        Stripped value or None.
    """
    raw = os.environ.get(name, "").strip()
    return raw or None


def env_list(name: str, *, default: list[str] | None = None, separator: str = ",") -> list[str]:
    """Split ``name`` into non-empty stripped items.

    Returns
    -------
    list[str]
        Items of the variable, or ``default`` when it is unset.
    """
    raw = env_value(name)
    if raw is None:
        return list(default or [])
    return [item.strip() for item in raw.split(separator) if item.strip()]


def env_bool(name: str, *, default: bool) -> bool:
    """Read ``name`` as a boolean flag.

    Unrecognized values log a warning and resolve to ``default``.

    Returns
    -------
    bool
        Parsed flag or ``default``.
    """
    raw = env_value(name)
    if raw is None:
        return default
    value = raw.lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    _LOGGER.warning("Invalid boolean for %s: %r; using %s", name, raw, default)
    return default


__all__ = ["env_bool", "env_list", "env_value"]
