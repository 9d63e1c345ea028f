"""Tolerant value coercion for loosely typed provenance fields."""

from __future__ import annotations

_TRUE_TEXT = frozenset({"true", "t", "1", "yes"})
_FALSE_TEXT = frozenset({"false", "f", "0", "no"})


def coerce_int(value: object) -> int | None:
    """Coerce value to int, returning None for unconvertible values.

    Returns
    -------
    int | None
        Coerced integer or None if conversion fails.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            try:
                return int(stripped)
            except ValueError:
                # R writes integer arguments as "5" but also "5.0" on occasion.
                as_float = coerce_float(stripped)
                if as_float is not None and as_float.is_integer():
                    return int(as_float)
                return None
    return None


def coerce_float(value: object) -> float | None:
    """Coerce value to float, returning None for unconvertible values.

    Returns
    -------
    float | None
        Coerced float or None if conversion fails.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            try:
                return float(stripped)
            except ValueError:
                return None
    return None


def coerce_bool(value: object) -> bool | None:
    """Coerce value to bool, returning None for unconvertible values.

    Accepts R logical spellings (``TRUE``/``FALSE``/``T``/``F``) in any case.

    Returns
    -------
    bool | None
        Coerced bool or None if conversion fails.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return bool(value)
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in _TRUE_TEXT:
            return True
        if lower in _FALSE_TEXT:
            return False
    return None


def coerce_str(value: object) -> str | None:
    """Coerce value to string, returning None for None.

    Booleans are rendered as R logicals so that label/value tables read the
    same way the producing tool wrote them.

    Returns
    -------
    str | None
        Coerced string or None if value is None.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


__all__ = [
    "coerce_bool",
    "coerce_float",
    "coerce_int",
    "coerce_str",
]
