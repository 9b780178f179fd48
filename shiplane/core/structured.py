"""Helpers for reading untyped TOML/JSON tables.

Used at the boundaries where ``shiplane.toml``, the workstation manifest or
a webhook response enter the program.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    if is_str_dict(obj):
        return obj
    return None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    return as_str_dict(table.get(key))


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Return a stripped string, or None when missing, not a str, or blank."""
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_float(table: Mapping[str, object], key: str) -> float | None:
    value = table.get(key)
    # bool is an int subclass; a TOML `true` is never a timeout.
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def get_str_list(table: Mapping[str, object], key: str) -> list[str] | None:
    """Return the non-blank string items of a list value.

    A comma separated string is accepted too, so `groups = "qa, beta"` and
    `groups = ["qa", "beta"]` read the same. Returns None when the key is
    missing or has another type.
    """
    value = table.get(key)
    if isinstance(value, str):
        return split_csv(value)
    if not isinstance(value, list):
        return None
    items = cast(list[object], value)
    return [s.strip() for s in items if isinstance(s, str) and s.strip()]


def split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]
