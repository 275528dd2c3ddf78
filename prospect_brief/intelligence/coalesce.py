"""
Field coalescing helpers for heterogeneous upstream JSON.

Upstream tools disagree on field names, nesting and value shapes. These
helpers look values up across ordered alias lists and never raise on a
missing or oddly-shaped field.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

# Vendor-name fragments that are infrastructure artifacts rather than vendors
HOSTNAME_NOISE = ("awsglobalaccelerator.com", "placeholder", "cdn-")

LABEL_KEYS = ("name", "title", "category", "label")

_MMDDYY = re.compile(r"^(\d{2})/(\d{2})/(\d{2})$")
_CENTURY_PIVOT = 70

Path = Union[str, Tuple[str, ...]]


def coalesce(*values: Any) -> Any:
    """First value that is not None."""
    return next((v for v in values if v is not None), None)


def first_present(source: Any, *keys: str) -> Any:
    """Return the value of the first key whose value is not None."""
    if not isinstance(source, Mapping):
        return None
    for key in keys:
        value = source.get(key)
        if value is not None:
            return value
    return None


def dig(source: Any, *path: str) -> Any:
    """Nested lookup, None as soon as a level is missing."""
    current = source
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def pick_array(source: Any, keys: Iterable[str]) -> List[Any]:
    """Return the first value among ``keys`` that is a list, else []."""
    if not isinstance(source, Mapping):
        return []
    for key in keys:
        value = source.get(key)
        if isinstance(value, list):
            return value
    return []


def find_list(source: Any, *paths: Path) -> Optional[List[Any]]:
    """
    First list found at one of ``paths``, or None when no path holds a list.

    An empty list still counts as found.
    """
    for path in paths:
        keys = (path,) if isinstance(path, str) else path
        value = dig(source, *keys)
        if isinstance(value, list):
            return value
    return None


def first_list(source: Any, *paths: Path) -> List[Any]:
    """Like ``pick_array`` but each candidate may be a nested key path."""
    found = find_list(source, *paths)
    return [] if found is None else found


def head(value: Any, n: int) -> List[Any]:
    """First ``n`` items of a list, [] for anything else."""
    return list(value[:n]) if isinstance(value, list) else []


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def as_number(value: Any, default: Any = 0) -> Any:
    """Numeric coercion for accumulators and sort keys."""
    if is_number(value):
        return value
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return default
        if not math.isfinite(number):
            return default
        return int(number) if number.is_integer() else number
    return default


def to_label(value: Any) -> str:
    """Human-readable label from a string, a number or a labelled object."""
    if isinstance(value, str):
        return value
    if is_number(value):
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, Mapping):
        label = first_present(value, *LABEL_KEYS)
        if isinstance(label, str) or is_number(label):
            return to_label(label)
    return ""


def to_iso_date_from_mmddyy(value: Optional[str]) -> Optional[str]:
    """
    Rewrite ``MM/DD/YY`` as ``YYYY-MM-DD``.

    Two-digit years from 70 map to 19xx, the rest to 20xx. Anything that does
    not match is returned unchanged, including None.
    """
    if not isinstance(value, str):
        return value
    match = _MMDDYY.match(value)
    if not match:
        return value
    mm, dd, yy = match.groups()
    century = "19" if int(yy) >= _CENTURY_PIVOT else "20"
    return f"{century}{yy}-{mm}-{dd}"


def looks_like_hostname_noise(vendor_name: str, denylist: Sequence[str] = HOSTNAME_NOISE) -> bool:
    value = vendor_name.lower()
    return any(fragment in value for fragment in denylist)


def normalize_vendor_name(name: str) -> str:
    # Display value: trim only, no case folding
    return name.strip()
