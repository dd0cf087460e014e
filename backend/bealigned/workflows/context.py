# /bealigned/workflows/context.py

"""
Context merging for the reflection flow.

The text generator returns an untrusted, loosely-typed slot extraction.
This module validates it at the boundary (unknown keys dropped, values
coerced to the slot's type or left unset) and merges it into the
accumulated context.

Merge rules:
- Shallow overwrite per key; unset values never erase anything
- Keys already filled by earlier phases are frozen
- Merging the same extraction twice gives the same context as merging once

All functions are pure and never raise on malformed extraction input.
"""

import math
from typing import Any, Dict, Iterable, List, Optional

from bealigned.models.flow import SlotValue
from bealigned.workflows.definitions import SLOTS
from bealigned.workflows.validator import slot_is_filled


def _coerce_text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)):
        return str(value) if math.isfinite(value) else None
    if isinstance(value, (list, tuple)):
        parts = [_coerce_text(item) for item in value]
        joined = "; ".join(part for part in parts if part)
        return joined or None
    return None


def _coerce_list(value: Any) -> Optional[List[str]]:
    if isinstance(value, (list, tuple)):
        items = [_coerce_text(item) for item in value]
        items = [item for item in items if item]
        return items or None
    text = _coerce_text(value)
    return [text] if text else None


def coerce_slot_value(slot_key: str, value: Any) -> Optional[SlotValue]:
    """Coerce a raw value to the slot's declared type, or None if unusable."""
    slot = SLOTS.get(slot_key)
    if slot is None:
        return None
    if slot.is_list:
        return _coerce_list(value)
    return _coerce_text(value)


def coerce_slot_updates(raw: Any) -> Dict[str, SlotValue]:
    """
    Validate a raw extraction payload.

    Anything that is not a mapping yields no updates. Unknown keys and values
    that cannot be coerced are dropped.
    """
    if not isinstance(raw, dict):
        return {}

    updates: Dict[str, SlotValue] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            continue
        key = key.strip()
        coerced = coerce_slot_value(key, value)
        if coerced is not None:
            updates[key] = coerced
    return updates


def merge_context(
    existing: Dict[str, SlotValue],
    extracted: Dict[str, Any],
    writable: Optional[Iterable[str]] = None,
) -> Dict[str, SlotValue]:
    """
    Merge extracted slot values into the existing context.

    Args:
        existing: Context accumulated so far (not mutated)
        extracted: Slot updates, raw or already coerced
        writable: Keys that may overwrite an existing value (the current
            phase's slots). Filled keys outside this set are frozen. When
            None, every key may be overwritten.

    Returns:
        A new context dictionary
    """
    merged: Dict[str, SlotValue] = dict(existing or {})
    writable_keys = set(writable) if writable is not None else None

    for key, value in coerce_slot_updates(extracted).items():
        already_filled = slot_is_filled(merged.get(key))
        if already_filled and writable_keys is not None and key not in writable_keys:
            continue
        merged[key] = value
    return merged
