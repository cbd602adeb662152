"""Identifier minting for scenes, stories and projects."""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Container, Iterable


def mint_id(prefix: str, taken: Container[str] = ()) -> str:
    """Return a fresh ``{prefix}_{millis}_{random}`` id not in ``taken``.

    The millisecond timestamp orders ids by creation; the random part
    keeps ids minted within the same millisecond apart.
    """
    while True:
        candidate = f"{prefix}_{time.time_ns() // 1_000_000}_{uuid.uuid4().hex[:8]}"
        if candidate not in taken:
            return candidate


def mint_id_map(temp_ids: Iterable[str], taken: Iterable[str], prefix: str = "scene") -> dict[str, str]:
    """Build a temp-id to fresh-id table for a batch of new scenes.

    Fresh ids are disjoint from ``taken`` and from each other.
    """
    reserved = set(taken)
    mapping: dict[str, str] = {}
    for temp_id in temp_ids:
        if temp_id in mapping:
            continue
        fresh = mint_id(prefix, reserved)
        mapping[temp_id] = fresh
        reserved.add(fresh)
    return mapping
