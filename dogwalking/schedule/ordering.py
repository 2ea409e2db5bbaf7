"""Reordering helpers for user-arranged sequences (media picks, walk lists)."""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")


def move_item(sequence: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Return a copy of ``sequence`` with one item moved to ``to_index``.

    ``to_index`` is the position the item occupies in the result.
    """

    items = list(sequence)
    size = len(items)
    if not -size <= from_index < size or not -size <= to_index < size:
        raise IndexError(f"Cannot move item {from_index} to {to_index} in a sequence of {size}")
    item = items.pop(from_index)
    # Resolve a negative destination against the original length
    if to_index < 0:
        to_index += size
    items.insert(to_index, item)
    return items
