from datetime import datetime
from typing import Protocol, TypeVar


class Orderable(Protocol):
    order: int
    created_at: datetime


T = TypeVar("T", bound=Orderable)


def sort_key(item: Orderable) -> tuple[int, datetime]:
    return item.order, item.created_at


def sorted_by_order(items: list[T]) -> list[T]:
    return sorted(items, key=sort_key)


def normalize_order(items: list[T]) -> None:
    """Assign dense order values (0, 1, 2, ...) following list position."""
    for rank, item in enumerate(items):
        if item.order != rank:
            item.order = rank


def move_within(siblings: list[T], item: T, offset: int) -> bool:
    """Swap an item with its neighbour and renormalize the sibling list.

    Args:
        siblings: Every item sharing the scope of ``item``, in any order
        item: The item to move
        offset: -1 to move towards the start, +1 towards the end

    Returns:
        True if the item moved, False if it was already at the boundary
    """
    ordered = sorted_by_order(siblings)
    index = next((i for i, other in enumerate(ordered) if other is item), -1)
    target = index + offset
    if index == -1 or not 0 <= target < len(ordered):
        return False

    ordered[index], ordered[target] = ordered[target], ordered[index]
    normalize_order(ordered)
    return True


def move_to(siblings: list[T], item: T, position: int) -> bool:
    """Reinsert an item at a position and renormalize the sibling list."""
    ordered = sorted_by_order(siblings)
    index = next((i for i, other in enumerate(ordered) if other is item), -1)
    if index == -1 or not 0 <= position < len(ordered):
        return False

    ordered.insert(position, ordered.pop(index))
    normalize_order(ordered)
    return True
