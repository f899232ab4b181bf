"""Directional reorder math for the step canvas.

Dropping a step onto another one places it *before* the target when the
drag moves upward and *after* the target's original position when it
moves downward. Both cases are computed against the list with the dragged
step already removed.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence, TypeVar

from automation_builder.errors import ValidationError

T = TypeVar("T")


class DropDirection(str, Enum):
    """Which side of the target the dragged step lands on."""

    UP = "up"
    DOWN = "down"


def drop_direction(from_index: int, target_index: int) -> DropDirection:
    return DropDirection.DOWN if target_index > from_index else DropDirection.UP


def compute_insert_index(
    from_index: int,
    target_index: int,
    length: int,
    direction: DropDirection | None = None,
) -> int:
    """Index in the post-removal list where the dragged step is inserted.

    Args:
        from_index: Current position of the dragged step
        target_index: Position of the step it was dropped onto
        length: Length of the list before the move
        direction: Drop side; derived from the drag direction when omitted

    Raises:
        ValidationError: if ``from_index`` is out of range
    """
    if not 0 <= from_index < length:
        raise ValidationError(f"Step index {from_index} out of range")

    target_index = max(0, min(target_index, length - 1))
    if direction is None:
        direction = drop_direction(from_index, target_index)

    # Target position once the dragged step has been taken out
    shifted = target_index - 1 if target_index > from_index else target_index
    insert_index = shifted + 1 if direction is DropDirection.DOWN else shifted
    return max(0, min(insert_index, length - 1))


def reorder(
    items: Sequence[T],
    from_index: int,
    target_index: int,
    direction: DropDirection | None = None,
) -> list[T]:
    """Return a new list with ``items[from_index]`` moved next to the target.

    A drop that would leave the step where it already is returns an
    unchanged copy.
    """
    result = list(items)
    insert_index = compute_insert_index(from_index, target_index, len(result), direction)
    if from_index == target_index or insert_index == from_index:
        return result

    moved = result.pop(from_index)
    result.insert(insert_index, moved)
    return result
