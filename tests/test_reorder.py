"""Tests for directional reorder math."""

import pytest

from automation_builder.builder import DropDirection, compute_insert_index, reorder
from automation_builder.errors import ValidationError

ITEMS = ["A", "B", "C", "D"]


class TestReorder:
    """Tests for reorder()."""

    def test_downward_lands_after_target(self):
        """Dragging A onto C places A after C."""
        assert reorder(ITEMS, 0, 2) == ["B", "C", "A", "D"]

    def test_upward_lands_before_target(self):
        """Dragging D onto B places D before B."""
        assert reorder(ITEMS, 3, 1) == ["A", "D", "B", "C"]

    def test_drop_onto_self_is_noop(self):
        """Dropping a step onto itself changes nothing."""
        assert reorder(ITEMS, 1, 1) == ITEMS

    def test_drop_onto_self_with_direction_is_noop(self):
        """An explicit side does not move a step dropped onto itself."""
        assert reorder(ITEMS, 1, 1, DropDirection.DOWN) == ITEMS

    def test_input_not_mutated(self):
        """reorder returns a new list."""
        items = list(ITEMS)
        reorder(items, 0, 3)
        assert items == ITEMS

    def test_last_position(self):
        """Dragging to the last step moves to the end."""
        assert reorder(ITEMS, 0, 3) == ["B", "C", "D", "A"]

    def test_first_position(self):
        """Dragging to the first step moves to the front."""
        assert reorder(ITEMS, 3, 0) == ["D", "A", "B", "C"]

    def test_target_clamped(self):
        """Out-of-range targets clamp to the ends."""
        assert reorder(ITEMS, 0, 99) == ["B", "C", "D", "A"]
        assert reorder(ITEMS, 2, -5) == ["C", "A", "B", "D"]

    def test_explicit_before_when_dragging_down(self):
        """UP drop side places the step before a lower target."""
        assert reorder(ITEMS, 0, 2, DropDirection.UP) == ["B", "A", "C", "D"]

    def test_explicit_before_adjacent_is_noop(self):
        """Dropping before the next step leaves the order alone."""
        assert reorder(ITEMS, 0, 1, DropDirection.UP) == ITEMS

    def test_explicit_after_when_dragging_up(self):
        """DOWN drop side places the step after a higher target."""
        assert reorder(ITEMS, 3, 1, DropDirection.DOWN) == ["A", "B", "D", "C"]

    def test_from_out_of_range(self):
        """An invalid source index is rejected."""
        with pytest.raises(ValidationError):
            reorder(ITEMS, 4, 0)


class TestComputeInsertIndex:
    """Tests for compute_insert_index()."""

    def test_matches_target_without_direction(self):
        """The derived side inserts at the target index."""
        for from_index in range(4):
            for target in range(4):
                if from_index != target:
                    assert compute_insert_index(from_index, target, 4) == target
