"""
Tests for Morton Indexing

Tests the bit-interleaving bijection between cell offsets and cell indices,
and the parent/child/neighbor relations derived from it.
"""

import pytest
import numpy as np

from fmm2d.core.morton import (
    interleave,
    uninterleave,
    parent_index,
    children_indices,
    neighbor_indices,
    num_cells,
)
from fmm2d.core.particle import Point, coincident


class TestInterleave:
    """Test encoding and decoding of Morton indices."""

    def test_known_values(self):
        """Test hand-computed Morton indices."""
        assert interleave(1, 0, 3) == 2
        assert interleave(0, 1, 3) == 1
        assert interleave(7, 2, 3) == 46
        assert uninterleave(46, 3) == (7, 2)

    def test_origin_is_zero(self):
        """Test that the lower-left cell is index 0 on every level."""
        for level in range(0, 9):
            assert interleave(0, 0, level) == 0
            assert uninterleave(0, level) == (0, 0)

    @pytest.mark.parametrize("level", [1, 2, 3, 4, 5])
    def test_round_trip_exhaustive(self, level):
        """Test uninterleave(interleave(x, y)) == (x, y) for every cell."""
        side = 2 ** level
        for x in range(side):
            for y in range(side):
                assert uninterleave(interleave(x, y, level), level) == (x, y)

    @pytest.mark.parametrize("level", [6, 7, 8])
    def test_round_trip_sampled(self, level):
        """Test the round trip on random cells of deep levels."""
        np.random.seed(level)
        side = 2 ** level
        for x, y in np.random.randint(0, side, size=(200, 2)):
            assert uninterleave(interleave(int(x), int(y), level), level) == (x, y)

    def test_bijection(self):
        """Test that the indices of a level are exactly 0..4^level - 1."""
        level = 3
        indices = {interleave(x, y, level) for x in range(8) for y in range(8)}
        assert indices == set(range(num_cells(level)))

    def test_deeper_than_eight_levels(self):
        """Python integers do not limit the number of levels."""
        level = 12
        x, y = 4095, 1234
        assert uninterleave(interleave(x, y, level), level) == (x, y)

    def test_out_of_range_offsets(self):
        """Test that offsets outside the level are rejected."""
        with pytest.raises(AssertionError):
            interleave(8, 0, 3)
        with pytest.raises(AssertionError):
            interleave(0, -1, 3)
        with pytest.raises(AssertionError):
            uninterleave(64, 3)


class TestRelations:
    """Test parent, child and neighbor relations."""

    def test_parent_of_children(self):
        """Test that every child maps back to its parent."""
        for index in range(num_cells(3)):
            children = children_indices(index)
            assert len(children) == 4
            assert all(parent_index(child) == index for child in children)

    def test_children_are_quadrants(self):
        """Test that children subdivide the parent geometrically."""
        level = 2
        for index in range(num_cells(level)):
            x, y = uninterleave(index, level)
            offsets = {uninterleave(c, level + 1) for c in children_indices(index)}
            assert offsets == {(2 * x + dx, 2 * y + dy) for dx in (0, 1) for dy in (0, 1)}

    def test_neighbor_counts(self):
        """Test corner, edge and interior cells."""
        level = 3
        assert len(neighbor_indices(interleave(0, 0, level), level)) == 3
        assert len(neighbor_indices(interleave(7, 7, level), level)) == 3
        assert len(neighbor_indices(interleave(0, 4, level), level)) == 5
        assert len(neighbor_indices(interleave(3, 4, level), level)) == 8

    def test_neighbors_touch(self):
        """Test that neighbors differ by at most one cell in each direction."""
        level = 3
        for index in range(num_cells(level)):
            x, y = uninterleave(index, level)
            for neighbor in neighbor_indices(index, level):
                nx, ny = uninterleave(neighbor, level)
                assert max(abs(nx - x), abs(ny - y)) == 1

    @pytest.mark.parametrize("level", [1, 2, 3, 4])
    def test_neighbor_symmetry(self, level):
        """Test b is a neighbor of a exactly when a is a neighbor of b."""
        for a in range(num_cells(level)):
            for b in neighbor_indices(a, level):
                assert a in neighbor_indices(b, level)

    def test_level_one_neighbors(self):
        """On level 1 every cell touches the three others."""
        for index in range(4):
            assert sorted(neighbor_indices(index, 1)) == sorted(set(range(4)) - {index})


class TestPoint:
    """Test point equality and cell lookup."""

    def test_box_index(self):
        """Test the leaf cell a point falls into."""
        point = Point(0.30 + 0.80j, index=5)
        # floor(0.3 * 8) = 2, floor(0.8 * 8) = 6
        assert point.box_index(3) == interleave(2, 6, 3)
        assert point.box_index(0) == 0

    def test_approximate_equality(self):
        """Test that round-off differences still compare equal."""
        a = Point(0.1 + 0.2j, 0)
        b = Point(complex(0.3 - 0.2, 0.2), 1)
        c = Point(0.1 + 0.2000001j, 2)

        assert a.coord != b.coord
        assert a.equals(b)
        assert not a.equals(c)
        assert coincident(0.5 + 0.5j, 0.5 + 0.5j)
