"""
Tests for the Uniform Quadtree

Tests tree configuration, completeness of the per-level cell arrays and
the sorting of points into leaves.
"""

import pytest
import numpy as np

from fmm2d.core.tree import Tree, TreeConfig, MAX_LEVEL
from fmm2d.core.particle import Point
from fmm2d.core.problems import uniform_grid


def _points(coords):
    return [Point(complex(c), i) for i, c in enumerate(coords)]


@pytest.fixture
def random_points():
    np.random.seed(42)
    xy = np.random.rand(300, 2)
    return _points(xy[:, 0] + 1j * xy[:, 1])


class TestTreeConfig:
    """Test configuration validation."""

    def test_defaults(self):
        config = TreeConfig()
        assert config.num_levels == 3
        assert config.order == 12
        assert config.leaf_level == 2

    @pytest.mark.parametrize("num_levels", [0, -1, MAX_LEVEL + 1])
    def test_invalid_levels(self, num_levels):
        with pytest.raises(ValueError):
            TreeConfig(num_levels=num_levels)

    def test_invalid_order(self):
        with pytest.raises(ValueError):
            TreeConfig(order=1)


class TestTreeConstruction:
    """Test the cell arena and point insertion."""

    @pytest.mark.parametrize("num_levels", [1, 2, 4])
    def test_complete_levels(self, random_points, num_levels):
        """Test every level holds all 4^level cells in Morton order."""
        tree = Tree(random_points, random_points, TreeConfig(num_levels=num_levels))
        assert len(tree.cells_by_level) == num_levels
        for level in range(num_levels):
            cells = tree.get_cells_at_level(level)
            assert len(cells) == 4 ** level
            assert all(cell.index == i and cell.level == level
                       for i, cell in enumerate(cells))

    def test_points_in_their_leaf(self, random_points):
        """Test each point is stored once, in the leaf that contains it."""
        tree = Tree(random_points, random_points[:100], TreeConfig(num_levels=4))

        assert sum(leaf.num_sources for leaf in tree.leaves) == 300
        assert sum(leaf.num_targets for leaf in tree.leaves) == 100

        for leaf in tree.leaves:
            half = leaf.size / 2
            for point in leaf.sources + leaf.targets:
                assert abs(point.x - leaf.center.real) <= half
                assert abs(point.y - leaf.center.imag) <= half

    def test_coarse_cells_hold_no_points(self, random_points):
        tree = Tree(random_points, random_points, TreeConfig(num_levels=3))
        for level in range(tree.leaf_level):
            assert all(cell.is_empty for cell in tree.get_cells_at_level(level))

    def test_empty_leaves_allowed(self):
        """Test a single point leaves all other leaves empty."""
        points = _points([0.1 + 0.1j])
        tree = Tree(points, points, TreeConfig(num_levels=3))
        stats = tree.get_statistics()
        assert stats['num_empty_leaves'] == 15
        assert tree.cluster_threshold() == 1

    def test_get_cell(self, random_points):
        tree = Tree(random_points, random_points, TreeConfig(num_levels=3))
        assert tree.get_cell(2, 5) is tree.cells_by_level[2][5]


class TestClusterThreshold:
    """Test the maximum leaf occupancy on the uniform grid."""

    @pytest.mark.parametrize("num_levels,expected", [(4, 4), (3, 16), (5, 1)])
    def test_uniform_grid(self, num_levels, expected):
        sources, targets, _ = uniform_grid(4)
        tree = Tree(_points(sources), _points(targets),
                    TreeConfig(num_levels=num_levels))
        assert tree.cluster_threshold() == expected

    def test_statistics(self):
        sources, targets, _ = uniform_grid(3)
        tree = Tree(_points(sources), _points(targets), TreeConfig(num_levels=3))
        stats = tree.get_statistics()

        assert stats['num_sources'] == 64
        assert stats['num_targets'] == 64
        assert stats['num_cells'] == 1 + 4 + 16
        assert stats['num_leaves'] == 16
        assert stats['cluster_threshold'] == 4
        assert stats['avg_points_per_leaf'] == pytest.approx(8.0)

    def test_reset_keeps_points(self):
        sources, targets, _ = uniform_grid(3)
        tree = Tree(_points(sources), _points(targets), TreeConfig(num_levels=3))
        tree.leaves[0].accumulate_local(np.ones(tree.config.order))

        tree.reset()

        assert np.all(tree.leaves[0].local == 0)
        assert tree.cluster_threshold() == 4
