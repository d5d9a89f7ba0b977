"""
Tree Module

Implements the complete uniform quadtree used by the FMM.

The tree is an arena of cells: one list per level, each holding all 4^level
cells in Morton order, so ``cells_by_level[level][index]`` is the cell with
that Morton index. Empty cells are legal and carry no points.
"""

import logging
from typing import List
import numpy as np
from dataclasses import dataclass

from .cell import Cell
from .morton import num_cells
from .particle import Point

MAX_LEVEL = 8


@dataclass
class TreeConfig:
    """Configuration for tree construction."""
    num_levels: int = 3          # Number of levels; leaves live on level num_levels - 1
    order: int = 12              # Truncation order p of the expansions

    def __post_init__(self):
        """Validate configuration."""
        if not 1 <= self.num_levels <= MAX_LEVEL:
            raise ValueError(
                f"Number of levels must be in [1, {MAX_LEVEL}], got {self.num_levels}"
            )
        if self.order < 2:
            raise ValueError("Expansion order must be at least 2")

    @property
    def leaf_level(self) -> int:
        return self.num_levels - 1


class Tree:
    """
    Complete quadtree over the unit square.

    Source and target points are sorted into the cells of the leaf level;
    cells on coarser levels hold no points, only expansion coefficients.
    """

    def __init__(self, sources: List[Point], targets: List[Point], config: TreeConfig):
        """
        Initialize the tree and sort the points into the leaf cells.

        Args:
            sources: Source points
            targets: Target points
            config: Tree configuration parameters
        """
        self.log = logging.getLogger(self.__class__.__module__)
        self.sources = sources
        self.targets = targets
        self.config = config
        self.cells_by_level: List[List[Cell]] = []

        self._build_tree()

    @property
    def num_levels(self) -> int:
        return self.config.num_levels

    @property
    def leaf_level(self) -> int:
        return self.config.leaf_level

    @property
    def leaves(self) -> List[Cell]:
        return self.cells_by_level[self.leaf_level]

    def _build_tree(self):
        """Allocate every level and insert the points at the leaf level."""
        self.cells_by_level = [
            [Cell(level=level, index=index, order=self.config.order)
             for index in range(num_cells(level))]
            for level in range(self.num_levels)
        ]

        leaves = self.leaves
        for point in self.sources:
            leaves[point.box_index(self.leaf_level)].add_source(point)
        for point in self.targets:
            leaves[point.box_index(self.leaf_level)].add_target(point)

        self.log.debug("Built %r", self)

    def get_cells_at_level(self, level: int) -> List[Cell]:
        """Get all cells at a specific level."""
        return self.cells_by_level[level]

    def get_cell(self, level: int, index: int) -> Cell:
        """Get the cell with a given Morton index at a given level."""
        return self.cells_by_level[level][index]

    def cluster_threshold(self) -> int:
        """
        Maximum number of source or target points in any leaf cell.

        Used to pick a refinement level fine enough to keep the near-field
        direct work bounded.
        """
        threshold = 0
        for leaf in self.leaves:
            threshold = max(threshold, leaf.num_sources, leaf.num_targets)
        return threshold

    def reset(self):
        """Zero the expansion coefficients of every cell."""
        for cells in self.cells_by_level:
            for cell in cells:
                cell.reset()

    def get_statistics(self) -> dict:
        """
        Compute and return tree statistics.

        Returns:
            Dictionary with tree statistics
        """
        num_cells_total = sum(len(level) for level in self.cells_by_level)
        occupancy = [leaf.num_sources + leaf.num_targets for leaf in self.leaves]

        return {
            'num_sources': len(self.sources),
            'num_targets': len(self.targets),
            'num_cells': num_cells_total,
            'num_leaves': len(self.leaves),
            'num_empty_leaves': sum(1 for leaf in self.leaves if leaf.is_empty),
            'num_levels': self.num_levels,
            'avg_points_per_leaf': float(np.mean(occupancy)),
            'cluster_threshold': self.cluster_threshold(),
        }

    def __repr__(self) -> str:
        return (f"Tree(levels={self.num_levels}, "
                f"sources={len(self.sources)}, "
                f"targets={len(self.targets)}, "
                f"leaves={len(self.leaves)})")
