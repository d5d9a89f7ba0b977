"""
Problems Module

Synthetic problem setup and refinement-level selection for the FMM.
"""

import logging
from typing import Tuple
import numpy as np

from .tree import Tree, TreeConfig, MAX_LEVEL
from .particle import Point, as_complex_points, check_unit_square

log = logging.getLogger(__name__)


def uniform_grid(num_levels: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Uniform test problem on the unit square.

    The square is divided into 2^(num_levels-1) cells per side and each cell
    receives four points, a quarter of the cell length in from each corner.
    Sources and targets are the same points and every charge is one.

    Args:
        num_levels: Number of tree levels the grid is designed for (>= 1)

    Returns:
        Tuple (sources, targets, charges); points are complex arrays of
        length 4^num_levels, charges a float array of the same length
    """
    if num_levels < 1:
        raise ValueError("Number of levels must be at least 1")

    cells_per_side = 2 ** (num_levels - 1)
    cell_length = 1.0 / cells_per_side
    offsets = np.array([0.25 + 0.25j, 0.75 + 0.25j, 0.25 + 0.75j, 0.75 + 0.75j])

    # row-major over cells, four points per cell
    iy, ix = np.divmod(np.arange(cells_per_side * cells_per_side), cells_per_side)
    corners = ix + 1j * iy
    sources = ((corners[:, None] + offsets[None, :]) * cell_length).ravel()

    targets = sources.copy()
    charges = np.ones(sources.shape[0], dtype=np.float64)
    return sources, targets, charges


def select_num_levels(sources: np.ndarray, targets: np.ndarray,
                      max_cluster: int = 5, order: int = 12,
                      min_levels: int = 3, max_levels: int = MAX_LEVEL) -> int:
    """
    Pick the coarsest tree whose leaves hold at most max_cluster points.

    Trial trees are built for min_levels, min_levels+1, ... and the first one
    whose cluster threshold does not exceed max_cluster wins. If none does,
    max_levels is returned.

    Args:
        sources: Source coordinates, complex (N,) or real (N, 2)
        targets: Target coordinates, complex (M,) or real (M, 2)
        max_cluster: Maximum number of source or target points per leaf
        order: Truncation order used for the trial trees
        min_levels: First number of levels to try
        max_levels: Upper bound on the number of levels

    Returns:
        Number of levels to use
    """
    sources = as_complex_points(sources)
    targets = as_complex_points(targets)
    check_unit_square(sources, "sources")
    check_unit_square(targets, "targets")

    source_points = [Point(complex(c), i) for i, c in enumerate(sources)]
    target_points = [Point(complex(c), i) for i, c in enumerate(targets)]

    for num_levels in range(min_levels, max_levels):
        trial = Tree(source_points, target_points,
                     TreeConfig(num_levels=num_levels, order=order))
        threshold = trial.cluster_threshold()
        log.debug("Trial tree with %d levels: cluster threshold %d",
                  num_levels, threshold)
        if threshold <= max_cluster:
            return num_levels

    return max_levels
