"""
FMM Core Module

This module contains the quadtree data structures, the series expansions and
translation operators, and the FMM engine for the 2D logarithmic potential.
"""

from .morton import (
    interleave,
    uninterleave,
    parent_index,
    children_indices,
    neighbor_indices,
    num_cells,
)
from .particle import Point, coincident, as_complex_points, check_unit_square
from .cell import Cell
from .tree import Tree, TreeConfig, MAX_LEVEL
from .operators import Operator, M2M, M2L, L2L
from .expansion import ExpansionKernel
from .fmm import FMM, FMMState
from .problems import uniform_grid, select_num_levels

__all__ = [
    'interleave',
    'uninterleave',
    'parent_index',
    'children_indices',
    'neighbor_indices',
    'num_cells',
    'Point',
    'coincident',
    'as_complex_points',
    'check_unit_square',
    'Cell',
    'Tree',
    'TreeConfig',
    'MAX_LEVEL',
    'Operator',
    'M2M',
    'M2L',
    'L2L',
    'ExpansionKernel',
    'FMM',
    'FMMState',
    'uniform_grid',
    'select_num_levels',
]
