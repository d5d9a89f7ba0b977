"""
2D Fast Multipole Method

Fast evaluation of the 2D logarithmic (Coulomb) potential

    v_j = sum_i u_i * ln|y_j - x_i|

for sources x_i and targets y_j in the unit square, in O(N) work for a
fixed expansion order.

This package includes:
- Morton (Z-order) indexing of a complete quadtree
- Multipole (S) and local (R) series of the complex logarithm
- Exact M2M and L2L translations and the truncating M2L conversion
- Upward/downward pass engine with direct near-field correction
- O(N^2) direct reference solver for validation
"""

from .core import (
    Point,
    Cell,
    Tree,
    TreeConfig,
    ExpansionKernel,
    M2M,
    M2L,
    L2L,
    FMM,
    FMMState,
    interleave,
    uninterleave,
    uniform_grid,
    select_num_levels,
)
from .kernels import (
    Kernel,
    LogKernel,
)

__version__ = '0.1.0'

__all__ = [
    # Core classes
    'Point',
    'Cell',
    'Tree',
    'TreeConfig',
    'ExpansionKernel',
    'M2M',
    'M2L',
    'L2L',
    'FMM',
    'FMMState',
    # Spatial indexing
    'interleave',
    'uninterleave',
    # Problem setup
    'uniform_grid',
    'select_num_levels',
    # Kernels
    'Kernel',
    'LogKernel',
]
