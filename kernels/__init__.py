"""
FMM Kernels Module

Exact (un-approximated) kernels used for near-field direct summation and
for the O(N^2) reference solution.
"""

import numpy as np
from abc import ABC, abstractmethod
from scipy.spatial.distance import cdist

from ..core.particle import EPSILON, coincident


def _as_xy(points: np.ndarray) -> np.ndarray:
    """View complex points as an (N, 2) array of real coordinates."""
    points = np.asarray(points, dtype=np.complex128).ravel()
    return np.column_stack((points.real, points.imag))


class Kernel(ABC):
    """Abstract base class for kernel functions."""

    @abstractmethod
    def __call__(self, x: complex, y: complex) -> float:
        """
        Evaluate kernel G(x, y).

        Args:
            x: Source point (complex coordinates)
            y: Target point (complex coordinates)

        Returns:
            Kernel value
        """
        pass


class LogKernel(Kernel):
    """
    Logarithmic kernel of the 2D potential problem.

    G(x, y) = Re ln(y - x) = ln|y - x|

    Coincident points (within machine epsilon scaled by magnitude) do not
    interact: the kernel is defined to be zero there.
    """

    def __init__(self, block_size: int = 1024):
        """
        Initialize the kernel.

        Args:
            block_size: Number of target rows evaluated at once in
                direct_sum, bounding the size of the distance matrix
        """
        if block_size <= 0:
            raise ValueError("Block size must be positive")
        self.block_size = block_size

    def complex_potential(self, x: complex, y: complex) -> complex:
        """ln(y - x), or 0 for coincident points."""
        if coincident(x, y):
            return 0j
        return complex(np.log(complex(y) - complex(x)))

    def __call__(self, x: complex, y: complex) -> float:
        """Evaluate the logarithmic kernel."""
        return self.complex_potential(x, y).real

    def direct_sum(self, targets: np.ndarray, sources: np.ndarray,
                   charges: np.ndarray) -> np.ndarray:
        """
        Sum the kernel over all sources for every target.

        v_j = sum_i charges_i * ln|targets_j - sources_i|, skipping coincident
        pairs.

        Args:
            targets: Complex target coordinates (M,)
            sources: Complex source coordinates (N,)
            charges: Source charges (N,)

        Returns:
            Potentials at the targets (M,)
        """
        targets = np.asarray(targets, dtype=np.complex128).ravel()
        sources = np.asarray(sources, dtype=np.complex128).ravel()
        charges = np.asarray(charges, dtype=np.float64).ravel()

        potentials = np.zeros(targets.shape[0], dtype=np.float64)
        if targets.size == 0 or sources.size == 0:
            return potentials

        source_xy = _as_xy(sources)
        source_scale = np.maximum(1.0, np.abs(sources))

        for start in range(0, targets.shape[0], self.block_size):
            block = targets[start:start + self.block_size]
            distances = cdist(_as_xy(block), source_xy)

            tolerance = EPSILON * np.maximum(
                np.abs(block)[:, None], source_scale[None, :]
            )
            near = distances <= tolerance

            # coincident pairs get distance 1 so that ln contributes 0
            log_r = np.log(np.where(near, 1.0, distances))
            potentials[start:start + self.block_size] = log_r @ charges

        return potentials
