"""
Particle Module

Represents a single source or target point of the logarithmic potential
problem. Coordinates are stored as one complex number ``x + iy``.
"""

import math
from dataclasses import dataclass
from typing import List, Union

import numpy as np

from .morton import interleave

EPSILON = float(np.finfo(np.float64).eps)


def coincident(a: complex, b: complex) -> bool:
    """
    Check whether two points coincide up to floating point round-off.

    The tolerance is machine epsilon scaled by the larger magnitude (at least
    one), so bit-identical points produced by independent arithmetic paths
    still compare equal.
    """
    scale = max(1.0, abs(a), abs(b))
    return abs(a - b) <= EPSILON * scale


@dataclass(frozen=True, eq=False)
class Point:
    """
    A point in the unit square.

    Attributes:
        coord: Coordinates (x, y) packed as the complex number x + iy
        index: Position of the point in the caller's original point array;
            used to look up the charge of a source point
    """
    coord: complex
    index: int = 0

    @property
    def x(self) -> float:
        return self.coord.real

    @property
    def y(self) -> float:
        return self.coord.imag

    def equals(self, other: 'Point') -> bool:
        """Approximate equality of the coordinates."""
        return coincident(self.coord, other.coord)

    def box_index(self, level: int) -> int:
        """Morton index of the level-``level`` cell containing this point."""
        scale = 1 << level
        return interleave(math.floor(self.x * scale),
                          math.floor(self.y * scale),
                          level)

    def __repr__(self) -> str:
        return f"Point(id={self.index}, coord=({self.x:.6g}, {self.y:.6g}))"


def as_complex_points(points: Union[np.ndarray, List]) -> np.ndarray:
    """
    Normalize point input to a 1-D complex array.

    Accepts complex arrays (x + iy) or real arrays of shape (N, 2).
    """
    points = np.asarray(points)
    if np.iscomplexobj(points):
        return points.astype(np.complex128).ravel()

    points = points.astype(np.float64)
    if points.size == 0:
        return np.zeros(0, dtype=np.complex128)
    if points.ndim != 2 or points.shape[1] != 2:
        raise ValueError(
            f"Real point arrays must have shape (N, 2), got {points.shape}"
        )
    return points[:, 0] + 1j * points[:, 1]


def check_unit_square(points: np.ndarray, name: str):
    """Raise ValueError unless every point lies in [0, 1) x [0, 1)."""
    inside = ((points.real >= 0.0) & (points.real < 1.0) &
              (points.imag >= 0.0) & (points.imag < 1.0))
    if not np.all(inside):
        bad = int(np.flatnonzero(~inside)[0])
        raise ValueError(
            f"All {name} must lie in [0, 1) x [0, 1); "
            f"point {bad} is {points[bad]}"
        )
