"""
Expansion Module

Defines the series expansions of the 2D logarithmic potential and the
ExpansionKernel, which bundles the series with the translation operators
for a fixed truncation order p.

For a unit source at x_i and an expansion center x*:

    multipole (S, valid for |y - x*| > |x_i - x*|):
        ln(y - x_i) = sum_m b_m S_m(y - x*),   b_0 = 1, b_m = -(x_i - x*)^m / m

    local (R, valid for |y - x*| < |x_i - x*|):
        ln(y - x_i) = sum_m a_m (y - x*)^m,   a_0 = ln(x* - x_i),
                                              a_m = -1 / (m (x_i - x*)^m)

with S_0(z) = ln z and S_m(z) = z^-m. The physical potential is the real
part of the complex logarithm.
"""

import numpy as np

from .operators import M2M, M2L, L2L
from ..kernels import LogKernel


class ExpansionKernel:
    """
    Series coefficients, translations and evaluations for truncation order p.

    All coefficient vectors produced or consumed have exactly p complex
    entries, entry k holding series term k.
    """

    def __init__(self, order: int):
        """
        Initialize the kernel.

        Args:
            order: Truncation order p
        """
        if order < 2:
            raise ValueError("Expansion order must be at least 2")
        self.order = order
        self._m2m = M2M(order)
        self._m2l = M2L(order)
        self._l2l = L2L(order)
        self._kernel = LogKernel()
        self._powers = np.arange(order)

    def multipole_coeffs(self, source: complex, center: complex) -> np.ndarray:
        """
        Multipole (S) coefficients of a unit source about a center.

        Args:
            source: Source position
            center: Expansion center

        Returns:
            Coefficients b_0..b_{p-1}
        """
        z = complex(source) - complex(center)
        coeffs = np.empty(self.order, dtype=np.complex128)
        coeffs[0] = 1.0
        m = self._powers[1:]
        coeffs[1:] = -(z ** m) / m
        return coeffs

    def local_coeffs(self, source: complex, center: complex) -> np.ndarray:
        """
        Local (R) coefficients of a unit source about a center.

        The center must not coincide with the source.

        Args:
            source: Source position
            center: Expansion center

        Returns:
            Coefficients a_0..a_{p-1}
        """
        z = complex(source) - complex(center)
        if z == 0:
            raise ValueError("Local expansion center coincides with the source")

        coeffs = np.empty(self.order, dtype=np.complex128)
        coeffs[0] = np.log(-z)
        m = self._powers[1:]
        coeffs[1:] = -1.0 / (m * z ** m)
        return coeffs

    def m2m(self, source_center: complex, target_center: complex,
            coeffs: np.ndarray) -> np.ndarray:
        """Re-center a multipole expansion (S|S)."""
        return self._m2m.apply(source_center, target_center, coeffs)

    def m2l(self, source_center: complex, target_center: complex,
            coeffs: np.ndarray) -> np.ndarray:
        """Convert a multipole expansion into a local expansion (S|R)."""
        return self._m2l.apply(source_center, target_center, coeffs)

    def l2l(self, source_center: complex, target_center: complex,
            coeffs: np.ndarray) -> np.ndarray:
        """Re-center a local expansion (R|R)."""
        return self._l2l.apply(source_center, target_center, coeffs)

    def num_cached_matrices(self) -> int:
        """Number of distinct translation matrices built so far."""
        return (self._m2m.num_cached_matrices + self._m2l.num_cached_matrices +
                self._l2l.num_cached_matrices)

    def regular_vector(self, point: complex, center: complex) -> np.ndarray:
        """R-basis at a point: [(point - center)^k for k < p]."""
        z = complex(point) - complex(center)
        return z ** self._powers

    def singular_vector(self, point: complex, center: complex) -> np.ndarray:
        """S-basis at a point: [ln z, z^-1, ..., z^-(p-1)], z = point - center."""
        z = complex(point) - complex(center)
        basis = np.empty(self.order, dtype=np.complex128)
        basis[0] = np.log(z)
        basis[1:] = z ** -self._powers[1:].astype(np.float64)
        return basis

    def evaluate_local(self, target: complex, center: complex,
                       coeffs: np.ndarray) -> float:
        """
        Evaluate a local expansion.

        Returns:
            Re sum_k coeffs[k] (target - center)^k
        """
        return float(np.dot(coeffs, self.regular_vector(target, center)).real)

    def evaluate_multipole(self, target: complex, center: complex,
                           coeffs: np.ndarray) -> float:
        """
        Evaluate a multipole expansion away from its sources.

        Returns:
            Re (coeffs[0] ln z + sum_{m>=1} coeffs[m] z^-m), z = target - center
        """
        return float(np.dot(coeffs, self.singular_vector(target, center)).real)

    def direct(self, target: complex, source: complex) -> complex:
        """
        Exact kernel ln(target - source).

        Coincident points contribute exactly zero.
        """
        return self._kernel.complex_potential(source, target)
