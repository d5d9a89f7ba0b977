"""
Operators Module

Implements the three FMM translation operators for the 2D logarithmic
potential: M2M (S|S), M2L (S|R) and L2L (R|R).

Every operator is a p x p matrix that depends only on the complex
displacement t = target_center - source_center; applying the operator is a
matrix-vector product with the source coefficient vector. Matrices are
built column by column / row by row from closed-form recurrences, which
avoids factorials and large binomial coefficients. Each operator caches
its matrices by displacement.

Series conventions (z = y - center):
    S-expansion (multipole): S_0(z) = ln z,  S_m(z) = z^-m
    R-expansion (local):     R_m(z) = z^m
"""

from abc import ABC, abstractmethod
import numpy as np


class Operator(ABC):
    """
    Abstract base class for FMM translation operators.

    All operators implement a common interface for re-centering a
    coefficient vector from one expansion center to another.
    """

    def __init__(self, order: int):
        """
        Initialize the operator.

        Args:
            order: Truncation order p (number of coefficients)
        """
        self.order = order
        self._cached_matrices = {}

    @abstractmethod
    def matrix(self, t: complex) -> np.ndarray:
        """
        Build the p x p translation matrix.

        Args:
            t: Displacement target_center - source_center

        Returns:
            Complex matrix of shape (p, p)
        """
        pass

    def get_matrix(self, t: complex) -> np.ndarray:
        """
        Translation matrix for a displacement, cached by t.

        The returned array is shared between calls and is read-only.
        """
        t = complex(t)
        if t not in self._cached_matrices:
            mat = self.matrix(t)
            mat.setflags(write=False)
            self._cached_matrices[t] = mat
        return self._cached_matrices[t]

    @property
    def num_cached_matrices(self) -> int:
        return len(self._cached_matrices)

    def apply(self, source_center: complex, target_center: complex,
              coefficients: np.ndarray) -> np.ndarray:
        """
        Translate a coefficient vector.

        Args:
            source_center: Center the coefficients are expanded about
            target_center: New expansion center
            coefficients: Coefficient vector of length p

        Returns:
            Translated coefficient vector of length p
        """
        t = complex(target_center) - complex(source_center)
        return self.get_matrix(t) @ np.asarray(coefficients, dtype=np.complex128)


class M2M(Operator):
    """
    Multipole-to-Multipole translation operator (S|S).

    Re-centers a multipole expansion. Lower triangular with unit diagonal:

        M[n][0] = (-1)^(n+1) t^n / n                       n >= 1
        M[n][m] = (-1)^(n-m) C(n-1, m-1) t^(n-m)           1 <= m <= n

    The translation is exact: coefficient n of the result only depends on
    source coefficients m <= n, so truncation adds no error.
    """

    def matrix(self, t: complex) -> np.ndarray:
        p = self.order
        ss = np.zeros((p, p), dtype=np.complex128)
        np.fill_diagonal(ss, 1.0)

        # first column
        ss[1, 0] = t
        for i in range(2, p):
            ss[i, 0] = -ss[i - 1, 0] * t * (i - 1) / i

        # lower triangle, right to left from the diagonal
        for i in range(2, p):
            for j in range(i - 1, 0, -1):
                ss[i, j] = -ss[i, j + 1] * t * j / (i - j)

        return ss


class M2L(Operator):
    """
    Multipole-to-Local conversion operator (S|R).

    Converts a multipole expansion about the source center into a local
    expansion about the target center:

        M[0][0] = ln t
        M[n][0] = (-1)^(n+1) / (n t^n)                     n >= 1
        M[n][m] = (-1)^n C(n+m-1, n) / t^(n+m)             m >= 1

    This is the only step that truncates an infinite series, and it is only
    accurate when the target center is well separated from the source
    cluster (interaction-list cells).
    """

    def matrix(self, t: complex) -> np.ndarray:
        if t == 0:
            raise ValueError("M2L requires distinct source and target centers")

        p = self.order
        sr = np.zeros((p, p), dtype=np.complex128)

        sr[0, 0] = np.log(t)
        sr[1, 0] = 1.0 / t
        for i in range(2, p):
            sr[i, 0] = -sr[i - 1, 0] * (i - 1) / (i * t)

        # first row
        sr[0, 1:] = t ** -np.arange(1, p, dtype=np.float64)

        for i in range(1, p):
            for j in range(1, p):
                sr[i, j] = -sr[i - 1, j] * (i + j - 1) / (i * t)

        return sr


class L2L(Operator):
    """
    Local-to-Local translation operator (R|R).

    Re-centers a local expansion (from a parent center to a child center).
    Upper triangular with unit diagonal:

        M[k][n] = C(n, k) t^(n-k)                          n >= k

    Exact for the truncated polynomial.
    """

    def matrix(self, t: complex) -> np.ndarray:
        p = self.order
        rr = np.zeros((p, p), dtype=np.complex128)
        np.fill_diagonal(rr, 1.0)

        # first row
        for j in range(1, p):
            rr[0, j] = rr[0, j - 1] * t

        if t == 0:
            return rr

        for i in range(1, p):
            for j in range(i + 1, p):
                rr[i, j] = rr[i - 1, j] * (j - i + 1) / (t * i)

        return rr
