"""
Tests for the Logarithmic Kernel

Tests pointwise evaluation and blocked direct summation.
"""

import pytest
import numpy as np

from fmm2d.kernels import LogKernel
from fmm2d.core.particle import coincident


@pytest.fixture
def cloud():
    np.random.seed(42)
    sources = np.random.rand(60) + 1j * np.random.rand(60)
    targets = np.random.rand(40) + 1j * np.random.rand(40)
    charges = np.random.randn(60)
    return sources, targets, charges


class TestLogKernel:
    """Test pointwise kernel evaluation."""

    def test_value(self):
        kernel = LogKernel()
        assert np.isclose(kernel(0.1 + 0.1j, 0.4 + 0.5j), np.log(0.5))

    def test_symmetric(self):
        kernel = LogKernel()
        x, y = 0.2 + 0.7j, 0.9 + 0.3j
        assert kernel(x, y) == pytest.approx(kernel(y, x))

    def test_coincident_is_zero(self):
        kernel = LogKernel()
        assert kernel(0.5 + 0.5j, 0.5 + 0.5j) == 0.0
        assert kernel.complex_potential(0.5 + 0.5j, 0.5 + 0.5j) == 0j

    def test_invalid_block_size(self):
        with pytest.raises(ValueError):
            LogKernel(block_size=0)


class TestDirectSum:
    """Test blocked direct summation."""

    def test_matches_loop(self, cloud):
        sources, targets, charges = cloud
        kernel = LogKernel()

        expected = np.array([
            sum(q * kernel(x, y) for x, q in zip(sources, charges))
            for y in targets
        ])
        np.testing.assert_allclose(kernel.direct_sum(targets, sources, charges),
                                   expected, rtol=1e-12, atol=1e-12)

    def test_block_size_independent(self, cloud):
        sources, targets, charges = cloud
        small = LogKernel(block_size=7).direct_sum(targets, sources, charges)
        large = LogKernel().direct_sum(targets, sources, charges)
        np.testing.assert_allclose(small, large, rtol=1e-12, atol=1e-12)

    def test_self_interaction_skipped(self, cloud):
        """Sources evaluated at themselves stay finite."""
        sources, _, charges = cloud
        kernel = LogKernel()
        potentials = kernel.direct_sum(sources, sources, charges)

        assert np.all(np.isfinite(potentials))
        expected = sum(q * kernel(x, sources[0]) for x, q in zip(sources[1:], charges[1:]))
        assert potentials[0] == pytest.approx(expected, rel=1e-12)

    def test_round_off_coincidence(self):
        """Blocked and pointwise evaluation agree on which pairs coincide."""
        kernel = LogKernel()
        source = 0.1 + 0.2j
        target = complex(0.3 - 0.2, 0.2)

        assert source != target
        assert coincident(source, target)
        assert kernel(source, target) == 0.0
        assert kernel.direct_sum([target], [source], [1.0])[0] == 0.0

    def test_empty(self):
        kernel = LogKernel()
        assert kernel.direct_sum(np.zeros(0, dtype=complex), [0.5 + 0.5j], [1.0]).shape == (0,)
        np.testing.assert_array_equal(
            kernel.direct_sum([0.5 + 0.5j, 0.1 + 0.1j], np.zeros(0, dtype=complex), []),
            [0.0, 0.0]
        )
