"""
Main FMM Module

Implements the Fast Multipole Method for the 2D logarithmic potential on a
uniform quadtree over the unit square.

The solve runs as a strict sequence of passes over the per-level cell
arrays:

    1. Upward pass:      P2M at the leaves, M2M up to level 2
    2. Downward pass 1:  M2L from every cell's interaction list
    3. Downward pass 2:  L2L from parents to children, plus the child's own
                         interaction-list contribution
    4. Evaluation:       local expansion at each target (regular part) plus
                         direct summation over the near field (singular part)
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Union
import numpy as np

from .tree import Tree, TreeConfig
from .cell import Cell
from .particle import Point, as_complex_points, check_unit_square
from .expansion import ExpansionKernel
from ..kernels import LogKernel


class FMMState(Enum):
    """Progress of a solve. Passes must run in declaration order."""
    UNBUILT = "unbuilt"
    LEAF_POPULATED = "leaf_populated"
    UPWARD_COMPLETE = "upward_complete"
    DOWNWARD1_COMPLETE = "downward1_complete"
    DOWNWARD2_COMPLETE = "downward2_complete"
    EVALUATED = "evaluated"


class FMM:
    """
    Fast Multipole Method for the 2D logarithmic potential.

    Computes, for every target y_j,

        v_j = sum_i u_i * ln|y_j - x_i|

    over the sources x_i with charges u_i, skipping coincident pairs.

    Complexity: O(N p^2) per solve for a fixed number of points per leaf.
    """

    def __init__(self, sources: Union[np.ndarray, List],
                 targets: Union[np.ndarray, List],
                 config: Optional[TreeConfig] = None):
        """
        Initialize FMM and build the tree.

        Args:
            sources: Source coordinates, complex (N,) or real (N, 2)
            targets: Target coordinates, complex (M,) or real (M, 2)
            config: Tree configuration (optional)
        """
        if config is None:
            config = TreeConfig()

        self.log = logging.getLogger(self.__class__.__module__)
        self.config = config
        self.state = FMMState.UNBUILT

        self.source_coords = as_complex_points(sources)
        self.target_coords = as_complex_points(targets)
        check_unit_square(self.source_coords, "sources")
        check_unit_square(self.target_coords, "targets")

        self.expansion = ExpansionKernel(config.order)
        self.kernel = LogKernel()

        # Instrumentation only; the algorithm never reads these.
        self.num_ops_indirect = 0
        self.num_ops_direct = 0

        self._charges: Optional[np.ndarray] = None

        self.tree = Tree(
            [Point(complex(c), i) for i, c in enumerate(self.source_coords)],
            [Point(complex(c), i) for i, c in enumerate(self.target_coords)],
            config,
        )
        self.state = FMMState.LEAF_POPULATED

    @property
    def order(self) -> int:
        return self.config.order

    @property
    def num_sources(self) -> int:
        return self.source_coords.shape[0]

    @property
    def num_targets(self) -> int:
        return self.target_coords.shape[0]

    def cluster_threshold(self) -> int:
        """Maximum number of source or target points in any leaf cell."""
        return self.tree.cluster_threshold()

    def _require(self, expected: FMMState, step: str):
        if self.state is not expected:
            raise RuntimeError(
                f"Cannot run {step} in state '{self.state.value}'; "
                f"expected '{expected.value}'"
            )

    def _check_charges(self, charges: Union[np.ndarray, List]) -> np.ndarray:
        charges = np.asarray(charges, dtype=np.float64).ravel()
        if charges.shape[0] != self.num_sources:
            raise ValueError(
                f"Expected {self.num_sources} charges, got {charges.shape[0]}"
            )
        return charges

    def reset(self):
        """Zero all expansions so the engine can be solved again."""
        self.tree.reset()
        self._charges = None
        self.state = FMMState.LEAF_POPULATED

    def solve(self, charges: Union[np.ndarray, List]) -> np.ndarray:
        """
        Compute all target potentials using FMM.

        Args:
            charges: One charge per source point

        Returns:
            Array of potentials, one per target, in input order
        """
        self._require(FMMState.LEAF_POPULATED, "solve")
        self._charges = self._check_charges(charges)

        self.log.debug("Starting upward pass")
        self._upward_pass()
        self.log.debug("Starting downward pass 1")
        self._downward_pass_1()
        self.log.debug("Starting downward pass 2")
        self._downward_pass_2()
        self.log.debug("Evaluating %d targets", self.num_targets)
        potentials = self._evaluate()

        self.log.info(
            "FMM solve: %d sources, %d targets, %d levels, p=%d, %d indirect ops",
            self.num_sources, self.num_targets, self.config.num_levels,
            self.order, self.num_ops_indirect
        )
        return potentials

    def _upward_pass(self):
        """
        Upward pass: Build multipole expansions from leaves to level 2.

        1. P2M: Charge-weighted multipole coefficients of each leaf's sources
           about the leaf center
        2. M2M: Translate every cell's expansion to its parent's center
        """
        self._require(FMMState.LEAF_POPULATED, "upward pass")
        p = self.order

        for leaf in self.tree.leaves:
            center = leaf.center
            for source in leaf.sources:
                coeffs = self.expansion.multipole_coeffs(source.coord, center)
                leaf.accumulate_multipole(self._charges[source.index] * coeffs)
                self.num_ops_indirect += 2 * p + 1

        for level in range(self.tree.leaf_level, 2, -1):
            parents = self.tree.get_cells_at_level(level - 1)
            for cell in self.tree.get_cells_at_level(level):
                parent = parents[cell.parent_index()]
                parent.accumulate_multipole(
                    self.expansion.m2m(cell.center, parent.center, cell.multipole)
                )
                self.num_ops_indirect += p * p + p

        self.state = FMMState.UPWARD_COMPLETE

    def _downward_pass_1(self):
        """
        Downward pass 1: Convert interaction-list multipoles to local
        expansions (M2L), for every level from 2 to the leaves.
        """
        self._require(FMMState.UPWARD_COMPLETE, "downward pass 1")
        p = self.order

        for level in range(2, self.tree.num_levels):
            cells = self.tree.get_cells_at_level(level)
            for cell in cells:
                center = cell.center
                for source_index in cell.interaction_list():
                    source_cell = cells[source_index]
                    cell.accumulate_translated_local(
                        self.expansion.m2l(source_cell.center, center,
                                           source_cell.multipole)
                    )
                    self.num_ops_indirect += p * p + p

        self.state = FMMState.DOWNWARD1_COMPLETE

    def _downward_pass_2(self):
        """
        Downward pass 2: Propagate local expansions down the tree (L2L).

        At level 2 the interaction list already covers everything outside
        the near field, so the local expansion is the translated one. Below,
        each child receives its parent's local expansion re-centered on the
        child plus its own interaction-list contribution.
        """
        self._require(FMMState.DOWNWARD1_COMPLETE, "downward pass 2")
        p = self.order

        if self.tree.num_levels > 2:
            for cell in self.tree.get_cells_at_level(2):
                cell.accumulate_local(cell.translated_local)
                self.num_ops_indirect += p

        for level in range(2, self.tree.leaf_level):
            children = self.tree.get_cells_at_level(level + 1)
            for cell in self.tree.get_cells_at_level(level):
                center = cell.center
                for child_index in cell.children_indices():
                    child = children[child_index]
                    child.accumulate_local(
                        self.expansion.l2l(center, child.center, cell.local)
                    )
                    child.accumulate_local(child.translated_local)
                    self.num_ops_indirect += p * p + 2 * p

        self.state = FMMState.DOWNWARD2_COMPLETE

    def _near_field(self, leaf: Cell) -> List[Point]:
        """Sources in the leaf and its neighbors."""
        leaves = self.tree.leaves
        sources = list(leaf.sources)
        for neighbor_index in leaf.neighbors():
            sources.extend(leaves[neighbor_index].sources)
        return sources

    def _evaluate(self) -> np.ndarray:
        """
        Evaluate every target: regular part from the leaf's local expansion
        (L2P) plus singular part by direct summation over the near field
        (P2P).
        """
        self._require(FMMState.DOWNWARD2_COMPLETE, "evaluation")
        p = self.order
        potentials = np.zeros(self.num_targets, dtype=np.float64)

        for leaf in self.tree.leaves:
            if not leaf.targets:
                continue

            center = leaf.center
            near_sources = self._near_field(leaf)
            source_coords = np.array([s.coord for s in near_sources],
                                     dtype=np.complex128)
            source_charges = self._charges[[s.index for s in near_sources]]

            target_coords = np.array([t.coord for t in leaf.targets],
                                     dtype=np.complex128)
            singular = self.kernel.direct_sum(target_coords, source_coords,
                                              source_charges)

            for target, singular_part in zip(leaf.targets, singular):
                regular_part = self.expansion.evaluate_local(
                    target.coord, center, leaf.local
                )
                potentials[target.index] = regular_part + singular_part

            self.num_ops_indirect += len(leaf.targets) * (2 * p + len(near_sources))

        self.state = FMMState.EVALUATED
        return potentials

    def solve_direct(self, charges: Union[np.ndarray, List]) -> np.ndarray:
        """
        Compute potentials directly (O(N*M)) for validation.

        Does not touch the tree and may be called in any state.

        Args:
            charges: One charge per source point

        Returns:
            Array of exact potentials, one per target, in input order
        """
        charges = self._check_charges(charges)
        potentials = self.kernel.direct_sum(self.target_coords,
                                            self.source_coords, charges)
        self.num_ops_direct += self.num_sources * self.num_targets
        return potentials

    def get_error_estimate(self, potentials: np.ndarray,
                           charges: Optional[Union[np.ndarray, List]] = None,
                           reference: Optional[np.ndarray] = None) -> Dict[str, float]:
        """
        Estimate FMM error compared to direct computation.

        Either the reference potentials or the charges to compute them from
        must be given; a given reference takes precedence.

        Args:
            potentials: Potentials returned by solve
            charges: Source charges used for the solve (optional)
            reference: Reference potentials from direct computation (optional)

        Returns:
            Dictionary with error metrics
        """
        if reference is None:
            if charges is None:
                raise ValueError("Need either reference potentials or charges")
            reference = self.solve_direct(charges)
        reference = np.asarray(reference, dtype=np.float64).ravel()

        fmm_result = np.asarray(potentials, dtype=np.float64).ravel()
        if fmm_result.shape != (self.num_targets,) or reference.shape != fmm_result.shape:
            raise ValueError(
                f"Expected {self.num_targets} potentials, got "
                f"{fmm_result.shape[0]} and {reference.shape[0]} reference values"
            )

        abs_error = np.abs(fmm_result - reference)
        rel_error = abs_error / (np.abs(reference) + 1e-14)

        return {
            'max_absolute_error': float(np.max(abs_error)),
            'mean_absolute_error': float(np.mean(abs_error)),
            'max_relative_error': float(np.max(rel_error)),
            'mean_relative_error': float(np.mean(rel_error)),
            'l2_error': float(np.linalg.norm(fmm_result - reference) /
                              (np.linalg.norm(reference) + 1e-14)),
        }

    def get_statistics(self) -> dict:
        """Tree statistics plus operation counters."""
        stats = self.tree.get_statistics()
        stats.update({
            'order': self.order,
            'state': self.state.value,
            'num_ops_indirect': self.num_ops_indirect,
            'num_ops_direct': self.num_ops_direct,
            'num_cached_matrices': self.expansion.num_cached_matrices(),
        })
        return stats

    def __repr__(self) -> str:
        return (f"FMM(sources={self.num_sources}, targets={self.num_targets}, "
                f"levels={self.config.num_levels}, p={self.order}, "
                f"state={self.state.value})")
