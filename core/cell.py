"""
Cell Module

Represents a cell (box) of the uniform quadtree used by the FMM.

Cells are not linked to each other by references. A cell is identified by
its refinement level and its Morton index, and every relationship (parent,
children, neighbors, interaction list) is computed as a list of Morton
indices into the per-level cell arrays owned by the tree.
"""

from typing import List, Set
import numpy as np
from dataclasses import dataclass, field

from .morton import (
    uninterleave,
    parent_index,
    children_indices,
    neighbor_indices,
)
from .particle import Point


@dataclass
class Cell:
    """
    A square box of side 2^-level in the unit square.

    Attributes:
        level: Refinement level (0 = whole domain)
        index: Morton index within the level
        order: Truncation order p of the expansions
        sources: Source points inside the cell (leaf level only)
        targets: Target points inside the cell (leaf level only)
        multipole: Multipole (S) coefficients, accumulated bottom-up
        translated_local: Local (R) coefficients converted from the
            interaction list
        local: Local (R) coefficients accumulated top-down
    """
    level: int
    index: int
    order: int
    sources: List[Point] = field(default_factory=list)
    targets: List[Point] = field(default_factory=list)

    def __post_init__(self):
        """Allocate the coefficient vectors."""
        self.multipole = np.zeros(self.order, dtype=np.complex128)
        self.translated_local = np.zeros(self.order, dtype=np.complex128)
        self.local = np.zeros(self.order, dtype=np.complex128)

    @property
    def size(self) -> float:
        """Side length of the cell."""
        return 2.0 ** (-self.level)

    @property
    def center(self) -> complex:
        """Center of the cell as a complex number."""
        x, y = uninterleave(self.index, self.level)
        return complex(x + 0.5, y + 0.5) * self.size

    @property
    def num_sources(self) -> int:
        return len(self.sources)

    @property
    def num_targets(self) -> int:
        return len(self.targets)

    @property
    def is_empty(self) -> bool:
        return not self.sources and not self.targets

    def add_source(self, point: Point):
        self.sources.append(point)

    def add_target(self, point: Point):
        self.targets.append(point)

    def _check_increment(self, increment: np.ndarray) -> np.ndarray:
        increment = np.asarray(increment, dtype=np.complex128)
        if increment.shape != (self.order,):
            raise ValueError(
                f"Expected {self.order} coefficients, got shape {increment.shape}"
            )
        return increment

    def accumulate_multipole(self, increment: np.ndarray):
        """Add an increment to the multipole coefficients."""
        self.multipole += self._check_increment(increment)

    def accumulate_translated_local(self, increment: np.ndarray):
        """Add an increment to the interaction-list local coefficients."""
        self.translated_local += self._check_increment(increment)

    def accumulate_local(self, increment: np.ndarray):
        """Add an increment to the accumulated local coefficients."""
        self.local += self._check_increment(increment)

    def reset(self):
        """Zero all coefficient vectors. Points are kept."""
        self.multipole.fill(0.0)
        self.translated_local.fill(0.0)
        self.local.fill(0.0)

    def parent_index(self) -> int:
        """Morton index of the parent cell."""
        assert self.level >= 1, "The root cell has no parent"
        return parent_index(self.index)

    def children_indices(self) -> List[int]:
        """Morton indices of the four children."""
        return children_indices(self.index)

    def neighbors(self) -> List[int]:
        """
        Morton indices of the up to 8 same-level cells touching this one.

        Together with the cell itself they form the near field, which is
        evaluated by direct summation.
        """
        return neighbor_indices(self.index, self.level)

    def parent_neighbors(self) -> List[int]:
        """Morton indices (one level up) of the neighbors of the parent."""
        return neighbor_indices(self.parent_index(), self.level - 1)

    def interaction_list(self) -> List[int]:
        """
        Get the interaction list: children of the parent's neighbors that
        are not neighbors of this cell.

        These cells are well separated from this cell, but their parents are
        not well separated from its parent, so their multipole expansions are
        converted to local expansions at this level (M2L).

        Only defined from level 2 on.

        Returns:
            Morton indices (same level) of the interaction list
        """
        assert self.level >= 2, \
            f"No interaction list at level {self.level}"

        own_neighbors: Set[int] = set(self.neighbors())

        interaction_list = []
        for parent_neighbor in self.parent_neighbors():
            for child in children_indices(parent_neighbor):
                if child not in own_neighbors:
                    interaction_list.append(child)

        return interaction_list

    def __repr__(self) -> str:
        return (f"Cell(level={self.level}, idx={self.index}, "
                f"center=({self.center.real:.4f}, {self.center.imag:.4f}), "
                f"n_src={self.num_sources}, n_tgt={self.num_targets})")
