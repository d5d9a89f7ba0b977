"""
Morton Module

Z-order (Morton) indexing of the cells of a uniform quadtree on the unit square.

A cell at refinement level ``l`` is identified by its integer offsets
``(x, y)`` from the lower-left corner of the domain, in units of the cell
length ``2^-l``. The Morton index interleaves the bits of the two offsets,
x bits on odd positions and y bits on even positions, most significant
pair first:

    x = 7 = 0b111, y = 2 = 0b010, level = 3  ->  0b10 11 10 = 46

With this encoding the four children of a cell are ``(index << 2) + {0..3}``
and the parent of a cell is ``index >> 2``.
"""

from typing import List, Tuple


def _get_bit(n: int, pos: int) -> int:
    """Return bit ``pos`` of ``n`` (0 or 1)."""
    return (n >> pos) & 1


def interleave(x: int, y: int, level: int) -> int:
    """
    Encode a pair of cell offsets as a Morton index.

    Args:
        x: Horizontal offset of the cell, in [0, 2^level)
        y: Vertical offset of the cell, in [0, 2^level)
        level: Refinement level

    Returns:
        Morton index in [0, 4^level)
    """
    assert level >= 0, f"level must be non-negative, got {level}"
    assert 0 <= x < (1 << level) and 0 <= y < (1 << level), \
        f"offsets ({x}, {y}) out of range for level {level}"

    if x == 0 and y == 0:
        return 0

    index = 0
    for i in range(level):
        bit = level - i - 1
        index |= _get_bit(x, bit) << (2 * bit + 1)
        index |= _get_bit(y, bit) << (2 * bit)

    return index


def uninterleave(index: int, level: int) -> Tuple[int, int]:
    """
    Decode a Morton index into its pair of cell offsets.

    Exact inverse of :func:`interleave`.

    Args:
        index: Morton index in [0, 4^level)
        level: Refinement level

    Returns:
        Tuple (x, y) of integer cell offsets
    """
    assert level >= 0, f"level must be non-negative, got {level}"
    assert 0 <= index < num_cells(level), \
        f"index {index} out of range for level {level}"

    x = 0
    y = 0
    for i in range(level):
        bit = level - i - 1
        x |= _get_bit(index, 2 * bit + 1) << bit
        y |= _get_bit(index, 2 * bit) << bit

    return x, y


def num_cells(level: int) -> int:
    """Number of cells in a complete quadtree level."""
    return 1 << (2 * level)


def parent_index(index: int) -> int:
    """Morton index of the parent cell (one level up)."""
    return index >> 2


def children_indices(index: int) -> List[int]:
    """Morton indices of the four children (one level down)."""
    return [(index << 2) + k for k in range(4)]


def neighbor_indices(index: int, level: int) -> List[int]:
    """
    Morton indices of the same-level cells sharing an edge or a corner.

    Offsets falling outside the domain are discarded, so a corner cell has
    3 neighbors, an edge cell 5 and an interior cell 8.
    """
    x, y = uninterleave(index, level)
    side = 1 << level

    neighbors = []
    for dx in (-1, 0, 1):
        for dy in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            nx, ny = x + dx, y + dy
            if 0 <= nx < side and 0 <= ny < side:
                neighbors.append(interleave(nx, ny, level))

    return neighbors
