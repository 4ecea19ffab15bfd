# Copyright 2025 Allard Peper (Dragon Ace / DragonAceNL)
# Licensed under the Apache License, Version 2.0 (see LICENSE).
# This file is part of SmoothNormals.

"""
Spatial grouping of vertices that share a position.

Split-normal meshes store one vertex per face corner, so a single point on
the surface is often represented by several vertices. This module buckets
vertices by their discretized grid cell so those duplicates can be found
again. Only exact cell equality is used: there is no neighbor search, and
two coincident points that round into different grid cells stay apart.
"""

from collections.abc import Mapping
from typing import Iterator
import logging

import numpy as np

logger = logging.getLogger(__name__)

# Grid step used to discretize positions
POSITION_PRECISION = 1e-5

# Spatial hash primes
HASH_PRIME_X = 73856093
HASH_PRIME_Y = 19349663
HASH_PRIME_Z = 83492791


def _as_vertex_array(vertices) -> np.ndarray:
    array = np.asarray(vertices, dtype=np.float64)
    if array.size == 0:
        return array.reshape(0, 3)
    if array.ndim != 2 or array.shape[1] != 3:
        raise ValueError(f"Expected an (N, 3) vertex array, got shape {array.shape}")
    return array


def position_cells(vertices, precision: float = POSITION_PRECISION) -> np.ndarray:
    """
    Discretize positions onto the grid.

    Each coordinate is divided by ``precision`` and rounded to the nearest
    integer, ties to even.

    Returns:
        (N, 3) int64 array of grid cells
    """
    array = _as_vertex_array(vertices)
    return np.rint(array / precision).astype(np.int64)


def hash_positions(vertices, precision: float = POSITION_PRECISION) -> np.ndarray:
    """
    Compute the position key of every vertex.

    The grid cell integers from ``position_cells`` are combined as
    ``x*P1 ^ y*P2 ^ z*P3`` in 32-bit arithmetic. Overflow wraps. Distinct
    cells can share a key, so grouping compares cells rather than keys.

    Args:
        vertices: (N, 3) array-like of positions
        precision: Grid step

    Returns:
        (N,) int32 array of keys
    """
    cells = position_cells(vertices, precision).astype(np.int32)

    # int32 array arithmetic wraps silently
    hx = cells[:, 0] * np.int32(HASH_PRIME_X)
    hy = cells[:, 1] * np.int32(HASH_PRIME_Y)
    hz = cells[:, 2] * np.int32(HASH_PRIME_Z)
    return hx ^ hy ^ hz


class PositionGroups(Mapping):
    """
    Read-only mapping from vertex index to the indices sharing its position.

    Every vertex is a member of its own group. Members are listed in
    ascending index order.

    Attributes:
        position_keys: (N,) position key per vertex
        labels: (N,) group number per vertex, numbered by first appearance
        members: One index list per group
    """

    def __init__(self, position_keys: np.ndarray, labels: np.ndarray, members: list[list[int]]):
        self.position_keys = position_keys
        self.labels = labels
        self.members = members

    def __getitem__(self, index: int) -> list[int]:
        if not 0 <= index < len(self.labels):
            raise KeyError(index)
        return list(self.members[self.labels[index]])

    def __iter__(self) -> Iterator[int]:
        return iter(range(len(self.labels)))

    def __len__(self) -> int:
        return len(self.labels)

    @property
    def group_count(self) -> int:
        """Number of distinct positions."""
        return len(self.members)

    def shared(self) -> list[list[int]]:
        """Groups with more than one member."""
        return [m for m in self.members if len(m) > 1]


def build_position_groups(vertices, precision: float = POSITION_PRECISION) -> PositionGroups:
    """
    Group vertex indices that round to the same grid cell.

    The first pass buckets each index under its cell; the second gives every
    vertex the full member list of its bucket. Cells are compared exactly,
    so two vertices share a group only if all three rounded coordinates match.

    Args:
        vertices: (N, 3) array-like of positions
        precision: Grid step

    Returns:
        PositionGroups covering every index in ``range(N)``
    """
    cells = [tuple(cell) for cell in position_cells(vertices, precision).tolist()]
    keys = hash_positions(vertices, precision)

    buckets: dict[tuple[int, int, int], list[int]] = {}
    for index, cell in enumerate(cells):
        if cell not in buckets:
            buckets[cell] = []
        buckets[cell].append(index)

    group_ids = {cell: number for number, cell in enumerate(buckets)}
    labels = np.fromiter(
        (group_ids[cell] for cell in cells),
        dtype=np.int64,
        count=len(cells),
    )
    members = list(buckets.values())

    logger.debug(f"Grouped {len(cells)} vertices into {len(members)} positions")

    return PositionGroups(position_keys=keys, labels=labels, members=members)
