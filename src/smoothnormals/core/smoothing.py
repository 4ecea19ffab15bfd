# Copyright 2025 Allard Peper (Dragon Ace / DragonAceNL)
# Licensed under the Apache License, Version 2.0 (see LICENSE).
# This file is part of SmoothNormals.

"""
Smoothed normal computation.

Every vertex receives the normalized sum of the normals of all vertices at
the same position, optionally limited to normals within an angle of its
own. The result can be remapped from [-1, 1] to [0, 1] so it fits texture
coordinate storage that expects non-negative values.
"""

from typing import Optional
import logging

import numpy as np

from .config import SmoothingConfig
from .position_groups import PositionGroups, build_position_groups

logger = logging.getLogger(__name__)

# Below this the angle between two vectors is reported as 0
ANGLE_EPSILON = 1e-15

# Vectors shorter than this normalize to zero
NORMALIZE_EPSILON = 1e-5


class BufferLengthError(ValueError):
    """Vertex and normal buffers are not index-aligned."""


def vector_angle(a, b) -> float:
    """
    Angle between two vectors in degrees, in [0, 180].

    Returns 0 when either vector has zero length or both are identical.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    if np.array_equal(a, b):
        return 0.0

    denominator = np.sqrt(np.dot(a, a) * np.dot(b, b))
    if denominator < ANGLE_EPSILON:
        return 0.0

    cosine = np.clip(np.dot(a, b) / denominator, -1.0, 1.0)
    return float(np.degrees(np.arccos(cosine)))


def pairwise_angles(vectors) -> np.ndarray:
    """
    (K, K) matrix of ``vector_angle`` between every pair of rows.

    The diagonal and every pair of identical rows are exactly 0.
    """
    v = np.asarray(vectors, dtype=np.float64)

    # Same summation for dots and squared lengths
    dots = (v[:, None, :] * v[None, :, :]).sum(axis=-1)
    squared = np.diag(dots)
    denominator = np.sqrt(np.outer(squared, squared))

    cosine = np.ones_like(dots)
    np.divide(dots, denominator, out=cosine, where=denominator >= ANGLE_EPSILON)
    angles = np.degrees(np.arccos(np.clip(cosine, -1.0, 1.0)))

    identical = np.all(v[:, None, :] == v[None, :, :], axis=-1)
    angles[identical] = 0.0
    return angles


def normalize_vectors(vectors) -> np.ndarray:
    """
    Scale vectors to unit length along the last axis.

    Vectors with magnitude at or below ``NORMALIZE_EPSILON`` become zero.
    """
    v = np.asarray(vectors, dtype=np.float64)
    lengths = np.linalg.norm(v, axis=-1, keepdims=True)

    result = np.zeros_like(v)
    np.divide(v, lengths, out=result, where=lengths > NORMALIZE_EPSILON)
    return result


def remap_to_unit_range(vectors) -> np.ndarray:
    """Map components from [-1, 1] to [0, 1]."""
    return np.asarray(vectors, dtype=np.float64) * 0.5 + 0.5


def unmap_from_unit_range(vectors) -> np.ndarray:
    """Inverse of ``remap_to_unit_range``."""
    return (np.asarray(vectors, dtype=np.float64) - 0.5) * 2.0


def _check_buffers(positions: np.ndarray, normals: np.ndarray) -> None:
    if len(positions) != len(normals):
        raise BufferLengthError(
            f"Vertex buffer has {len(positions)} entries but normal buffer has {len(normals)}"
        )
    for label, array in (("Vertex", positions), ("Normal", normals)):
        if array.ndim != 2 or array.shape[1] != 3:
            raise BufferLengthError(f"{label} buffer must have shape (N, 3), got {array.shape}")


def _as_buffer(data) -> np.ndarray:
    array = np.asarray(data, dtype=np.float64)
    if array.size == 0:
        return array.reshape(0, 3)
    return array


def _accumulate_all(normals: np.ndarray, groups: PositionGroups) -> np.ndarray:
    group_sums = np.zeros((groups.group_count, 3), dtype=np.float64)
    np.add.at(group_sums, groups.labels, normals)
    return group_sums[groups.labels]


def _accumulate_within_angle(
    normals: np.ndarray,
    groups: PositionGroups,
    threshold: float
) -> np.ndarray:
    # Angle to self is always 0, so singletons keep their own normal
    keep_self = 0.0 <= threshold
    sums = normals.copy() if keep_self else np.zeros_like(normals)

    for members in groups.shared():
        idx = np.asarray(members)
        block = normals[idx]
        mask = pairwise_angles(block) <= threshold
        sums[idx] = (mask[:, :, None] * block[None, :, :]).sum(axis=1)

    return sums


def smooth_normals(
    vertices,
    normals,
    config: Optional[SmoothingConfig] = None,
    groups: Optional[PositionGroups] = None
) -> np.ndarray:
    """
    Compute one smoothed normal per vertex.

    For vertex i the normals of every member j of its position group are
    summed, skipping j when the angle filter is on and the angle between
    normal i and normal j exceeds the threshold. The sum is normalized
    (a zero sum stays zero) and remapped to [0, 1] when
    ``config.normalize`` is set.

    Args:
        vertices: (N, 3) positions
        normals: (N, 3) normals, index-aligned with ``vertices``
        config: Smoothing parameters (defaults to ``SmoothingConfig()``)
        groups: Precomputed groups for ``vertices``; built if omitted

    Returns:
        New (N, 3) float64 array

    Raises:
        BufferLengthError: If the buffers are not both (N, 3) with equal N
    """
    config = config or SmoothingConfig()

    positions = _as_buffer(vertices)
    normal_buffer = _as_buffer(normals)
    _check_buffers(positions, normal_buffer)

    if groups is None:
        groups = build_position_groups(positions)
    elif len(groups) != len(positions):
        raise BufferLengthError(
            f"Position groups cover {len(groups)} vertices, buffers have {len(positions)}"
        )

    if config.use_angle:
        sums = _accumulate_within_angle(normal_buffer, groups, config.angle_threshold)
    else:
        sums = _accumulate_all(normal_buffer, groups)

    smoothed = normalize_vectors(sums)

    if config.normalize:
        smoothed = remap_to_unit_range(smoothed)

    logger.info(
        f"Smoothed {len(smoothed)} normals over {groups.group_count} positions "
        f"(angle filter: {config.angle_threshold if config.use_angle else 'off'}, "
        f"remap: {config.normalize})"
    )

    return smoothed
