# Copyright 2025 Allard Peper (Dragon Ace / DragonAceNL)
# Licensed under the Apache License, Version 2.0 (see LICENSE).
# This file is part of SmoothNormals.

"""
Auxiliary per-vertex UV channels on trimesh meshes.

Channels are stored in ``mesh.vertex_attributes`` under ``uv<index>`` with
3 components per vertex. Users count channels from 1 ("UV set 5"); the
stored index counts from 0.
"""

import logging

import numpy as np
import trimesh

logger = logging.getLogger(__name__)

MAX_UV_CHANNELS = 8

# UV set 5
DEFAULT_CHANNEL = 4


def clamp_channel_index(index: int) -> int:
    """Clamp a 0-based channel index into the supported range."""
    return max(0, min(int(index), MAX_UV_CHANNELS - 1))


def channel_index_from_number(number: int) -> int:
    """Convert a 1-based channel number to a clamped 0-based index."""
    return clamp_channel_index(int(number) - 1)


def channel_display(index: int) -> int:
    """1-based channel number for messages."""
    return clamp_channel_index(index) + 1


def channel_attribute_name(index: int) -> str:
    """Vertex attribute key used for a channel."""
    return f"uv{clamp_channel_index(index)}"


def has_channel(mesh: trimesh.Trimesh, index: int) -> bool:
    """
    Check whether a channel already holds data.

    Indices outside the supported range are never present.
    """
    if index < 0 or index >= MAX_UV_CHANNELS:
        return False

    data = mesh.vertex_attributes.get(channel_attribute_name(index))
    if data is not None and len(data) > 0:
        return True

    # The primary texture coordinates count as channel 0
    if index == 0:
        uv = getattr(mesh.visual, "uv", None)
        return uv is not None and len(uv) > 0

    return False


def read_channel(mesh: trimesh.Trimesh, index: int) -> np.ndarray:
    """
    Read a channel written by ``write_channel``.

    Raises:
        KeyError: If the channel holds no data
    """
    name = channel_attribute_name(index)
    if name not in mesh.vertex_attributes:
        raise KeyError(f"Mesh has no data in UV{channel_display(index)}")
    return np.asarray(mesh.vertex_attributes[name])


def write_channel(mesh: trimesh.Trimesh, buffer, index: int) -> int:
    """
    Store a per-vertex vector buffer in a UV channel.

    The index is clamped to the supported range. Existing data in the slot
    is replaced.

    Args:
        mesh: Mesh to modify in place
        buffer: (N, 3) array-like, N equal to the vertex count
        index: 0-based channel index

    Returns:
        The clamped index that was written

    Raises:
        ValueError: If the buffer does not match the vertex count
    """
    data = np.asarray(buffer, dtype=np.float64)
    if len(data) != len(mesh.vertices):
        raise ValueError(
            f"Channel buffer has {len(data)} entries, mesh has {len(mesh.vertices)} vertices"
        )

    clamped = clamp_channel_index(index)
    if clamped != index:
        logger.warning(f"Channel index {index} clamped to {clamped}")

    name = channel_attribute_name(clamped)
    if name in mesh.vertex_attributes:
        logger.debug(f"Replacing existing data in UV{channel_display(clamped)}")

    mesh.vertex_attributes[name] = data
    return clamped
