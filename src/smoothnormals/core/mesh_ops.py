# Copyright 2025 Allard Peper (Dragon Ace / DragonAceNL)
# Licensed under the Apache License, Version 2.0 (see LICENSE).
# This file is part of SmoothNormals.

"""
Mesh loading, processing, and saving using trimesh.

This module connects trimesh meshes to the smoothing pass: it pulls the
vertex and normal buffers out of a mesh, writes the result into a UV
channel on a copy, and decides where the processed copy is saved.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import logging

import numpy as np
import trimesh

from .channels import (
    MAX_UV_CHANNELS,
    channel_attribute_name,
    channel_display,
    write_channel,
)
from .config import SmoothingConfig
from .smoothing import smooth_normals

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = "ProcessedMeshes"
PROCESSED_SUFFIX = "_SmoothNormals"

# Formats that keep custom per-vertex attributes when written by trimesh
ATTRIBUTE_FORMATS = (".ply",)


@dataclass
class ProcessResult:
    """
    Outcome of processing one mesh.

    Attributes:
        mesh: Processed copy carrying the new channel
        smoothed: The buffer written into the channel
        channel: 0-based channel index actually written
        output_path: Where the mesh was saved, if it was saved
        overwritten: True if the source file was replaced
    """
    mesh: trimesh.Trimesh
    smoothed: np.ndarray
    channel: int
    output_path: Optional[Path] = None
    overwritten: bool = False


def _restore_ply_channels(mesh: trimesh.Trimesh) -> list[str]:
    """
    Copy ``uv<k>`` vertex properties of a loaded PLY into vertex attributes.

    trimesh keeps unknown PLY properties only in ``metadata["_ply_raw"]``.
    Binary list properties arrive as a (count, values) record, ASCII ones
    as a plain column block.

    Returns:
        Names of the restored channels
    """
    raw = mesh.metadata.get("_ply_raw") or {}
    data = raw.get("vertex", {}).get("data")
    if data is None:
        return []

    if isinstance(data, dict):
        fields = list(data.keys())
    else:
        fields = list(data.dtype.names or ())

    restored = []
    for index in range(MAX_UV_CHANNELS):
        name = channel_attribute_name(index)
        if name not in fields or name in mesh.vertex_attributes:
            continue

        values = data[name]
        if getattr(values, "dtype", None) is not None and values.dtype.names:
            values = values[values.dtype.names[-1]]
        values = np.asarray(values, dtype=np.float64)
        if values.ndim == 1:
            values = values.reshape(-1, 1)

        if len(values) != len(mesh.vertices):
            logger.warning(
                f"Ignoring PLY property {name}: {len(values)} rows for "
                f"{len(mesh.vertices)} vertices"
            )
            continue

        mesh.vertex_attributes[name] = values
        restored.append(name)

    if restored:
        logger.debug(f"Restored UV channels from PLY: {', '.join(restored)}")
    return restored


def load_mesh(path: Union[str, Path]) -> trimesh.Trimesh:
    """
    Load a mesh from file without merging vertices.

    Split vertices must survive loading, so trimesh processing is off.
    Scenes are concatenated into one mesh. UV channels stored in a PLY
    file are restored into ``mesh.vertex_attributes``.

    Raises:
        FileNotFoundError: If file does not exist
        ValueError: If file cannot be loaded as a mesh
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Mesh file not found: {path}")

    logger.info(f"Loading mesh from: {path}")

    try:
        mesh = trimesh.load(str(path), process=False)
    except Exception as e:
        raise ValueError(f"Failed to load mesh: {e}") from e

    if isinstance(mesh, trimesh.Scene):
        geometries = list(mesh.geometry.values())
        if len(geometries) == 0:
            raise ValueError("No geometry found in file")
        elif len(geometries) == 1:
            mesh = geometries[0]
        else:
            logger.info(f"Concatenating {len(geometries)} geometries from scene")
            mesh = trimesh.util.concatenate(geometries)

    if not isinstance(mesh, trimesh.Trimesh):
        raise ValueError(f"File does not contain a triangle mesh: {path}")

    mesh.metadata["name"] = path.stem
    _restore_ply_channels(mesh)

    logger.info(f"Loaded mesh: {len(mesh.vertices)} vertices, {len(mesh.faces)} faces")

    return mesh


def save_mesh(mesh: trimesh.Trimesh, path: Union[str, Path]) -> None:
    """Save a mesh, format taken from the file extension."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Saving mesh to: {path}")
    mesh.export(str(path))


def extract_buffers(mesh: trimesh.Trimesh) -> tuple[np.ndarray, np.ndarray]:
    """Vertex positions and per-vertex normals as (N, 3) float arrays."""
    vertices = np.array(mesh.vertices, dtype=np.float64)
    normals = np.array(mesh.vertex_normals, dtype=np.float64)
    return vertices, normals


def mesh_name(mesh: trimesh.Trimesh, default: str = "mesh") -> str:
    """Name stored in mesh metadata, or ``default``."""
    return mesh.metadata.get("name") or default


def process_mesh(
    mesh: trimesh.Trimesh,
    config: Optional[SmoothingConfig] = None
) -> ProcessResult:
    """
    Smooth a mesh's normals into a UV channel on a copy.

    The source mesh is not modified. The copy is named
    ``<name>_SmoothNormals``.
    """
    config = config or SmoothingConfig()

    # Read normals before copying; a plain copy drops loaded normals
    vertices, normals = extract_buffers(mesh)
    smoothed = smooth_normals(vertices, normals, config)

    processed = mesh.copy(include_cache=True)
    processed.metadata["name"] = mesh_name(mesh) + PROCESSED_SUFFIX

    # Carry over channels already on the source
    for name, data in mesh.vertex_attributes.items():
        processed.vertex_attributes.setdefault(name, np.array(data, copy=True))

    channel = write_channel(processed, smoothed, config.channel)

    logger.info(f"Stored smoothed normals in UV{channel_display(channel)}")

    return ProcessResult(mesh=processed, smoothed=smoothed, channel=channel)


def can_overwrite(source_path: Union[str, Path, None]) -> bool:
    """True if the source file exists and its format keeps UV channels."""
    if source_path is None:
        return False
    source_path = Path(source_path)
    return source_path.exists() and source_path.suffix.lower() in ATTRIBUTE_FORMATS


def save_processed_mesh(
    result: ProcessResult,
    source_path: Union[str, Path, None] = None,
    output_dir: Union[str, Path] = DEFAULT_OUTPUT_DIR,
    overwrite_source: bool = False
) -> Path:
    """
    Save a processed mesh.

    With ``overwrite_source`` the source file is replaced when its format
    can hold the new channel. Otherwise, or when it cannot, the mesh is
    written to ``<output_dir>/<name>.ply``.

    Returns:
        The path written
    """
    label = mesh_name(result.mesh)

    if overwrite_source:
        if can_overwrite(source_path):
            path = Path(source_path)
            save_mesh(result.mesh, path)
            result.output_path = path
            result.overwritten = True
            logger.info(f"[{label}] Overwrote source mesh: {path}")
            return path

        logger.warning(
            f"[{label}] Cannot overwrite {source_path or 'an in-memory mesh'} "
            f"with UV channels. Creating new file instead."
        )

    path = Path(output_dir) / f"{label}.ply"
    save_mesh(result.mesh, path)
    result.output_path = path
    result.overwritten = False

    logger.info(
        f"[{label}] Stored smoothed normals in UV{channel_display(result.channel)} "
        f"and saved as: {path}"
    )
    return path
