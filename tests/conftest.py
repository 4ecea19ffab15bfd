# Copyright 2025 Allard Peper (Dragon Ace / DragonAceNL)
# Licensed under the Apache License, Version 2.0 (see LICENSE).

"""Pytest configuration and fixtures for SmoothNormals tests."""

import sys
from pathlib import Path

import numpy as np
import pytest
import trimesh

# Make src/ importable without an install
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


def make_split_box(extents=(2.0, 2.0, 2.0)) -> trimesh.Trimesh:
    """
    Box with one vertex per face corner and flat per-face normals.

    12 triangles, 36 vertices, 8 distinct positions.
    """
    box = trimesh.creation.box(extents=extents)
    vertices = box.vertices[box.faces].reshape(-1, 3)
    faces = np.arange(len(vertices)).reshape(-1, 3)
    normals = np.repeat(box.face_normals, 3, axis=0)
    mesh = trimesh.Trimesh(
        vertices=vertices,
        faces=faces,
        vertex_normals=normals,
        process=False,
    )
    mesh.metadata["name"] = "box"
    return mesh


@pytest.fixture
def split_box() -> trimesh.Trimesh:
    """Hard-edged box with split vertices."""
    return make_split_box()


@pytest.fixture
def split_box_ply(tmp_path) -> Path:
    """Hard-edged box written to a PLY file."""
    path = tmp_path / "box.ply"
    make_split_box().export(str(path))
    return path


@pytest.fixture
def split_box_stl(tmp_path) -> Path:
    """Box written to an STL file, a format without UV channels."""
    path = tmp_path / "box.stl"
    make_split_box().export(str(path))
    return path
