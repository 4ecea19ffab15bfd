# Copyright 2025 Allard Peper (Dragon Ace / DragonAceNL)
# Licensed under the Apache License, Version 2.0 (see LICENSE).
# This file is part of SmoothNormals.

"""
Core logic for grouping vertices and smoothing normals.

- position_groups: Bucket vertices that share a discretized position
- smoothing: Average normals within each bucket
- config: Smoothing parameters, file loading, presets
- channels: Read and write auxiliary UV channels
- mesh_ops: Load, process, and save trimesh meshes
"""

from .position_groups import (
    POSITION_PRECISION,
    PositionGroups,
    position_cells,
    hash_positions,
    build_position_groups,
)

from .smoothing import (
    BufferLengthError,
    vector_angle,
    pairwise_angles,
    normalize_vectors,
    remap_to_unit_range,
    unmap_from_unit_range,
    smooth_normals,
)

from .config import (
    SmoothingConfig,
    PRESETS,
    get_preset,
    list_presets,
)

from .channels import (
    MAX_UV_CHANNELS,
    DEFAULT_CHANNEL,
    clamp_channel_index,
    channel_index_from_number,
    channel_display,
    has_channel,
    read_channel,
    write_channel,
)

from .mesh_ops import (
    ProcessResult,
    load_mesh,
    save_mesh,
    extract_buffers,
    process_mesh,
    save_processed_mesh,
)

__all__ = [
    # Grouping
    "POSITION_PRECISION",
    "PositionGroups",
    "position_cells",
    "hash_positions",
    "build_position_groups",
    # Smoothing
    "BufferLengthError",
    "vector_angle",
    "pairwise_angles",
    "normalize_vectors",
    "remap_to_unit_range",
    "unmap_from_unit_range",
    "smooth_normals",
    # Configuration
    "SmoothingConfig",
    "PRESETS",
    "get_preset",
    "list_presets",
    # Channels
    "MAX_UV_CHANNELS",
    "DEFAULT_CHANNEL",
    "clamp_channel_index",
    "channel_index_from_number",
    "channel_display",
    "has_channel",
    "read_channel",
    "write_channel",
    # Mesh operations
    "ProcessResult",
    "load_mesh",
    "save_mesh",
    "extract_buffers",
    "process_mesh",
    "save_processed_mesh",
]
