# Copyright 2025 Allard Peper (Dragon Ace / DragonAceNL)
# Licensed under the Apache License, Version 2.0 (see LICENSE).
# This file is part of SmoothNormals.

"""Tests for position hashing and vertex grouping."""

import itertools

import numpy as np
import pytest

from smoothnormals.core.position_groups import (
    POSITION_PRECISION,
    HASH_PRIME_X,
    hash_positions,
    position_cells,
    build_position_groups,
)


def wrap_int32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


class TestHashPositions:
    """Tests for hash_positions."""

    def test_origin_hashes_to_zero(self):
        """The origin cell has key 0."""
        keys = hash_positions([(0.0, 0.0, 0.0)])
        assert keys.tolist() == [0]

    def test_single_axis_step(self):
        """One grid step on x gives the x prime."""
        keys = hash_positions([(POSITION_PRECISION, 0.0, 0.0)])
        assert keys.tolist() == [HASH_PRIME_X]

    def test_overflow_wraps(self):
        """Large cell indices wrap to 32 bits instead of raising."""
        keys = hash_positions([(1.0, 0.0, 0.0)])

        assert keys.dtype == np.int32
        assert keys.tolist() == [wrap_int32(100000 * HASH_PRIME_X)]

    def test_same_cell_same_key(self):
        """Positions that round to the same cell share a key."""
        keys = hash_positions([
            (0.1, 0.2, 0.3),
            (0.1 + 2e-7, 0.2 - 2e-7, 0.3),
        ])
        assert keys[0] == keys[1]

    def test_empty_input(self):
        """No vertices gives no keys."""
        assert len(hash_positions([])) == 0

    def test_rejects_bad_shape(self):
        """Positions must be 3D."""
        with pytest.raises(ValueError):
            hash_positions([(0.0, 0.0)])


class TestBuildPositionGroups:
    """Tests for build_position_groups."""

    def test_empty_input(self):
        """Empty vertex buffer yields an empty mapping."""
        groups = build_position_groups(np.zeros((0, 3)))

        assert len(groups) == 0
        assert groups.group_count == 0
        assert dict(groups) == {}

    def test_separated_vertices_are_singletons(self):
        """Widely separated vertices each form their own group."""
        groups = build_position_groups([
            (0.0, 0.0, 0.0),
            (1.0, 0.0, 0.0),
            (0.0, 5.0, -3.0),
        ])

        assert groups.group_count == 3
        assert groups[0] == [0]
        assert groups[1] == [1]
        assert groups[2] == [2]
        assert groups.shared() == []

    def test_coincident_vertices_share_group(self):
        """Vertices at the same position are grouped in index order."""
        groups = build_position_groups([
            (1.0, 1.0, 1.0),
            (0.0, 0.0, 0.0),
            (1.0, 1.0, 1.0),
            (1.0, 1.0, 1.0),
        ])

        assert groups[0] == [0, 2, 3]
        assert groups[2] == [0, 2, 3]
        assert groups[3] == [0, 2, 3]
        assert groups[1] == [1]
        assert groups.group_count == 2

    def test_self_membership(self, split_box):
        """Every vertex appears in its own group."""
        groups = build_position_groups(split_box.vertices)

        for index in groups:
            assert index in groups[index]

    def test_split_box_has_eight_positions(self, split_box):
        """36 split vertices collapse onto the 8 box corners."""
        groups = build_position_groups(split_box.vertices)

        assert len(groups) == 36
        assert groups.group_count == 8
        assert sum(len(m) for m in groups.members) == 36

    def test_offsets_beyond_precision_separate(self):
        """Positions a few grid steps apart are not merged."""
        groups = build_position_groups([
            (0.0, 0.0, 0.0),
            (3 * POSITION_PRECISION, 0.0, 0.0),
            (0.0, 0.0, 3 * POSITION_PRECISION),
        ])
        assert groups.group_count == 3

    def test_grouping_matches_rounded_cells(self):
        """Two vertices share a group exactly when their rounded cells match."""
        cells = np.array(list(itertools.product(range(3), repeat=3)), dtype=np.float64)
        jitter = np.array([0.2, -0.3, 0.1]) * POSITION_PRECISION
        positions = np.vstack([
            cells * POSITION_PRECISION,
            cells * POSITION_PRECISION + jitter,
        ])

        groups = build_position_groups(positions)
        rounded = np.rint(positions / POSITION_PRECISION)

        for i, j in itertools.combinations(range(len(positions)), 2):
            same_cell = bool(np.all(rounded[i] == rounded[j]))
            same_group = groups.labels[i] == groups.labels[j]
            assert same_cell == same_group

    def test_missing_index_raises(self):
        """Indices outside the buffer are not keys."""
        groups = build_position_groups([(0.0, 0.0, 0.0)])
        with pytest.raises(KeyError):
            groups[1]

    def test_groups_are_recomputed(self):
        """Moving a vertex between calls changes its group."""
        vertices = np.array([(0.0, 0.0, 0.0), (0.0, 0.0, 0.0)])
        before = build_position_groups(vertices)

        vertices[1] = (1.0, 0.0, 0.0)
        after = build_position_groups(vertices)

        assert before[0] == [0, 1]
        assert after[0] == [0]

    def test_mirrored_corners_stay_apart(self):
        """Cells whose keys collide are still separate positions."""
        corners = list(itertools.product((-1.0, 1.0), repeat=3))

        groups = build_position_groups(corners)

        assert len(set(groups.position_keys.tolist())) == 2
        assert groups.group_count == 8
        for index in groups:
            assert groups[index] == [index]

    def test_groups_follow_cells(self):
        vertices = [(0.0, 0.0, 0.0), (2.0, 0.0, 0.0), (0.0, 0.0, 0.0)]

        groups = build_position_groups(vertices)
        cells = position_cells(vertices)

        assert cells.tolist() == [[0, 0, 0], [200000, 0, 0], [0, 0, 0]]
        assert groups.labels.tolist() == [0, 1, 0]

    def test_mapping_interface(self):
        """Groups behave as a read-only mapping from index to members."""
        groups = build_position_groups([(0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (1.0, 0.0, 0.0)])

        assert list(groups.keys()) == [0, 1, 2]
        assert dict(groups) == {0: [0, 1], 1: [0, 1], 2: [2]}
        assert 2 in groups
        assert 3 not in groups
        assert groups.get(5) is None

    def test_position_keys_match_hash(self):
        vertices = [(0.25, -0.5, 3.0), (POSITION_PRECISION, 0.0, 0.0)]
        groups = build_position_groups(vertices)

        np.testing.assert_array_equal(groups.position_keys, hash_positions(vertices))
