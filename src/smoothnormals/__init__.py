# Copyright 2025 Allard Peper (Dragon Ace / DragonAceNL)
# Licensed under the Apache License, Version 2.0 (see LICENSE).
# This file is part of SmoothNormals.

"""SmoothNormals - Bake averaged vertex normals into mesh UV channels."""

__version__ = "0.1.0"
