"""
Voxel builders: tiles, plants, flows, blocks and buildings.

Each builder returns uint8 material boxes (see ``shape.py``); the block
builder sorts them into layers and adds them to the scene.
"""

from .block import build_block, block_translation, model_translation
from .building import BuildingKind, build_building
from .tile import build_tile

__all__ = [
    "build_block",
    "block_translation",
    "model_translation",
    "BuildingKind",
    "build_building",
    "build_tile",
]
