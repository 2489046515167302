"""
Voxel Emission

Tile shapes are turned into voxel lists inside the model of their block.
A block model is 48 x 48 x 5 voxels (16 x 16 tiles). Voxel lists are
``(N, 4)`` uint8 arrays of ``(x, y, z, palette_index)``.

The model space has z going up and y going north, so shape layer 0 (top)
lands on z = HEIGHT - 1 and shape row 0 (north) on the highest y.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Tuple

import numpy as np

from .records import BLOCK_SIZE
from .shape import BASE, HEIGHT

# Largest model the .vox format holds, per axis
MAX_MODEL_SIZE = 256
# Tiles of a building that fit in one model
MAX_MODEL_TILES = MAX_MODEL_SIZE // BASE

# Voxel size of a block model
BLOCK_VOX_SIZE = (BLOCK_SIZE * BASE, BLOCK_SIZE * BASE, HEIGHT)

EMPTY_VOXELS = np.zeros((0, 4), dtype=np.uint8)


class Layer(Enum):
    """Scene layers. The value is the layer id in the file."""
    ALL = 0
    HIDDEN = 1
    TERRAIN = 2
    ROUGHNESS = 3
    VEGETATION = 4
    LIQUID = 5
    SPATTER = 6
    FIRE = 7
    FLOWS = 8
    BUILDING = 9

    @property
    def id(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        return self.name.lower()


# Order in which the layer models of a block are added to the scene,
# later layers are drawn over earlier ones
LAYER_APPEND_ORDER = (
    Layer.FLOWS,
    Layer.FIRE,
    Layer.LIQUID,
    Layer.SPATTER,
    Layer.HIDDEN,
    Layer.TERRAIN,
    Layer.ROUGHNESS,
    Layer.VEGETATION,
)


def voxels_from_shape(shape: np.ndarray, local_x: int, local_y: int) -> np.ndarray:
    """
    Emit the voxels of a material box at a tile position inside its block.

    Args:
        shape: uint8 box (H, B, B), 0 meaning no voxel
        local_x: Tile x inside the block (0..15)
        local_y: Tile y inside the block (0..15)

    Returns:
        (N, 4) uint8 voxel array
    """
    height, base = shape.shape[0], shape.shape[1]
    zi, y, x = np.nonzero(shape)
    if len(zi) == 0:
        return EMPTY_VOXELS
    voxels = np.empty((len(zi), 4), dtype=np.uint8)
    voxels[:, 0] = local_x * base + x
    voxels[:, 1] = (BLOCK_SIZE - local_y - 1) * base + (base - 1 - y)
    voxels[:, 2] = height - 1 - zi
    voxels[:, 3] = shape[zi, y, x]
    return voxels


def voxels_from_uniform_shape(
    shape: np.ndarray,
    local_x: int,
    local_y: int,
    material: int
) -> np.ndarray:
    """Emit a boolean box with a single palette index."""
    material_box = np.where(shape, material, 0).astype(np.uint8)
    return voxels_from_shape(material_box, local_x, local_y)


def model_voxels_from_box(shape: np.ndarray) -> Tuple[Tuple[int, int, int], np.ndarray]:
    """
    Emit a material box of any footprint as a standalone model.

    Args:
        shape: uint8 array (H, Y, X)

    Returns:
        ((size_x, size_y, size_z), voxels)

    Raises:
        ValueError: If the box is larger than a model, see ``split_box``
    """
    height, size_y, size_x = shape.shape
    if max(shape.shape) > MAX_MODEL_SIZE:
        raise ValueError(f"Box of shape {shape.shape} exceeds the {MAX_MODEL_SIZE} voxels of a model")
    zi, y, x = np.nonzero(shape)
    voxels = np.empty((len(zi), 4), dtype=np.uint8)
    voxels[:, 0] = x
    voxels[:, 1] = size_y - 1 - y
    voxels[:, 2] = height - 1 - zi
    voxels[:, 3] = shape[zi, y, x]
    return (size_x, size_y, height), voxels


def split_box(shape: np.ndarray, max_tiles: int = MAX_MODEL_TILES) -> Iterator[Tuple[int, int, np.ndarray]]:
    """
    Cut a building box into pieces of at most ``max_tiles`` tiles a side.

    Args:
        shape: Array (H, Y, X), X and Y being multiples of BASE

    Yields:
        (tile_dx, tile_dy, piece) with the piece's tile offset from the
        box's north-west corner
    """
    _, size_y, size_x = shape.shape
    step = max_tiles * BASE
    for y in range(0, size_y, step):
        for x in range(0, size_x, step):
            yield x // BASE, y // BASE, shape[:, y:y + step, x:x + step]


@dataclass
class VoxModel:
    """A model of the scene: its size and voxels."""
    size: Tuple[int, int, int]
    voxels: np.ndarray

    def key(self) -> tuple:
        """Identity used to share identical models."""
        voxels = np.ascontiguousarray(self.voxels, dtype=np.uint8)
        return (tuple(self.size), voxels.tobytes())


class BlockModels:
    """Voxels of one block, sorted by layer."""

    def __init__(self):
        self.voxels: Dict[Layer, List[np.ndarray]] = {}

    def extend(self, layer: Layer, voxels: np.ndarray) -> None:
        if len(voxels):
            self.voxels.setdefault(layer, []).append(voxels)

    def is_empty(self) -> bool:
        return not any(len(v) for chunks in self.voxels.values() for v in chunks)

    def model(self, layer: Layer) -> VoxModel:
        chunks = self.voxels.get(layer)
        voxels = np.concatenate(chunks) if chunks else EMPTY_VOXELS
        return VoxModel(BLOCK_VOX_SIZE, voxels)

    def layers(self) -> List[Layer]:
        """Non-empty layers, in scene append order."""
        return [layer for layer in LAYER_APPEND_ORDER if self.voxels.get(layer)]
