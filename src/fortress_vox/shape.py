"""
Shape Algebra for Tile Boxes

Every game tile becomes a small box of BASE x BASE x HEIGHT voxels. Shapes
are plain numpy arrays indexed as ``box[z][y][x]``:

- z = 0 is the TOP layer, z = HEIGHT - 1 the bottom (floor) layer
- y grows southward (row 0 is the north edge)
- x grows eastward

Two kinds of boxes are used throughout the package:
- boolean boxes: where a voxel exists
- material boxes (uint8): palette index per cell, 0 meaning "no voxel"

Rotations are quarter turns clockwise about the vertical axis, as seen
from above. Templates are authored looking north, so ``looking_at(North)``
is the identity.
"""

from typing import Callable
import numpy as np

from .direction import DirectionFlat


# Width of a tile in voxels
BASE = 3
# Height of a tile in voxels
HEIGHT = 5


def slice_const(value, base: int = BASE, dtype=None) -> np.ndarray:
    """Build a constant 2D slice."""
    return np.full((base, base), value, dtype=dtype)


def slice_full(base: int = BASE) -> np.ndarray:
    """Completely full 2D slice."""
    return np.ones((base, base), dtype=bool)


def slice_empty(base: int = BASE) -> np.ndarray:
    """Empty 2D slice."""
    return np.zeros((base, base), dtype=bool)


def slice_from_fn(
    func: Callable[[int, int], object],
    base: int = BASE,
    dtype=None
) -> np.ndarray:
    """
    Build a 2D slice from a function.

    Args:
        func: Called as ``func(x, y)`` for every cell, rows first
        base: Slice width
        dtype: Optional numpy dtype of the result

    Returns:
        Array of shape (base, base)
    """
    return np.array(
        [[func(x, y) for x in range(base)] for y in range(base)],
        dtype=dtype
    )


def box_const(value, base: int = BASE, height: int = HEIGHT, dtype=None) -> np.ndarray:
    """Build a constant 3D box."""
    return np.full((height, base, base), value, dtype=dtype)


def box_full(base: int = BASE, height: int = HEIGHT) -> np.ndarray:
    """Completely full 3D box."""
    return np.ones((height, base, base), dtype=bool)


def box_empty(base: int = BASE, height: int = HEIGHT) -> np.ndarray:
    """Empty 3D box."""
    return np.zeros((height, base, base), dtype=bool)


def box_from_slices(*slices) -> np.ndarray:
    """Stack slices, top layer first, into a 3D box."""
    return np.stack([np.asarray(s) for s in slices])


def box_from_fn(
    func: Callable[[int, int, int], object],
    base: int = BASE,
    height: int = HEIGHT,
    dtype=None
) -> np.ndarray:
    """
    Build a 3D box from a function.

    The function receives the elevation of the cell counted from the bottom,
    so ``func(x, y, 0)`` describes the floor layer.

    Args:
        func: Called as ``func(x, y, elevation)``
        base: Box width
        height: Box height
        dtype: Optional numpy dtype of the result

    Returns:
        Array of shape (height, base, base)
    """
    return np.array(
        [
            [[func(x, y, height - z - 1) for x in range(base)] for y in range(base)]
            for z in range(height)
        ],
        dtype=dtype
    )


def box_from_levels(levels, height: int = HEIGHT) -> np.ndarray:
    """
    Build a 3D box from column heights.

    A level of 0 leaves the column empty, a level of ``height`` (or more)
    fills it completely. Cell ``(x, y, z)`` is set when
    ``levels[y][x] > elevation(z)``.

    Args:
        levels: 2D array-like of non-negative integers

    Returns:
        Boolean array of shape (height, base, base)
    """
    levels = np.asarray(levels)
    elevation = (height - 1 - np.arange(height)).reshape(height, 1, 1)
    return levels[np.newaxis, :, :] > elevation


def box_from_levels_with_content(levels, content, height: int = HEIGHT) -> np.ndarray:
    """
    Build a material box from column heights and one material per column.

    Args:
        levels: 2D array-like of column heights
        content: 2D array-like of palette indices, same shape as levels

    Returns:
        uint8 array, the column material where filled and 0 elsewhere
    """
    mask = box_from_levels(levels, height)
    content = np.broadcast_to(np.asarray(content, dtype=np.uint8), mask.shape)
    return np.where(mask, content, 0).astype(np.uint8)


def box_with_material(shape: np.ndarray, material: int) -> np.ndarray:
    """Turn a boolean box into a material box using a single palette index."""
    return np.where(shape, material, 0).astype(np.uint8)


def box_from_shape_fn(shape: np.ndarray, pick: Callable[[], int]) -> np.ndarray:
    """
    Turn a boolean box into a material box, calling ``pick`` for each set cell.

    Cells are visited in array order, which keeps seeded generators stable.
    """
    out = np.zeros(shape.shape, dtype=np.uint8)
    for index in zip(*np.nonzero(shape)):
        out[index] = pick()
    return out


def slice_rotated(input_slice: np.ndarray) -> np.ndarray:
    """Rotate a 2D slice 90 degrees clockwise: ``out[i][j] = in[N-1-j][i]``."""
    return np.rot90(input_slice, k=-1)


def rotated_by(shape: np.ndarray, amount: int) -> np.ndarray:
    """
    Rotate a 2D slice or a 3D box clockwise by ``amount`` quarter turns.

    Args:
        shape: Slice (B, B) or box (H, B, B)
        amount: Number of quarter turns, any integer

    Returns:
        A rotated copy
    """
    return np.ascontiguousarray(np.rot90(shape, k=-(amount % 4), axes=(-2, -1)))


def looking_at(shape: np.ndarray, direction: DirectionFlat) -> np.ndarray:
    """Rotate a template authored looking north toward ``direction``."""
    return rotated_by(shape, direction.quarter_turns)


def facing_away(shape: np.ndarray, direction: DirectionFlat) -> np.ndarray:
    """Rotate a template so that it turns its back on ``direction``."""
    return looking_at(shape, direction.opposite)
