"""
Coordinate Spaces

- MapCoord: game tile coordinates, z is the elevation level
- VoxelCoord: sub-tile coordinates, ``MapCoord * (BASE, BASE, HEIGHT)``
  plus an offset inside the tile box
- BoundingBox: inclusive tile ranges, as reported by the game for buildings

Map coordinates have y growing southward. The exported scene has y growing
northward, the flip happens when voxels are emitted (see ``voxel.py``).
"""

from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

from .shape import BASE, HEIGHT


@dataclass(frozen=True, order=True)
class MapCoord:
    """Integer game tile coordinates."""
    x: int
    y: int
    z: int

    def __add__(self, other) -> "MapCoord":
        # directions and plain (dx, dy, dz) tuples
        dx, dy, dz = getattr(other, "offset", other)
        return MapCoord(self.x + dx, self.y + dy, self.z + dz)

    def __sub__(self, other) -> "MapCoord":
        dx, dy, dz = getattr(other, "offset", other)
        return MapCoord(self.x - dx, self.y - dy, self.z - dz)

    def to_voxel(self) -> "VoxelCoord":
        """Voxel coordinates of the tile's first corner."""
        return VoxelCoord(self.x * BASE, self.y * BASE, self.z * HEIGHT)

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class VoxelCoord:
    """Integer sub-tile coordinates."""
    x: int
    y: int
    z: int

    def to_map(self) -> MapCoord:
        """Tile containing this voxel."""
        return MapCoord(self.x // BASE, self.y // BASE, self.z // HEIGHT)


@dataclass(frozen=True)
class BoundingBox:
    """Inclusive integer ranges along each axis."""
    x_min: int
    x_max: int
    y_min: int
    y_max: int
    z_min: int
    z_max: int

    @property
    def origin(self) -> MapCoord:
        return MapCoord(self.x_min, self.y_min, self.z_min)

    def dimension(self) -> Tuple[int, int, int]:
        return (
            self.x_max - self.x_min + 1,
            self.y_max - self.y_min + 1,
            self.z_max - self.z_min + 1,
        )

    def contains(self, coord: MapCoord) -> bool:
        return (
            self.x_min <= coord.x <= self.x_max
            and self.y_min <= coord.y <= self.y_max
            and self.z_min <= coord.z <= self.z_max
        )

    def __iter__(self) -> Iterator[MapCoord]:
        for x in range(self.x_min, self.x_max + 1):
            for y in range(self.y_min, self.y_max + 1):
                for z in range(self.z_min, self.z_max + 1):
                    yield MapCoord(x, y, z)


def stable_rng(coord: MapCoord) -> np.random.Generator:
    """
    Random generator seeded by a tile position.

    The same coordinates always give the same sequence, on every platform.
    """
    seed = [coord.x & 0xFFFFFFFF, coord.y & 0xFFFFFFFF, coord.z & 0xFFFFFFFF]
    return np.random.default_rng(seed)


def gen_bool(rng: np.random.Generator, probability: float) -> bool:
    """Bernoulli draw, with the probability clamped to [0, 1]."""
    probability = min(max(probability, 0.0), 1.0)
    return bool(rng.random() < probability)
