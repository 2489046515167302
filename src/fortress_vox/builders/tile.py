"""
Tile Builder

Turns one tile into voxels, sorted into the layers of its block:

1. hidden tiles become a plain Hidden cube and nothing else
2. the structure: a plant, a track or generic terrain
3. water and magma
4. spatters, resting on the structure
5. fire
"""

from typing import Iterator, Tuple

import numpy as np

from ..coords import gen_bool, stable_rng
from ..palette import Default, DefaultMaterial, Generic
from ..records import MatterState, TiletypeMaterial, TiletypeSpecial
from ..voxel import Layer, voxels_from_shape, voxels_from_uniform_shape
from .. import shape as sh
from .plant import build_plant, is_plant
from .terrain import build_terrain
from .track import build_track

# Liquid levels are 1..7, a level 1 puddle still shows as a sheet
MIN_LIQUID_LEVEL = 2
MAX_LIQUID_LEVEL = 7
FIRE_PROBABILITY = 0.1

# Spatter amount giving a certain presence on every free cell
SPATTER_SCALE = {
    # fruits and leaves, 0..10000, there are a lot of them
    MatterState.SOLID: 50000.0,
    # blood and such, 0..255, fully covered would look odd
    MatterState.LIQUID: 512.0,
    # snow, 0..100, full snow covers the ground
    MatterState.POWDER: 100.0,
}


def liquid_shape(level: int) -> np.ndarray:
    level = min(max(level, MIN_LIQUID_LEVEL), MAX_LIQUID_LEVEL)
    return sh.box_from_levels(sh.slice_const(level))


def spatter_probability(spatter) -> float:
    scale = SPATTER_SCALE.get(spatter.state)
    if scale is None:
        return 0.0
    return spatter.amount / scale


def spatter_candidates(occupied: np.ndarray) -> Iterator[Tuple[int, int, int]]:
    """
    Free cells right above an occupied one, in a stable order.

    Args:
        occupied: Boolean box of the structure

    Yields:
        (z, y, x) box indices
    """
    for zi, y, x in sorted(zip(*np.nonzero(occupied))):
        above = zi - 1
        if above >= 0 and not occupied[above, y, x]:
            yield (int(above), int(y), int(x))


def build_spatters(tile, occupied: np.ndarray, rng, context, palette) -> np.ndarray:
    """Spatter cells on top of the structure; the first spatter on a cell wins."""
    box = sh.box_const(0, dtype=np.uint8)
    candidates = list(spatter_candidates(occupied))
    for spatter in tile.spatters:
        probability = spatter_probability(spatter)
        material = None
        for cell in candidates:
            if gen_bool(rng, probability) and box[cell] == 0:
                if material is None:
                    material = palette.get(Generic(spatter.material), context)
                box[cell] = material
    return box


def build_tile(tile, models, fortress_map, context, palette) -> None:
    """
    Build a tile into the layer models of its block.

    Args:
        tile: ``Tile`` to build
        models: ``BlockModels`` of the tile's block
        fortress_map: ``FortressMap`` for neighbour queries
        context: ``ExportContext``
        palette: ``Palette`` receiving the materials
    """
    x, y = tile.local_x, tile.local_y

    if fortress_map.is_hidden(tile.coords):
        hidden = palette.get(Default(DefaultMaterial.HIDDEN), context)
        models.extend(Layer.HIDDEN, voxels_from_uniform_shape(sh.box_full(), x, y, hidden))
        return

    rng = stable_rng(tile.coords)
    tiletype = tile.tiletype

    occupied = sh.box_empty()
    if is_plant(tile):
        plant = build_plant(tile, fortress_map, context, palette)
        occupied |= plant > 0
        models.extend(Layer.VEGETATION, voxels_from_shape(plant, x, y))
    elif tiletype.special == TiletypeSpecial.TRACK:
        # spatters do not rest on rails
        track = build_track(tile, fortress_map, context, palette)
        models.extend(Layer.TERRAIN, voxels_from_shape(track, x, y))
    else:
        terrain, roughness = build_terrain(tile, fortress_map, context, palette)
        occupied |= terrain > 0
        models.extend(Layer.TERRAIN, voxels_from_shape(terrain, x, y))
        models.extend(Layer.ROUGHNESS, voxels_from_shape(roughness, x, y))

    if tile.water > 0:
        water = palette.get(Default(DefaultMaterial.WATER), context)
        models.extend(Layer.LIQUID, voxels_from_uniform_shape(liquid_shape(tile.water), x, y, water))
    if tile.magma > 0:
        magma = palette.get(Default(DefaultMaterial.MAGMA), context)
        models.extend(Layer.LIQUID, voxels_from_uniform_shape(liquid_shape(tile.magma), x, y, magma))

    if tile.spatters:
        spatters = build_spatters(tile, occupied, rng, context, palette)
        models.extend(Layer.SPATTER, voxels_from_shape(spatters, x, y))

    if tiletype.material == TiletypeMaterial.FIRE:
        fire = sh.box_from_fn(lambda *_: bool(rng.random() < FIRE_PROBABILITY), dtype=bool)
        material = palette.get(Default(DefaultMaterial.FIRE), context)
        models.extend(Layer.FIRE, voxels_from_uniform_shape(fire, x, y, material))
