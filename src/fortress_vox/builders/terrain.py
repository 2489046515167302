"""
Terrain Tiles

Floors, walls, fortifications, ramps and stairs. Shapes are chosen from the
tile shape and refined from the neighbours:

- walls hide their inner faces behind the Hidden material
- fortifications open toward non-wall neighbours
- ramps rise toward walls
- stairs twist a quarter turn every level

Rough (natural, unsmoothed) surfaces mix the material with a darker
variant, cell by cell.
"""

from typing import Tuple

import numpy as np

from ..coords import stable_rng
from ..palette import Default, DefaultMaterial, DarkTileGeneric, EffectiveMaterial, TileGeneric
from ..records import TiletypeMaterial, TiletypeShape, TiletypeSpecial
from .. import shape as sh

FLOOR_LIKE = (TiletypeShape.FLOOR, TiletypeShape.BOULDER, TiletypeShape.PEBBLES)
# Shape layer of the floor, and of the grain above rough floors
FLOOR_LAYER = sh.HEIGHT - 1
ROUGHNESS_LAYER = sh.HEIGHT - 2


def is_rough(tiletype) -> bool:
    """Natural surface: not smoothed, not constructed, not ice."""
    smoothed = tiletype.special in (TiletypeSpecial.SMOOTH, TiletypeSpecial.SMOOTH_DEAD)
    worked = tiletype.material in (TiletypeMaterial.CONSTRUCTION, TiletypeMaterial.FROZEN_LIQUID)
    return not smoothed and not worked


def is_engraved(fortress_map, coords) -> bool:
    return fortress_map.get(coords).engraving is not None


def ramp_levels(fortress_map, coords) -> np.ndarray:
    """
    Column heights of a ramp, from the contact heights of its neighbours.

    Corners take the highest of their two sides and diagonal, edges the
    mean of their corners, and the center half of the highest corner.
    Unknown neighbours count as floors.

    Returns:
        int array (3, 3) indexed [y][x]
    """
    c = fortress_map.neighbouring_8flat(
        coords,
        lambda o: o.tile.ramp_contact_height() if o.tile is not None else 1
    )
    nw = max(c.nw, c.n, c.w)
    ne = max(c.ne, c.n, c.e)
    sw = max(c.sw, c.s, c.w)
    se = max(c.se, c.s, c.e)
    top = max(nw, ne, sw, se)
    return np.array([
        [nw, (nw + ne) // 2, ne],
        [(nw + sw) // 2, top // 2, (ne + se) // 2],
        [sw, (sw + se) // 2, se],
    ])


def ramp_shape(fortress_map, coords) -> np.ndarray:
    return sh.box_from_levels(ramp_levels(fortress_map, coords))


def stairs(up: bool, middle: bool, down: bool, floor: bool, z: int) -> np.ndarray:
    """
    Spiral stair section, turned a quarter every level.

    Args:
        up: Steps toward the level above
        middle: Steps inside the level
        down: Opening toward the level below
        floor: Solid floor under the steps
        z: Map elevation, sets the rotation

    Returns:
        Boolean box
    """
    bottom = down or floor
    shape = np.array([
        [[False, False, False],
         [False, False, False],
         [up, up, up]],
        [[False, False, middle],
         [False, False, middle],
         [False, False, middle]],
        [[middle, middle, middle],
         [False, False, False],
         [False, False, False]],
        [[middle, False, False],
         [middle, False, False],
         [middle, False, False]],
        [[floor, floor, floor],
         [floor, floor, floor],
         [bottom, bottom, bottom]],
    ], dtype=bool)
    return sh.rotated_by(shape, z % 4)


STAIRS = {
    TiletypeShape.STAIR_UP: (True, True, False, True),
    TiletypeShape.STAIR_DOWN: (False, False, True, False),
    TiletypeShape.STAIR_UPDOWN: (True, True, True, False),
}

# Shapes with terrain voxels
TERRAIN_SHAPES = frozenset(
    FLOOR_LIKE + (TiletypeShape.WALL, TiletypeShape.FORTIFICATION, TiletypeShape.RAMP) + tuple(STAIRS)
)


def _checkerboard(mat1: int, mat2: int, parity: int) -> np.ndarray:
    return sh.slice_from_fn(
        lambda x, y: mat1 if (x + y) % 2 == parity else mat2,
        dtype=np.uint8
    )


def build_terrain(tile, fortress_map, context, palette) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the terrain of a tile.

    Args:
        tile: The ``Tile`` to build
        fortress_map: ``FortressMap`` for the neighbour queries
        context: ``ExportContext``
        palette: ``Palette`` receiving the materials

    Returns:
        (terrain, roughness) uint8 material boxes
    """
    rng = stable_rng(tile.coords)
    coords = tile.coords
    tiletype = tile.tiletype
    if tiletype.shape not in TERRAIN_SHAPES:
        return sh.box_const(0, dtype=np.uint8), sh.box_const(0, dtype=np.uint8)

    material = TileGeneric(tile.material, tiletype.material)
    material_dark = DarkTileGeneric(tile.material, tiletype.material)

    rough = is_rough(tiletype)
    engraved = is_engraved(fortress_map, coords)

    mat1 = palette.get(material, context)
    mat2 = palette.get(material_dark, context) if (engraved or rough) else 0

    def random_mat() -> int:
        return (mat1, mat2)[int(rng.integers(2))]

    roughness = sh.box_const(0, dtype=np.uint8)

    if tiletype.shape in FLOOR_LIKE:
        terrain = sh.box_const(0, dtype=np.uint8)
        if engraved:
            floor = _checkerboard(mat1, mat2, 1)
        elif rough:
            floor = sh.slice_from_fn(lambda x, y: random_mat(), dtype=np.uint8)
            roughness[ROUGHNESS_LAYER] = np.where(floor == mat2, mat2, 0)
        else:
            floor = sh.slice_const(mat1, dtype=np.uint8)
        terrain[FLOOR_LAYER] = floor
        return terrain, roughness

    if tiletype.shape == TiletypeShape.WALL:
        if rough:
            terrain = sh.box_from_fn(lambda x, y, z: random_mat(), dtype=np.uint8)
        elif engraved:
            even = _checkerboard(mat1, mat2, 0)
            odd = _checkerboard(mat1, mat2, 1)
            terrain = sh.box_from_slices(even, odd, even, even, sh.slice_const(mat1, dtype=np.uint8))
        else:
            terrain = sh.box_const(mat1, dtype=np.uint8)

        # Inner faces are never seen, unless the wall is see-through
        if EffectiveMaterial.from_material(material, context).transparency is None:
            c = fortress_map.neighbouring_8flat(coords, lambda o: o.tile is not None and o.tile.is_wall())
            inside = np.array([
                [c.n and c.w and c.nw, c.n, c.n and c.e and c.ne],
                [c.w, True, c.e],
                [c.s and c.w and c.sw, c.s, c.s and c.e and c.se],
            ], dtype=bool)
            hidden = palette.get(Default(DefaultMaterial.HIDDEN), context)
            terrain = np.where(inside[np.newaxis, :, :], hidden, terrain).astype(np.uint8)
        return terrain, roughness

    if tiletype.shape == TiletypeShape.FORTIFICATION:
        conn = fortress_map.neighbouring_flat(coords, lambda o: o.tile is not None and o.tile.is_wall())
        battlement = np.array([
            [True, conn.n, True],
            [conn.w, False, conn.e],
            [True, conn.s, True],
        ], dtype=bool)
        shape = sh.box_from_slices(battlement, battlement, sh.slice_full(), sh.slice_full(), sh.slice_full())
    elif tiletype.shape in STAIRS:
        shape = stairs(*STAIRS[tiletype.shape], coords.z)
    else:
        shape = ramp_shape(fortress_map, coords)

    if rough:
        terrain = sh.box_from_shape_fn(shape, random_mat)
    else:
        terrain = sh.box_with_material(shape, mat1)
    return terrain, roughness
