"""
Plants and Trees

A plant tile is classified into a part (trunk, branches, twigs, roots,
caps, saplings, shrubs), each with its own hand-made shape. Branches
connect to the neighbouring parts of the same tree, a tree being
identified by the coordinates of its origin tile.

Seasonal growths (leaves, flowers, fruits) are sprinkled over the part,
colored after the growth print of the exported time of the year.
"""

from enum import Enum
from typing import List, Optional

import numpy as np

from ..coords import stable_rng
from ..direction import NeighbouringFlat, connectivity_from_direction_string
from ..palette import Default, DefaultMaterial, Generic, Material, Plant
from ..records import MatPair, TiletypeMaterial, TiletypeShape, TiletypeSpecial
from .. import shape as sh

# Material type of plant tiles, the index being the plant raw
PLANT_MAT_TYPE = 419
# Material type of a plant's wood
WOOD_MAT_TYPE = 420

# Direction string of branches connected on every side
LIGHT_BRANCH_DIRECTION = "--------"
GROWTH_PROBABILITY = 1 / 5
SHRUB_PROBABILITY = 1 / 7

PLANT_MATERIALS = (
    TiletypeMaterial.ROOT,
    TiletypeMaterial.MUSHROOM,
    TiletypeMaterial.PLANT,
    TiletypeMaterial.TREE_MATERIAL,
)
PLANT_SHAPES = (
    TiletypeShape.SAPLING,
    TiletypeShape.TWIG,
    TiletypeShape.SHRUB,
    TiletypeShape.BRANCH,
)


class PlantPart(Enum):
    ROOT = "root"
    CAP = "cap"
    SAPLING = "sapling"
    SHRUB = "shrub"
    TRUNK = "trunk"
    HEAVY_BRANCH = "heavy_branch"
    LIGHT_BRANCH = "light_branch"
    TWIG = "twig"

    @property
    def growth_flag(self) -> Optional[str]:
        """The ``TreeGrowth`` attribute telling if a growth appears on this part."""
        return _GROWTH_FLAGS[self]


_GROWTH_FLAGS = {
    PlantPart.ROOT: "roots",
    PlantPart.CAP: "cap",
    PlantPart.SAPLING: "sapling",
    PlantPart.SHRUB: None,
    PlantPart.TRUNK: "trunk",
    PlantPart.HEAVY_BRANCH: "heavy_branches",
    PlantPart.LIGHT_BRANCH: "light_branches",
    PlantPart.TWIG: "twigs",
}

WOODY_PARTS = (PlantPart.ROOT, PlantPart.HEAVY_BRANCH, PlantPart.LIGHT_BRANCH, PlantPart.TRUNK)


def is_plant(tile) -> bool:
    tiletype = tile.tiletype
    return (
        tiletype.material in PLANT_MATERIALS
        or tiletype.shape in PLANT_SHAPES
        or tile.material.mat_type == PLANT_MAT_TYPE
    )


def plant_part(tiletype) -> PlantPart:
    if tiletype.material == TiletypeMaterial.ROOT:
        return PlantPart.ROOT
    if tiletype.material == TiletypeMaterial.MUSHROOM:
        return PlantPart.CAP
    if tiletype.shape == TiletypeShape.SAPLING:
        return PlantPart.SAPLING
    if tiletype.shape == TiletypeShape.TWIG:
        return PlantPart.TWIG
    if tiletype.shape == TiletypeShape.SHRUB:
        return PlantPart.SHRUB
    if tiletype.shape == TiletypeShape.BRANCH:
        if tiletype.direction == LIGHT_BRANCH_DIRECTION:
            return PlantPart.LIGHT_BRANCH
        return PlantPart.HEAVY_BRANCH
    return PlantPart.TRUNK


def _cross(center: bool = True, n: bool = True, e: bool = True, s: bool = True, w: bool = True,
           corners: bool = False) -> np.ndarray:
    return np.array([
        [corners, n, corners],
        [w, center, e],
        [corners, s, corners],
    ], dtype=bool)


def _center(value: bool) -> np.ndarray:
    return _cross(center=value, n=False, e=False, s=False, w=False)


def _random_slice(rng, probability: float) -> np.ndarray:
    return sh.slice_from_fn(lambda x, y: bool(rng.random() < probability), dtype=bool)


def structure_shape(tile, part: PlantPart, fortress_map) -> np.ndarray:
    """Boolean box of the wood or stem of a plant part."""
    rng = stable_rng(tile.coords)
    coords = tile.coords
    origin = tile.tree_origin

    def same_tree(parts):
        def check(occupancy) -> bool:
            other = occupancy.tile
            return (
                other is not None
                and other.tree_origin == origin
                and plant_part(other.tiletype) in parts
            )
        return check

    if part in (PlantPart.TRUNK, PlantPart.ROOT, PlantPart.CAP):
        on_floor = coords == origin
        cross = _cross()
        return sh.box_from_slices(cross, cross, cross, cross, _cross(corners=on_floor))

    if part in (PlantPart.SAPLING, PlantPart.SHRUB):
        empty = sh.slice_empty()
        return sh.box_from_slices(
            empty, empty, empty, _random_slice(rng, SHRUB_PROBABILITY), sh.slice_full()
        )

    if part == PlantPart.HEAVY_BRANCH:
        came_from = connectivity_from_direction_string(tile.tiletype.direction)
        to = fortress_map.neighbouring(coords, same_tree((PlantPart.LIGHT_BRANCH,)))
        flat_to = NeighbouringFlat(n=to.n, e=to.e, s=to.s, w=to.w)
        arms = flat_to | came_from
        return sh.box_from_slices(
            _center(to.a),
            _center(to.a),
            _cross(n=arms.n, e=arms.e, s=arms.s, w=arms.w),
            _cross(center=False, n=came_from.n, e=came_from.e, s=came_from.s, w=came_from.w),
            sh.slice_empty(),
        )

    if part == PlantPart.LIGHT_BRANCH:
        c = fortress_map.neighbouring(coords, same_tree((PlantPart.HEAVY_BRANCH, PlantPart.TWIG)))
        return sh.box_from_slices(
            _center(c.a),
            _cross(n=c.n, e=c.e, s=c.s, w=c.w),
            _center(c.b),
            _center(c.b),
            _center(c.b),
        )

    # twig
    c = fortress_map.neighbouring(coords, same_tree((PlantPart.LIGHT_BRANCH,)))
    empty = sh.slice_empty()
    return sh.box_from_slices(
        _cross(center=False, n=c.n, e=c.e, s=c.s, w=c.w),
        empty,
        empty,
        empty,
        _center(c.b),
    )


def growth_shape(part: PlantPart, rng) -> np.ndarray:
    """Boolean box of the cells where growths may appear."""
    empty = sh.slice_empty()
    p = GROWTH_PROBABILITY

    if part in (PlantPart.ROOT, PlantPart.TRUNK, PlantPart.CAP, PlantPart.HEAVY_BRANCH):
        def corners():
            return sh.slice_from_fn(
                lambda x, y: x != 1 and y != 1 and bool(rng.random() < p), dtype=bool
            )
        return sh.box_from_slices(empty, corners(), corners(), corners(), empty)

    if part in (PlantPart.TWIG, PlantPart.LIGHT_BRANCH):
        first = _random_slice(rng, p)
        middle = _random_slice(rng, p)
        middle[1][1] = True
        last = _random_slice(rng, p)
        return sh.box_from_slices(empty, first, middle, last, empty)

    # sapling and shrub
    return sh.box_from_slices(empty, empty, empty, _random_slice(rng, p), empty)


def growth_materials(tile, part: PlantPart, context) -> List[Material]:
    """Materials of the growths present on a part at the exported tick."""
    plant_raw = context.plant_raw(tile.material.mat_index)
    if plant_raw is None:
        return []

    tick = context.year_tick
    flag = part.growth_flag
    materials = []
    for growth in plant_raw.growths:
        if not growth.timing_contains(tick):
            continue
        if flag is not None and not getattr(growth, flag):
            continue
        current = next((p for p in growth.prints if p.timing_contains(tick)), None)
        fresh = min(growth.prints, key=lambda p: p.timing_start, default=None)
        if current is not None and fresh is not None:
            materials.append(Plant(growth.mat, fresh.color, current.color))
        else:
            materials.append(Generic(growth.mat))
    return materials


def build_plant(tile, fortress_map, context, palette) -> np.ndarray:
    """
    Build a plant tile.

    Returns:
        uint8 material box, structure and growths
    """
    part = plant_part(tile.tiletype)
    alive = tile.tiletype.special not in (TiletypeSpecial.DEAD, TiletypeSpecial.SMOOTH_DEAD)

    if part in WOODY_PARTS:
        # the structure material of a plant is a dull brown, its wood looks better
        structure_material = Generic(MatPair(WOOD_MAT_TYPE, tile.material.mat_index))
    elif alive:
        structure_material = Default(DefaultMaterial.PLANT)
    else:
        structure_material = Default(DefaultMaterial.DEAD_PLANT)

    box = sh.box_with_material(
        structure_shape(tile, part, fortress_map),
        palette.get(structure_material, context),
    )

    growths = [palette.get(m, context) for m in growth_materials(tile, part, context)]
    if alive and growths:
        rng = stable_rng(tile.coords)
        shape = growth_shape(part, rng)
        growth_box = sh.box_from_shape_fn(shape, lambda: growths[int(rng.integers(len(growths)))])
        box = np.where(growth_box > 0, growth_box, box).astype(np.uint8)
    return box
