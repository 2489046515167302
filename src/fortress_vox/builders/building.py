"""
Buildings

Buildings are classified by their type id. A building with a registered
prefab (looked up by its definition id, like ``Workshop/Still``) is drawn
from the prefab; the others use a procedural shape, or nothing for kinds
that have no visible structure (zones, stockpiles...).

Each building becomes one material box covering its footprint.
"""

from enum import Enum
from typing import Optional

import numpy as np

from ..direction import DirectionFlat
from ..palette import Generic
from ..shape import BASE, HEIGHT
from .. import shape as sh


class BuildingKind(Enum):
    """Building types, the value is the game's type id."""
    CHAIR = 0
    BED = 1
    TABLE = 2
    COFFIN = 3
    FARM_PLOT = 4
    FURNACE = 5
    DOOR = 8
    FLOODGATE = 9
    BOX = 10
    WEAPON_RACK = 11
    ARMOR_STAND = 12
    WORKSHOP = 13
    CABINET = 14
    STATUE = 15
    WINDOW_GLASS = 16
    WINDOW_GEM = 17
    WELL = 18
    BRIDGE = 19
    ROAD_DIRT = 20
    ROAD_PAVED = 21
    SIEGE_ENGINE = 22
    TRAP = 23
    ANIMAL_TRAP = 24
    SUPPORT = 25
    ARCHERY_TARGET = 26
    CHAIN = 27
    CAGE = 28
    STOCKPILE = 29
    CIVZONE = 30
    WEAPON = 31
    WAGON = 32
    SCREW_PUMP = 33
    CONSTRUCTION = 34
    HATCH = 35
    GRATE_WALL = 36
    GRATE_FLOOR = 37
    BARS_VERTICAL = 38
    BARS_FLOOR = 39
    GEAR_ASSEMBLY = 40
    AXLE_HORIZONTAL = 41
    AXLE_VERTICAL = 42
    WATER_WHEEL = 43
    WINDMILL = 44
    TRACTION_BENCH = 45
    SLAB = 46
    NEST = 47
    NEST_BOX = 48
    HIVE = 49
    ROLLERS = 50
    INSTRUMENT = 51
    BOOKCASE = 52
    DISPLAY_FURNITURE = 53
    OFFERING_PLACE = 54

    @classmethod
    def of(cls, building) -> Optional["BuildingKind"]:
        """Kind of a ``BuildingInstance``, None for unknown type ids."""
        try:
            return cls(building.building_type[0])
        except ValueError:
            return None


# Workshop subtypes, for workshops without a definition
WORKSHOP_SUBTYPES = [
    "Carpenters", "Farmers", "Masons", "Craftsdwarfs", "Jewelers",
    "MetalsmithsForge", "MagmaForge", "Bowyers", "Mechanics", "Siege",
    "Butchers", "Leatherworks", "Tanners", "Clothiers", "Fishery", "Still",
    "Loom", "Quern", "Kennels", "Kitchen", "Ashery", "Dyers", "Millstone",
    "Custom", "Tool",
]
GENERIC_WORKSHOP = "Workshop/Generic"


def _t(*rows: str) -> np.ndarray:
    """Slice from rows of '#' and '.'."""
    return np.array([[c == "#" for c in row] for row in rows], dtype=bool)


E = sh.slice_empty()
CENTER = _t("...", ".#.", "...")
CROSS = _t(".#.", "###", ".#.")

STATUE = sh.box_from_slices(E, CENTER, CROSS, sh.slice_full(), E)
ITEM = sh.box_from_slices(E, E, E, CENTER, E)
TABLE = sh.box_from_slices(E, E, sh.slice_full(), CENTER, E)
HATCH = sh.box_from_slices(E, E, E, sh.slice_full(), E)
COLUMN = sh.box_from_fn(lambda x, y, z: x == 1 and y == 1, dtype=bool)
BED = sh.box_from_slices(E, E, E, _t("###", "###", "..."), E)
BOX = sh.box_from_slices(E, E, E, _t(".#.", "...", "..."), E)
CABINET = sh.box_from_slices(
    _t("###", "...", "..."),
    _t("###", "###", "..."),
    _t("###", "...", "..."),
    _t("###", "###", "..."),
    E,
)
WELL = sh.box_from_slices(
    E,
    _t("...", "###", "..."),
    _t("...", "#.#", "..."),
    _t("###", "#.#", "###"),
    _t("###", "#.#", "###"),
)
ARMOR_STAND = sh.box_from_slices(
    E,
    _t("###", "...", "..."),
    _t(".#.", "...", "..."),
    _t("###", "###", "..."),
    E,
)
WEAPON_RACK = sh.box_from_slices(
    _t("#.#", "...", "..."),
    _t("###", "...", "..."),
    _t("#.#", "...", "..."),
    _t("###", "#.#", "..."),
    E,
)
ARCHERY_TARGET = sh.box_from_slices(
    E,
    _t("###", ".#.", "..."),
    _t("###", ".#.", ".#."),
    _t("###", ".#.", ".#."),
    E,
)
WORKSHOP = sh.box_from_slices(
    np.zeros((9, 9), dtype=bool),
    np.zeros((9, 9), dtype=bool),
    _t(
        "......###",
        "......###",
        "###...###",
        "###......",
        "###......",
        "###......",
        "#######..",
        "#######..",
        "#######..",
    ),
    _t(
        "......#.#",
        ".........",
        "#.#...#.#",
        "....#....",
        ".........",
        ".........",
        "#.#...#..",
        ".........",
        "#.....#..",
    ),
    np.ones((9, 9), dtype=bool),
)

# Shapes that do not depend on the surroundings
FIXED_SHAPES = {
    BuildingKind.STATUE: STATUE,
    BuildingKind.GEAR_ASSEMBLY: STATUE,
    BuildingKind.ANIMAL_TRAP: ITEM,
    BuildingKind.CHAIR: ITEM,
    BuildingKind.CHAIN: ITEM,
    BuildingKind.DISPLAY_FURNITURE: ITEM,
    BuildingKind.OFFERING_PLACE: ITEM,
    BuildingKind.TABLE: TABLE,
    BuildingKind.TRACTION_BENCH: TABLE,
    BuildingKind.HATCH: HATCH,
    BuildingKind.BARS_VERTICAL: COLUMN,
    BuildingKind.GRATE_WALL: COLUMN,
    BuildingKind.SUPPORT: COLUMN,
    BuildingKind.AXLE_VERTICAL: COLUMN,
    BuildingKind.COFFIN: BED,
    BuildingKind.WELL: WELL,
}

# Furniture turning its back to the closest wall
AGAINST_WALL_SHAPES = {
    BuildingKind.BED: BED,
    BuildingKind.BOX: BOX,
    BuildingKind.CABINET: CABINET,
    BuildingKind.BOOKCASE: CABINET,
    BuildingKind.ARMOR_STAND: ARMOR_STAND,
    BuildingKind.WEAPON_RACK: WEAPON_RACK,
}

WINDOW_KINDS = (BuildingKind.WINDOW_GLASS, BuildingKind.WINDOW_GEM)


def connected_shape(conn) -> np.ndarray:
    """Central column opening toward the connected sides, door and window style."""
    layer = np.array([
        [False, conn.n, False],
        [conn.w, True, conn.e],
        [False, conn.s, False],
    ], dtype=bool)
    return sh.box_from_slices(layer, layer, layer, layer, sh.slice_empty())


def door_shape(building, fortress_map) -> np.ndarray:
    conn = fortress_map.neighbouring_flat(
        building.origin,
        lambda o: any(BuildingKind.of(b) == BuildingKind.DOOR for b in o.buildings)
        or (o.tile is not None and o.tile.is_wall()),
    )
    return connected_shape(conn)


def window_shape(building, fortress_map) -> np.ndarray:
    conn = fortress_map.neighbouring_flat(
        building.origin,
        lambda o: any(BuildingKind.of(b) in WINDOW_KINDS for b in o.buildings)
        or (o.tile is not None and o.tile.is_wall()),
    )
    return connected_shape(conn)


def floor_grate_shape(building) -> np.ndarray:
    origin = building.origin
    grate = sh.slice_from_fn(
        lambda x, y: (origin.x + x) % 2 == 0 or (origin.y + y) % 2 == 0,
        dtype=bool,
    )
    return sh.box_from_slices(E, E, E, E, grate)


def archery_shape(building) -> np.ndarray:
    direction = DirectionFlat.from_source(building.direction) or DirectionFlat.NORTH
    return sh.looking_at(ARCHERY_TARGET, direction)


def bridge_box(building, material: int) -> np.ndarray:
    """
    A bridge deck over the whole footprint.

    The deck is the floor layer. North-south bridges get a rim on their
    east and west edges, east-west bridges on their north and south edges.
    """
    dim_x, dim_y, _ = building.bounding_box.dimension()
    direction = DirectionFlat.from_source(building.direction)
    sn = direction in (DirectionFlat.NORTH, DirectionFlat.SOUTH)
    ew = direction in (DirectionFlat.EAST, DirectionFlat.WEST)

    box = np.zeros((HEIGHT, dim_y * BASE, dim_x * BASE), dtype=bool)
    box[HEIGHT - 1] = True
    if sn:
        box[HEIGHT - 2, :, 0] = True
        box[HEIGHT - 2, :, -1] = True
    if ew:
        box[HEIGHT - 2, 0, :] = True
        box[HEIGHT - 2, -1, :] = True
    return sh.box_with_material(box, material)


def procedural_shape(kind: BuildingKind, building, fortress_map) -> Optional[np.ndarray]:
    """Boolean box of a one-tile building, None for kinds with no shape."""
    shape = FIXED_SHAPES.get(kind)
    if shape is not None:
        return shape
    shape = AGAINST_WALL_SHAPES.get(kind)
    if shape is not None:
        return sh.looking_at(shape, fortress_map.wall_direction(building.origin))
    if kind == BuildingKind.DOOR:
        return door_shape(building, fortress_map)
    if kind in WINDOW_KINDS:
        return window_shape(building, fortress_map)
    if kind in (BuildingKind.GRATE_FLOOR, BuildingKind.BARS_FLOOR):
        return floor_grate_shape(building)
    if kind == BuildingKind.ARCHERY_TARGET:
        return archery_shape(building)
    return None


def footprint_box(building, shape: np.ndarray, material: int) -> np.ndarray:
    """Place a shape on the origin tile of a footprint-sized material box."""
    dim_x, dim_y, _ = building.bounding_box.dimension()
    height, size_y, size_x = shape.shape
    box = np.zeros((height, max(dim_y * BASE, size_y), max(dim_x * BASE, size_x)), dtype=np.uint8)
    box[:, :size_y, :size_x] = sh.box_with_material(shape, material)
    return box


def workshop_prefab_ids(building, definition):
    if definition is not None:
        yield definition.id
    subtype = building.building_type[1]
    if 0 <= subtype < len(WORKSHOP_SUBTYPES):
        yield f"Workshop/{WORKSHOP_SUBTYPES[subtype]}"


def build_building(building, fortress_map, context, palette, prefabs) -> Optional[np.ndarray]:
    """
    Build a building.

    Args:
        building: ``BuildingInstance``
        fortress_map: ``FortressMap`` for the neighbour queries
        context: ``ExportContext``
        palette: ``Palette`` receiving the materials
        prefabs: ``PrefabRegistry``

    Returns:
        uint8 material box (H, Dy * BASE, Dx * BASE), None when the
        building has no visible structure
    """
    kind = BuildingKind.of(building)
    if kind is None:
        context.note_skipped("building type", building.building_type)
        return None

    definition = context.building_definition(building.building_type)
    if definition is None:
        context.note_skipped("building definition", building.building_type)

    if kind == BuildingKind.WORKSHOP:
        for prefab_id in workshop_prefab_ids(building, definition):
            prefab = prefabs.building(prefab_id)
            if prefab is not None:
                return prefab.build(building, fortress_map, context, palette)
    elif definition is not None:
        prefab = prefabs.building(definition.id)
        if prefab is not None:
            return prefab.build(building, fortress_map, context, palette)

    material = palette.get(Generic(building.material), context)

    if kind == BuildingKind.BRIDGE:
        return bridge_box(building, material)

    if kind == BuildingKind.WORKSHOP:
        dim_x, dim_y, _ = building.bounding_box.dimension()
        generic = prefabs.building(GENERIC_WORKSHOP)
        if (dim_x, dim_y) == (3, 3):
            if generic is not None:
                return generic.build(building, fortress_map, context, palette)
            return footprint_box(building, WORKSHOP, material)
        shape = np.zeros((HEIGHT, dim_y * BASE, dim_x * BASE), dtype=bool)
        shape[HEIGHT - 2:] = True
        return sh.box_with_material(shape, material)

    shape = procedural_shape(kind, building, fortress_map)
    if shape is None:
        return None
    return footprint_box(building, shape, material)
