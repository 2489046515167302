"""
A small in-memory fortress for the tests.

Snapshots are plain dictionaries in the ``SnapshotSource`` format, so the
same data drives unit tests (through ``MapBlock.from_dict``) and full
exports (through ``SnapshotSource``).
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fortress_vox.context import ExportContext, ExportSettings
from fortress_vox.map import FortressMap
from fortress_vox.records import (
    BLOCK_SIZE,
    BuildingDefinition,
    BuildingInstance,
    InorganicMaterial,
    MapBlock,
    MapInfo,
    MaterialDefinition,
    PlantRaw,
    Tiletype,
)

# Tile type ids
OPEN_SPACE = 0
FLOOR = 1
WALL = 2
ROUGH_FLOOR = 3
ROUGH_WALL = 4
RAMP = 5
TRACK_NS = 6
SHRUB = 7
TRUNK = 8
FIRE_FLOOR = 9
FORTIFICATION = 10
STAIR_UP = 11
TWIG = 12
LIGHT_BRANCH = 13

TILETYPES = [
    {"id": OPEN_SPACE, "name": "OpenSpace", "shape": "EMPTY", "material": "AIR"},
    {"id": FLOOR, "name": "StoneFloorSmooth", "shape": "FLOOR", "special": "SMOOTH", "material": "STONE"},
    {"id": WALL, "name": "StoneWallSmooth", "shape": "WALL", "special": "SMOOTH", "material": "STONE"},
    {"id": ROUGH_FLOOR, "name": "StoneFloor1", "shape": "FLOOR", "special": "NORMAL", "material": "STONE"},
    {"id": ROUGH_WALL, "name": "StoneWall", "shape": "WALL", "special": "NORMAL", "material": "STONE"},
    {"id": RAMP, "name": "StoneRamp", "shape": "RAMP", "special": "SMOOTH", "material": "STONE"},
    {
        "id": TRACK_NS, "name": "StoneFloorTrackNS", "shape": "FLOOR", "special": "TRACK",
        "material": "STONE", "direction": "NS",
    },
    {"id": SHRUB, "name": "Shrub", "shape": "SHRUB", "special": "NORMAL", "material": "PLANT"},
    {"id": TRUNK, "name": "TreeTrunkPillar", "shape": "WALL", "special": "NORMAL", "material": "TREE_MATERIAL"},
    {"id": FIRE_FLOOR, "name": "FurrowedFire", "shape": "FLOOR", "special": "SMOOTH", "material": "FIRE"},
    {
        "id": FORTIFICATION, "name": "ConstructedFortification", "shape": "FORTIFICATION",
        "special": "NONE", "material": "CONSTRUCTION",
    },
    {"id": STAIR_UP, "name": "StoneStairU", "shape": "STAIR_UP", "special": "SMOOTH", "material": "STONE"},
    {"id": TWIG, "name": "TreeTwigs", "shape": "TWIG", "special": "NORMAL", "material": "TREE_MATERIAL"},
    {
        "id": LIGHT_BRANCH, "name": "TreeBranches", "shape": "BRANCH", "special": "NORMAL",
        "material": "TREE_MATERIAL", "direction": "--------",
    },
]

# Material pairs
STONE = [0, 1]
MICROCLINE = [0, 2]
IRON = [0, 3]
OAK = [419, 0]
OAK_WOOD = [420, 0]
OAK_LEAF = [421, 0]
BLOOD = [37, 0]
CLOTH = [55, 0]

MATERIALS = [
    {"mat_pair": STONE, "id": "INORGANIC:GRANITE", "state_color": [120, 120, 120]},
    {"mat_pair": MICROCLINE, "id": "INORGANIC:MICROCLINE", "state_color": [150, 180, 200]},
    {"mat_pair": IRON, "id": "INORGANIC:IRON", "state_color": [140, 140, 150]},
    {"mat_pair": OAK, "id": "PLANT:OAK:STRUCTURAL", "state_color": [90, 60, 30]},
    {"mat_pair": OAK_WOOD, "id": "PLANT:OAK:WOOD", "state_color": [160, 110, 60]},
    {"mat_pair": OAK_LEAF, "id": "PLANT:OAK:LEAF", "state_color": [0, 160, 0]},
    {"mat_pair": BLOOD, "id": "CREATURE:DWARF:BLOOD", "state_color": [150, 0, 0]},
    {"mat_pair": CLOTH, "id": "PLANT:COTTON:THREAD", "state_color": [240, 240, 230]},
]

MATERIAL_FLAGS = ["IS_GEM", "IS_METAL", "IS_GLASS", "IS_STONE"]
INORGANIC_MATERIALS = [
    {"mat_pair": STONE, "token": "GRANITE", "flags": [3]},
    {"mat_pair": MICROCLINE, "token": "MICROCLINE", "flags": [3]},
    {"mat_pair": IRON, "token": "IRON", "flags": [1]},
]

# Leaves all year long: green until the month of Timber, brown after
PLANT_RAWS = [
    {
        "index": 0,
        "id": "OAK",
        "name": "oak",
        "growths": [
            {
                "mat": OAK_LEAF,
                "id": "LEAVES",
                "twigs": True,
                "light_branches": True,
                "prints": [
                    {"color": 2, "timing_start": 0, "timing_end": 268799},
                    {"color": 6, "timing_start": 268800, "timing_end": 403199},
                ],
            },
        ],
    },
]

# Building types
CHAIR = [0, -1, -1]
BED = [1, -1, -1]
DOOR = [8, -1, -1]
FLOODGATE = [9, -1, -1]
STILL = [13, 15, -1]
CUSTOM_WORKSHOP = [13, 23, 0]
BRIDGE = [19, -1, -1]
ROAD_PAVED = [21, -1, -1]
STOCKPILE = [29, -1, -1]
SLAB = [46, -1, -1]
INSTRUMENT = [51, -1, -1]

BUILDING_DEFINITIONS = [
    {"building_type": CHAIR, "id": "Chair"},
    {"building_type": BED, "id": "Bed"},
    {"building_type": DOOR, "id": "Door"},
    {"building_type": FLOODGATE, "id": "Floodgate"},
    {"building_type": STILL, "id": "Workshop/Still"},
    {"building_type": CUSTOM_WORKSHOP, "id": "Workshop/Custom/SOAP_MAKER"},
    {"building_type": BRIDGE, "id": "Bridge"},
    {"building_type": ROAD_PAVED, "id": "RoadPaved"},
    {"building_type": STOCKPILE, "id": "Stockpile"},
    {"building_type": SLAB, "id": "Slab"},
    {"building_type": INSTRUMENT, "id": "Instrument"},
]

# Map position of the test fortress: elevations match map z-levels
MAP_INFO = {
    "block_size_x": 2,
    "block_size_y": 2,
    "block_size_z": 3,
    "block_pos_x": 0,
    "block_pos_y": 0,
    "block_pos_z": 100,
    "world_name": "Testworld",
}


def tile(tiletype: int, material=STONE, **fields) -> dict:
    """One tile of a block, extra fields being the per-tile arrays (water, hidden...)."""
    data = {"tiles": tiletype, "materials": material}
    data.update(fields)
    return data


def block_dict(map_x: int, map_y: int, map_z: int, tiles: dict, default=OPEN_SPACE) -> dict:
    """
    A block in snapshot format.

    Args:
        tiles: {(local_x, local_y): tile(...)}
        default: Tile type of the tiles not listed
    """
    count = BLOCK_SIZE * BLOCK_SIZE
    arrays = {
        "tiles": [default] * count,
        "materials": [[-1, -1]] * count,
        "hidden": [False] * count,
        "water": [0] * count,
        "magma": [0] * count,
        "tree": [[0, 0, 0]] * count,
        "spatters": [[] for _ in range(count)],
    }
    for (x, y), values in tiles.items():
        index = y * BLOCK_SIZE + x
        for key, value in values.items():
            arrays[key][index] = value
    data = {"map_x": map_x, "map_y": map_y, "map_z": map_z}
    data.update(arrays)
    return data


def building_dict(index: int, building_type, pos_min, pos_max, material=STONE, **fields) -> dict:
    data = {
        "index": index,
        "building_type": list(building_type),
        "pos_min": list(pos_min),
        "pos_max": list(pos_max),
        "material": material,
    }
    data.update(fields)
    return data


def snapshot(blocks=(), buildings=(), engravings=(), map_info=None, **extra) -> dict:
    data = {
        "map_info": dict(map_info or MAP_INFO),
        "current_tick": 0,
        "tiletypes": TILETYPES,
        "materials": MATERIALS,
        "inorganic_materials": INORGANIC_MATERIALS,
        "enums": {"material_flags": MATERIAL_FLAGS},
        "plant_raws": PLANT_RAWS,
        "building_definitions": BUILDING_DEFINITIONS,
        "buildings": list(buildings),
        "blocks": list(blocks),
        "engravings": list(engravings),
    }
    data.update(extra)
    return data


def make_context(year_tick: int = 0, map_info=None) -> ExportContext:
    return ExportContext(
        ExportSettings(year_tick=year_tick),
        MapInfo.from_dict(map_info or MAP_INFO),
        tiletypes=[Tiletype.from_dict(t) for t in TILETYPES],
        materials=[MaterialDefinition.from_dict(m) for m in MATERIALS],
        inorganic_materials=[InorganicMaterial.from_dict(m) for m in INORGANIC_MATERIALS],
        material_flag_names=MATERIAL_FLAGS,
        plant_raws=[PlantRaw.from_dict(p) for p in PLANT_RAWS],
        building_definitions=[BuildingDefinition.from_dict(b) for b in BUILDING_DEFINITIONS],
    )


def make_map(blocks, buildings=(), context=None, engravings=()):
    """
    Build a ``FortressMap`` from block dictionaries.

    Returns:
        (fortress_map, context)
    """
    context = context or make_context()
    fortress_map = FortressMap(context)
    fortress_map.add_buildings([BuildingInstance.from_dict(b) for b in buildings])
    for engraving in engravings:
        fortress_map.add_engraving(engraving)
    for block in blocks:
        fortress_map.add_block(MapBlock.from_dict(block))
    return fortress_map, context
