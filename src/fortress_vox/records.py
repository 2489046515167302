"""
Source Records

Typed views of everything the game reports: tile types, materials, plant
raws, building definitions, and the per-block tile arrays. All records can
be decoded from plain dictionaries (the JSON snapshot format) and encoded
back with ``to_dict``.

Enumerations are exchanged by name. Names the package does not know decode
to a neutral member (``NONE``/``OTHER``) so newer game versions do not break
the export.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Optional, Tuple

from .coords import BoundingBox, MapCoord

# Tiles per block side
BLOCK_SIZE = 16
# Tiles per block
BLOCK_TILES = BLOCK_SIZE * BLOCK_SIZE


def _decode_enum(enum_cls, value, default):
    if value is None:
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls[str(value).upper()]
    except KeyError:
        return default


class TiletypeShape(Enum):
    NONE = "NONE"
    EMPTY = "EMPTY"
    FLOOR = "FLOOR"
    BOULDER = "BOULDER"
    PEBBLES = "PEBBLES"
    WALL = "WALL"
    FORTIFICATION = "FORTIFICATION"
    STAIR_UP = "STAIR_UP"
    STAIR_DOWN = "STAIR_DOWN"
    STAIR_UPDOWN = "STAIR_UPDOWN"
    RAMP = "RAMP"
    RAMP_TOP = "RAMP_TOP"
    BROOK_BED = "BROOK_BED"
    BROOK_TOP = "BROOK_TOP"
    TREE_SHAPE = "TREE_SHAPE"
    SAPLING = "SAPLING"
    SHRUB = "SHRUB"
    ENDLESS_PIT = "ENDLESS_PIT"
    BRANCH = "BRANCH"
    TRUNK_BRANCH = "TRUNK_BRANCH"
    TWIG = "TWIG"


class TiletypeMaterial(Enum):
    NONE = "NONE"
    AIR = "AIR"
    SOIL = "SOIL"
    STONE = "STONE"
    FEATURE = "FEATURE"
    LAVA_STONE = "LAVA_STONE"
    MINERAL = "MINERAL"
    FROZEN_LIQUID = "FROZEN_LIQUID"
    CONSTRUCTION = "CONSTRUCTION"
    GRASS_LIGHT = "GRASS_LIGHT"
    GRASS_DARK = "GRASS_DARK"
    GRASS_DRY = "GRASS_DRY"
    GRASS_DEAD = "GRASS_DEAD"
    PLANT = "PLANT"
    HFS = "HFS"
    CAMPFIRE = "CAMPFIRE"
    FIRE = "FIRE"
    ASHES = "ASHES"
    MAGMA = "MAGMA"
    DRIFTWOOD = "DRIFTWOOD"
    POOL = "POOL"
    BROOK = "BROOK"
    RIVER = "RIVER"
    ROOT = "ROOT"
    TREE_MATERIAL = "TREE_MATERIAL"
    MUSHROOM = "MUSHROOM"
    UNDERWORLD_GATE = "UNDERWORLD_GATE"


class TiletypeSpecial(Enum):
    NONE = "NONE"
    NORMAL = "NORMAL"
    RIVER_SOURCE = "RIVER_SOURCE"
    WATERFALL = "WATERFALL"
    SMOOTH = "SMOOTH"
    FURROWED = "FURROWED"
    WET = "WET"
    DEAD = "DEAD"
    WORN_1 = "WORN_1"
    WORN_2 = "WORN_2"
    WORN_3 = "WORN_3"
    TRACK = "TRACK"
    SMOOTH_DEAD = "SMOOTH_DEAD"


class MatterState(Enum):
    SOLID = "SOLID"
    LIQUID = "LIQUID"
    GAS = "GAS"
    POWDER = "POWDER"
    PASTE = "PASTE"
    PRESSED = "PRESSED"
    OTHER = "OTHER"


class FlowType(Enum):
    MIASMA = "MIASMA"
    STEAM = "STEAM"
    MIST = "MIST"
    MATERIAL_DUST = "MATERIAL_DUST"
    MAGMA_MIST = "MAGMA_MIST"
    SMOKE = "SMOKE"
    DRAGONFIRE = "DRAGONFIRE"
    FIRE = "FIRE"
    WEB = "WEB"
    MATERIAL_GAS = "MATERIAL_GAS"
    MATERIAL_VAPOR = "MATERIAL_VAPOR"
    OCEAN_WAVE = "OCEAN_WAVE"
    SEA_FOAM = "SEA_FOAM"
    ITEM_CLOUD = "ITEM_CLOUD"
    CAMP_FIRE = "CAMP_FIRE"
    OTHER = "OTHER"


@dataclass(frozen=True)
class MatPair:
    """Material identifier: (material type, material index)."""
    mat_type: int = -1
    mat_index: int = -1

    @classmethod
    def from_dict(cls, data) -> "MatPair":
        if data is None:
            return cls()
        if isinstance(data, (list, tuple)):
            return cls(int(data[0]), int(data[1]))
        return cls(int(data.get("mat_type", -1)), int(data.get("mat_index", -1)))

    def to_dict(self) -> list:
        return [self.mat_type, self.mat_index]


@dataclass(frozen=True)
class Tiletype:
    """Classification of a tile type index."""
    id: int
    name: str = ""
    shape: TiletypeShape = TiletypeShape.NONE
    special: TiletypeSpecial = TiletypeSpecial.NONE
    material: TiletypeMaterial = TiletypeMaterial.NONE
    variant: str = ""
    direction: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Tiletype":
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            shape=_decode_enum(TiletypeShape, data.get("shape"), TiletypeShape.NONE),
            special=_decode_enum(TiletypeSpecial, data.get("special"), TiletypeSpecial.NONE),
            material=_decode_enum(TiletypeMaterial, data.get("material"), TiletypeMaterial.NONE),
            variant=data.get("variant", ""),
            direction=data.get("direction", "") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "shape": self.shape.value,
            "special": self.special.value,
            "material": self.material.value,
            "variant": self.variant,
            "direction": self.direction,
        }


@dataclass(frozen=True)
class Spatter:
    material: MatPair
    amount: int
    state: MatterState

    @classmethod
    def from_dict(cls, data: dict) -> "Spatter":
        return cls(
            material=MatPair.from_dict(data.get("material")),
            amount=int(data.get("amount", 0)),
            state=_decode_enum(MatterState, data.get("state"), MatterState.OTHER),
        )

    def to_dict(self) -> dict:
        return {"material": self.material.to_dict(), "amount": self.amount, "state": self.state.value}


@dataclass(frozen=True)
class Engraving:
    pos: MapCoord
    quality: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "Engraving":
        return cls(pos=MapCoord(*data["pos"]), quality=int(data.get("quality", 0)))

    def to_dict(self) -> dict:
        return {"pos": list(self.pos.as_tuple()), "quality": self.quality}


@dataclass(frozen=True)
class FlowInfo:
    type: FlowType
    density: int
    pos: MapCoord
    material: MatPair = MatPair()

    @classmethod
    def from_dict(cls, data: dict) -> "FlowInfo":
        return cls(
            type=_decode_enum(FlowType, data.get("type"), FlowType.OTHER),
            density=int(data.get("density", 0)),
            pos=MapCoord(*data["pos"]),
            material=MatPair.from_dict(data.get("material")),
        )

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "density": self.density,
            "pos": list(self.pos.as_tuple()),
            "material": self.material.to_dict(),
        }


@dataclass(frozen=True)
class BuildingItem:
    """An item attached to a building. Mode 2 marks a construction material."""
    material: MatPair
    mode: int

    @classmethod
    def from_dict(cls, data: dict) -> "BuildingItem":
        return cls(material=MatPair.from_dict(data.get("material")), mode=int(data.get("mode", 0)))

    def to_dict(self) -> dict:
        return {"material": self.material.to_dict(), "mode": self.mode}


# Building flag bit set when the building is fully constructed
BUILDING_FLAG_EXISTS = 0b1


@dataclass(frozen=True)
class BuildingInstance:
    """A building as reported by the game."""
    index: int
    building_type: Tuple[int, int, int]
    bounding_box: BoundingBox
    material: MatPair = MatPair()
    flags: int = BUILDING_FLAG_EXISTS
    is_room: bool = False
    direction: Optional[int] = None
    items: Tuple[BuildingItem, ...] = ()

    @property
    def origin(self) -> MapCoord:
        return self.bounding_box.origin

    @property
    def exists(self) -> bool:
        return bool(self.flags & BUILDING_FLAG_EXISTS)

    def build_materials(self) -> List[MatPair]:
        return [item.material for item in self.items if item.mode == 2]

    def content_materials(self) -> List[MatPair]:
        return [item.material for item in self.items if item.mode != 2]

    @classmethod
    def from_dict(cls, data: dict) -> "BuildingInstance":
        (x0, y0, z0), (x1, y1, z1) = data["pos_min"], data["pos_max"]
        building_type = data.get("building_type", [-1, -1, -1])
        return cls(
            index=int(data.get("index", -1)),
            building_type=tuple(int(v) for v in building_type),
            bounding_box=BoundingBox(x0, x1, y0, y1, z0, z1),
            material=MatPair.from_dict(data.get("material")),
            flags=int(data.get("flags", BUILDING_FLAG_EXISTS)),
            is_room=bool(data.get("is_room", False)),
            direction=data.get("direction"),
            items=tuple(BuildingItem.from_dict(i) for i in data.get("items", [])),
        )

    def to_dict(self) -> dict:
        b = self.bounding_box
        return {
            "index": self.index,
            "building_type": list(self.building_type),
            "pos_min": [b.x_min, b.y_min, b.z_min],
            "pos_max": [b.x_max, b.y_max, b.z_max],
            "material": self.material.to_dict(),
            "flags": self.flags,
            "is_room": self.is_room,
            "direction": self.direction,
            "items": [i.to_dict() for i in self.items],
        }


def _tile_array(data: dict, key: str, default, convert=None) -> list:
    values = data.get(key)
    if values is None:
        return [default] * BLOCK_TILES
    if convert is not None:
        values = [convert(v) for v in values]
    return list(values) + [default] * (BLOCK_TILES - len(values))


@dataclass
class MapBlock:
    """
    A 16x16x1 tile chunk of the map.

    ``map_x``, ``map_y`` and ``map_z`` are tile coordinates of the block's
    north-west corner. Per-tile arrays are indexed by ``y * 16 + x``.
    """
    map_x: int
    map_y: int
    map_z: int
    tiles: List[int] = field(default_factory=list)
    materials: List[MatPair] = field(default_factory=list)
    base_materials: List[MatPair] = field(default_factory=list)
    vein_materials: List[MatPair] = field(default_factory=list)
    hidden: List[bool] = field(default_factory=list)
    water: List[int] = field(default_factory=list)
    magma: List[int] = field(default_factory=list)
    tree: List[Tuple[int, int, int]] = field(default_factory=list)
    grass_percent: List[int] = field(default_factory=list)
    spatters: List[List[Spatter]] = field(default_factory=list)
    flows: List[FlowInfo] = field(default_factory=list)
    buildings: List[BuildingInstance] = field(default_factory=list)

    @property
    def coords(self) -> MapCoord:
        return MapCoord(self.map_x, self.map_y, self.map_z)

    @classmethod
    def from_dict(cls, data: dict) -> "MapBlock":
        block = cls(
            map_x=int(data["map_x"]),
            map_y=int(data["map_y"]),
            map_z=int(data["map_z"]),
            flows=[FlowInfo.from_dict(f) for f in data.get("flows", [])],
            buildings=[BuildingInstance.from_dict(b) for b in data.get("buildings", [])],
        )
        tiles = data.get("tiles") or []
        if not tiles:
            # blocks without tile data still carry the building list
            return block

        block.tiles = _tile_array(data, "tiles", -1, int)
        block.materials = _tile_array(data, "materials", MatPair(), MatPair.from_dict)
        block.base_materials = _tile_array(data, "base_materials", MatPair(), MatPair.from_dict)
        block.vein_materials = _tile_array(data, "vein_materials", MatPair(), MatPair.from_dict)
        block.hidden = _tile_array(data, "hidden", False, bool)
        block.water = _tile_array(data, "water", 0, int)
        block.magma = _tile_array(data, "magma", 0, int)
        block.tree = _tile_array(data, "tree", (0, 0, 0), tuple)
        block.grass_percent = _tile_array(data, "grass_percent", 0, int)
        block.spatters = _tile_array(
            data, "spatters", [], lambda pile: [Spatter.from_dict(s) for s in pile]
        )
        return block

    def to_dict(self) -> dict:
        return {
            "map_x": self.map_x,
            "map_y": self.map_y,
            "map_z": self.map_z,
            "tiles": list(self.tiles),
            "materials": [m.to_dict() for m in self.materials],
            "base_materials": [m.to_dict() for m in self.base_materials],
            "vein_materials": [m.to_dict() for m in self.vein_materials],
            "hidden": list(self.hidden),
            "water": list(self.water),
            "magma": list(self.magma),
            "tree": [list(t) for t in self.tree],
            "grass_percent": list(self.grass_percent),
            "spatters": [[s.to_dict() for s in pile] for pile in self.spatters],
            "flows": [f.to_dict() for f in self.flows],
            "buildings": [b.to_dict() for b in self.buildings],
        }


@dataclass
class BlockList:
    """One batch of blocks, as streamed by the source."""
    blocks: List[MapBlock] = field(default_factory=list)
    engravings: List[Engraving] = field(default_factory=list)


@dataclass(frozen=True)
class MapInfo:
    """Size and position of the loaded map, in blocks."""
    block_size_x: int
    block_size_y: int
    block_size_z: int
    block_pos_x: int = 0
    block_pos_y: int = 0
    block_pos_z: int = 0
    world_name: str = ""
    save_name: str = ""
    adventure: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "MapInfo":
        return cls(
            block_size_x=int(data["block_size_x"]),
            block_size_y=int(data["block_size_y"]),
            block_size_z=int(data["block_size_z"]),
            block_pos_x=int(data.get("block_pos_x", 0)),
            block_pos_y=int(data.get("block_pos_y", 0)),
            block_pos_z=int(data.get("block_pos_z", 0)),
            world_name=data.get("world_name", ""),
            save_name=data.get("save_name", ""),
            adventure=bool(data.get("adventure", False)),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MaterialDefinition:
    mat_pair: MatPair
    id: str
    name: str = ""
    state_color: Tuple[int, int, int] = (0, 0, 0)

    @classmethod
    def from_dict(cls, data: dict) -> "MaterialDefinition":
        return cls(
            mat_pair=MatPair.from_dict(data.get("mat_pair")),
            id=data.get("id", ""),
            name=data.get("name", ""),
            state_color=tuple(int(c) for c in data.get("state_color", (0, 0, 0))[:3]),
        )

    def to_dict(self) -> dict:
        return {
            "mat_pair": self.mat_pair.to_dict(),
            "id": self.id,
            "name": self.name,
            "state_color": list(self.state_color),
        }


@dataclass(frozen=True)
class InorganicMaterial:
    """Inorganic material info; ``flags`` index into the material flag enum."""
    mat_pair: MatPair
    token: str = ""
    flags: Tuple[int, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "InorganicMaterial":
        return cls(
            mat_pair=MatPair.from_dict(data.get("mat_pair")),
            token=data.get("token", ""),
            flags=tuple(int(f) for f in data.get("flags", [])),
        )

    def to_dict(self) -> dict:
        return {"mat_pair": self.mat_pair.to_dict(), "token": self.token, "flags": list(self.flags)}


def _timing_contains(start: int, end: int, tick: int) -> bool:
    # negative bounds are open
    low = start if start >= 0 else float("-inf")
    high = end if end >= 0 else float("inf")
    return low <= tick <= high


@dataclass(frozen=True)
class GrowthPrint:
    """Display color of a growth over a time window (color is a console color)."""
    color: int
    timing_start: int = -1
    timing_end: int = -1
    priority: int = 0

    def timing_contains(self, tick: int) -> bool:
        return _timing_contains(self.timing_start, self.timing_end, tick)

    @classmethod
    def from_dict(cls, data: dict) -> "GrowthPrint":
        return cls(
            color=int(data.get("color", 0)),
            timing_start=int(data.get("timing_start", -1)),
            timing_end=int(data.get("timing_end", -1)),
            priority=int(data.get("priority", 0)),
        )

    def to_dict(self) -> dict:
        return asdict(self)


GROWTH_PARTS = ("twigs", "light_branches", "heavy_branches", "trunk", "roots", "cap", "sapling")


@dataclass(frozen=True)
class TreeGrowth:
    """A seasonal plant growth (leaves, flowers, fruits)."""
    mat: MatPair
    id: str = ""
    prints: Tuple[GrowthPrint, ...] = ()
    timing_start: int = -1
    timing_end: int = -1
    twigs: bool = False
    light_branches: bool = False
    heavy_branches: bool = False
    trunk: bool = False
    roots: bool = False
    cap: bool = False
    sapling: bool = False

    def timing_contains(self, tick: int) -> bool:
        return _timing_contains(self.timing_start, self.timing_end, tick)

    @classmethod
    def from_dict(cls, data: dict) -> "TreeGrowth":
        return cls(
            mat=MatPair.from_dict(data.get("mat")),
            id=data.get("id", ""),
            prints=tuple(GrowthPrint.from_dict(p) for p in data.get("prints", [])),
            timing_start=int(data.get("timing_start", -1)),
            timing_end=int(data.get("timing_end", -1)),
            **{part: bool(data.get(part, False)) for part in GROWTH_PARTS},
        )

    def to_dict(self) -> dict:
        data = {
            "mat": self.mat.to_dict(),
            "id": self.id,
            "prints": [p.to_dict() for p in self.prints],
            "timing_start": self.timing_start,
            "timing_end": self.timing_end,
        }
        data.update({part: getattr(self, part) for part in GROWTH_PARTS})
        return data


@dataclass(frozen=True)
class PlantRaw:
    index: int
    id: str = ""
    name: str = ""
    growths: Tuple[TreeGrowth, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "PlantRaw":
        return cls(
            index=int(data.get("index", -1)),
            id=data.get("id", ""),
            name=data.get("name", ""),
            growths=tuple(TreeGrowth.from_dict(g) for g in data.get("growths", [])),
        )

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "id": self.id,
            "name": self.name,
            "growths": [g.to_dict() for g in self.growths],
        }


@dataclass(frozen=True)
class BuildingDefinition:
    """Maps a (type, subtype, custom) triple to a stable identifier like ``Workshop/Still``."""
    building_type: Tuple[int, int, int]
    id: str
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "BuildingDefinition":
        return cls(
            building_type=tuple(int(v) for v in data["building_type"]),
            id=data["id"],
            name=data.get("name", ""),
        )

    def to_dict(self) -> dict:
        return {"building_type": list(self.building_type), "id": self.id, "name": self.name}
