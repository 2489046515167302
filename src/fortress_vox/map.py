"""
Fortress Map

Intermediate storage between the game and the voxels. Blocks are streamed
in and every tile is indexed by its global coordinates, together with the
buildings covering it and its engraving. Neighbour queries read that index
only; tiles never reference each other.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .coords import MapCoord
from .direction import (
    Direction,
    DirectionFlat,
    Neighbouring,
    Neighbouring8Flat,
    NeighbouringFlat,
)
from .logging_utils import get_logger
from .records import (
    BLOCK_SIZE,
    BuildingInstance,
    Engraving,
    MapBlock,
    MatPair,
    Spatter,
    Tiletype,
    TiletypeShape,
)

logger = get_logger(__name__)

WALL_SHAPES = frozenset([TiletypeShape.WALL, TiletypeShape.FORTIFICATION])
# Shapes hiding everything around them
OPAQUE_SHAPES = frozenset([TiletypeShape.WALL, TiletypeShape.SHRUB])
# Shapes hiding what is below
FLOOR_SHAPES = frozenset([
    TiletypeShape.FLOOR,
    TiletypeShape.STAIR_UP,
    TiletypeShape.PEBBLES,
    TiletypeShape.BOULDER,
    TiletypeShape.RAMP,
    TiletypeShape.RAMP_TOP,
    TiletypeShape.SAPLING,
])


class Tile:
    """A view on one tile of a streamed block."""

    __slots__ = ("block", "index", "tiletype")

    def __init__(self, block: MapBlock, index: int, tiletype: Tiletype):
        self.block = block
        self.index = index
        self.tiletype = tiletype

    @property
    def local_x(self) -> int:
        return self.index % BLOCK_SIZE

    @property
    def local_y(self) -> int:
        return self.index // BLOCK_SIZE

    @property
    def coords(self) -> MapCoord:
        return MapCoord(
            self.block.map_x + self.local_x,
            self.block.map_y + self.local_y,
            self.block.map_z,
        )

    @property
    def hidden(self) -> bool:
        return self.block.hidden[self.index]

    @property
    def water(self) -> int:
        return self.block.water[self.index]

    @property
    def magma(self) -> int:
        return self.block.magma[self.index]

    @property
    def material(self) -> MatPair:
        return self.block.materials[self.index]

    @property
    def grass_percent(self) -> int:
        return self.block.grass_percent[self.index]

    @property
    def spatters(self) -> List[Spatter]:
        return self.block.spatters[self.index]

    @property
    def tree(self) -> MapCoord:
        return MapCoord(*self.block.tree[self.index])

    @property
    def tree_origin(self) -> MapCoord:
        """Coordinates of the root tile of the tree this tile belongs to."""
        coords = self.coords
        tree = self.tree
        return MapCoord(coords.x - tree.x, coords.y - tree.y, coords.z + tree.z)

    @property
    def shape(self) -> TiletypeShape:
        return self.tiletype.shape

    def is_wall(self) -> bool:
        return self.tiletype.shape in WALL_SHAPES

    def ramp_contact_height(self) -> int:
        return 6 if self.is_wall() else 1

    def __repr__(self) -> str:
        return f"Tile({self.coords}, {self.tiletype.name or self.tiletype.id})"


def iter_tiles(block: MapBlock, context):
    """
    Yield the tiles of a block, skipping those of an unknown tile type.

    Blocks streamed without tile data yield nothing.
    """
    for index, tiletype_id in enumerate(block.tiles):
        tiletype = context.tiletype(tiletype_id)
        if tiletype is None:
            context.note_skipped("tiletype", tiletype_id)
            continue
        yield Tile(block, index, tiletype)


@dataclass
class Occupancy:
    """Everything known at one map coordinate."""
    tile: Optional[Tile] = None
    buildings: List[BuildingInstance] = field(default_factory=list)
    engraving: Optional[Engraving] = None
    hidden: bool = True


@dataclass
class LevelData:
    blocks: List[MapBlock] = field(default_factory=list)
    buildings: List[BuildingInstance] = field(default_factory=list)


# Shared by all lookups of missing coordinates, never mutated
_EMPTY = Occupancy()


class FortressMap:
    """
    Streamed map, indexed by coordinates.

    Usage:
        fortress = FortressMap(context)
        for block in block_list.blocks:
            fortress.add_block(block)
        walls = fortress.neighbouring_flat(coords, lambda o: o.tile is not None and o.tile.is_wall())
    """

    def __init__(self, context):
        self.context = context
        self.levels: Dict[int, LevelData] = defaultdict(LevelData)
        self.occupancy: Dict[MapCoord, Occupancy] = {}
        # buildings are streamed with every block
        self.buildings_added = False

    def _entry(self, coords: MapCoord) -> Occupancy:
        occupancy = self.occupancy.get(coords)
        if occupancy is None:
            occupancy = Occupancy()
            self.occupancy[coords] = occupancy
        return occupancy

    def get(self, coords: MapCoord) -> Occupancy:
        """Occupancy at ``coords``, an empty hidden one when unknown."""
        return self.occupancy.get(coords, _EMPTY)

    def tile(self, coords: MapCoord) -> Optional[Tile]:
        return self.get(coords).tile

    def add_block(self, block: MapBlock) -> None:
        if not self.buildings_added:
            self.add_buildings(block.buildings)
        self.levels[block.map_z].blocks.append(block)

        for tile in iter_tiles(block, self.context):
            occupancy = self._entry(tile.coords)
            occupancy.hidden = tile.hidden
            occupancy.tile = tile

    def add_buildings(self, buildings: List[BuildingInstance]) -> None:
        for building in buildings:
            if building.is_room or not building.exists:
                continue
            self.levels[building.origin.z].buildings.append(building)
            for coords in building.bounding_box:
                self._entry(coords).buildings.append(building)
        self.buildings_added = True

    def add_engraving(self, engraving: Engraving) -> None:
        self._entry(engraving.pos).engraving = engraving

    def is_hidden(self, coords: MapCoord) -> bool:
        occupancy = self.occupancy.get(coords)
        return occupancy is not None and occupancy.hidden

    def is_wall(self, coords: MapCoord) -> bool:
        tile = self.get(coords).tile
        return tile is not None and tile.is_wall()

    def neighbouring(self, coords: MapCoord, func: Callable[[Occupancy], object]) -> Neighbouring:
        """Apply ``func`` to the six neighbours, above and below included."""
        return Neighbouring.from_fn(lambda d: func(self.get(coords + d)))

    def neighbouring_flat(
        self,
        coords: MapCoord,
        func: Callable[[Occupancy], object]
    ) -> NeighbouringFlat:
        """Apply ``func`` to the four neighbours on the same level."""
        return NeighbouringFlat.from_fn(lambda d: func(self.get(coords + d)))

    def neighbouring_8flat(
        self,
        coords: MapCoord,
        func: Callable[[Occupancy], object]
    ) -> Neighbouring8Flat:
        """Apply ``func`` to the eight neighbours on the same level."""
        return Neighbouring8Flat.from_fn(lambda d: func(self.get(coords + d)))

    def wall_direction(self, coords: MapCoord) -> DirectionFlat:
        """
        The most "wally" direction, where furniture goes against.

        Each wall among the eight neighbours adds one to the cardinal sides
        it touches, and three more when in direct contact. Ties go to the
        first of north, east, south, west.
        """
        wallyness = {d: 0 for d in DirectionFlat}
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                if (dx, dy) == (0, 0):
                    continue
                if not self.is_wall(MapCoord(coords.x + dx, coords.y + dy, coords.z)):
                    continue
                contact = 3 if dx == 0 or dy == 0 else 0
                if dx == -1:
                    wallyness[DirectionFlat.WEST] += 1 + contact
                if dx == 1:
                    wallyness[DirectionFlat.EAST] += 1 + contact
                if dy == -1:
                    wallyness[DirectionFlat.NORTH] += 1 + contact
                if dy == 1:
                    wallyness[DirectionFlat.SOUTH] += 1 + contact

        best = DirectionFlat.NORTH
        for direction in DirectionFlat:
            if wallyness[direction] > wallyness[best]:
                best = direction
        return best

    def recompute_hidden(self, is_floor_building: Optional[Callable[[BuildingInstance], bool]] = None) -> None:
        """
        Recompute hidden flags from the terrain, for game modes that do not
        report them.

        A tile is hidden when its eight flat neighbours are opaque (or
        unknown), the tile above covers it and the tile below is opaque.

        Args:
            is_floor_building: Tells if a building covers the tile below
                like a floor does
        """
        def opaque(occupancy: Occupancy) -> bool:
            return occupancy.tile is None or occupancy.tile.shape in OPAQUE_SHAPES

        def covering(occupancy: Occupancy) -> bool:
            if is_floor_building is not None and any(map(is_floor_building, occupancy.buildings)):
                return True
            return occupancy.tile is None or occupancy.tile.shape in (FLOOR_SHAPES | OPAQUE_SHAPES)

        new_hidden = {}
        for coords in self.occupancy:
            surrounded = all(self.neighbouring_8flat(coords, opaque).values())
            above = self.get(coords + Direction.ABOVE)
            below = self.get(coords + Direction.BELOW)
            new_hidden[coords] = surrounded and covering(above) and opaque(below)

        for coords, hidden in new_hidden.items():
            self.occupancy[coords].hidden = hidden
        logger.debug("Recomputed hidden flags of %d tiles", len(new_hidden))

    def tile_count(self) -> int:
        return sum(1 for o in self.occupancy.values() if o.tile is not None)
