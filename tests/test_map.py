"""
Unit tests for the fortress map index and its neighbour queries.
"""

import unittest

from fortress_fixtures import (
    CHAIR,
    OPEN_SPACE,
    ROAD_PAVED,
    ROUGH_WALL,
    WALL,
    block_dict,
    building_dict,
    make_context,
    make_map,
    tile,
)

from fortress_vox.coords import MapCoord
from fortress_vox.direction import DirectionFlat
from fortress_vox.map import FortressMap
from fortress_vox.records import BUILDING_FLAG_EXISTS, Engraving, MapBlock


def walls_at(positions, z=100):
    """A level of open space with walls at the given tiles."""
    return block_dict(0, 0, z, {p: tile(WALL) for p in positions})


class TestIndex(unittest.TestCase):
    """Tests for tile and building lookup."""

    def test_unknown_coordinates(self):
        fortress, _ = make_map([])
        occupancy = fortress.get(MapCoord(3, 3, 100))
        assert occupancy.tile is None
        assert occupancy.hidden
        # lookups of missing coordinates do not register them
        assert fortress.occupancy == {}

    def test_block_tiles_are_indexed(self):
        fortress, _ = make_map([walls_at([(2, 3)])])
        assert fortress.tile_count() == 256
        assert fortress.is_wall(MapCoord(2, 3, 100))
        assert not fortress.is_wall(MapCoord(3, 2, 100))
        assert fortress.tile(MapCoord(2, 3, 100)).tiletype.id == WALL
        assert list(fortress.levels) == [100]

    def test_hidden_flag_comes_from_the_block(self):
        block = block_dict(0, 0, 100, {(1, 1): tile(WALL, hidden=True)})
        fortress, _ = make_map([block])
        assert fortress.is_hidden(MapCoord(1, 1, 100))
        assert not fortress.is_hidden(MapCoord(1, 2, 100))

    def test_unknown_tiletype_is_skipped(self):
        block = block_dict(0, 0, 100, {(0, 0): tile(999)})
        fortress, context = make_map([block])
        assert fortress.tile(MapCoord(0, 0, 100)) is None
        assert context.skipped["tiletype"] == 1

    def test_buildings_cover_their_footprint(self):
        buildings = [
            building_dict(1, ROAD_PAVED, (4, 4, 100), (6, 5, 100)),
            building_dict(2, CHAIR, (9, 9, 100), (9, 9, 100), is_room=True),
            building_dict(3, CHAIR, (8, 8, 100), (8, 8, 100), flags=BUILDING_FLAG_EXISTS << 1),
        ]
        fortress, _ = make_map([], buildings)
        assert len(fortress.get(MapCoord(6, 5, 100)).buildings) == 1
        assert fortress.get(MapCoord(7, 5, 100)).buildings == []
        assert fortress.get(MapCoord(9, 9, 100)).buildings == []
        assert fortress.get(MapCoord(8, 8, 100)).buildings == []
        assert [b.index for b in fortress.levels[100].buildings] == [1]

    def test_block_buildings_are_added_once(self):
        chair = building_dict(1, CHAIR, (2, 2, 100), (2, 2, 100))
        blocks = [
            dict(block_dict(0, 0, 100, {}), buildings=[chair]),
            dict(block_dict(16, 0, 100, {}), buildings=[chair]),
        ]
        fortress = FortressMap(make_context())
        for block in blocks:
            fortress.add_block(MapBlock.from_dict(block))
        assert len(fortress.get(MapCoord(2, 2, 100)).buildings) == 1

    def test_engraving(self):
        fortress, _ = make_map([walls_at([(1, 1)])])
        fortress.add_engraving(Engraving(MapCoord(1, 1, 100), quality=3))
        assert fortress.get(MapCoord(1, 1, 100)).engraving.quality == 3


class TestNeighbours(unittest.TestCase):
    """Tests for neighbourhood queries."""

    def test_neighbouring_flat(self):
        fortress, _ = make_map([walls_at([(5, 4), (6, 5)])])
        walls = fortress.neighbouring_flat(
            MapCoord(5, 5, 100), lambda o: o.tile is not None and o.tile.is_wall()
        )
        assert (walls.n, walls.e, walls.s, walls.w) == (True, True, False, False)

    def test_neighbouring_vertical(self):
        fortress, _ = make_map([
            walls_at([(5, 5)], z=101),
            walls_at([], z=100),
        ])
        walls = fortress.neighbouring(
            MapCoord(5, 5, 100), lambda o: o.tile is not None and o.tile.is_wall()
        )
        assert walls.a and not walls.b

    def test_wall_direction_prefers_contact(self):
        # a diagonal wall only adds one to each side it touches
        fortress, _ = make_map([walls_at([(5, 6), (4, 6)])])
        assert fortress.wall_direction(MapCoord(5, 5, 100)) == DirectionFlat.SOUTH

    def test_wall_direction_ties(self):
        fortress, _ = make_map([walls_at([(6, 5), (4, 5)])])
        assert fortress.wall_direction(MapCoord(5, 5, 100)) == DirectionFlat.EAST

    def test_wall_direction_without_walls(self):
        fortress, _ = make_map([walls_at([])])
        assert fortress.wall_direction(MapCoord(5, 5, 100)) == DirectionFlat.NORTH


class TestRecomputeHidden(unittest.TestCase):
    """Tests for hidden flags computed from the terrain."""

    def setUp(self):
        self.blocks = [
            block_dict(0, 0, 100, {}, default=ROUGH_WALL),
            block_dict(0, 0, 101, {}, default=ROUGH_WALL),
            block_dict(0, 0, 102, {}, default=OPEN_SPACE),
        ]

    def test_buried_tiles_are_hidden(self):
        fortress, _ = make_map(self.blocks)
        fortress.recompute_hidden()
        assert fortress.is_hidden(MapCoord(5, 5, 100))
        # unknown tiles around the map edge count as opaque
        assert fortress.is_hidden(MapCoord(0, 0, 100))
        # open sky above
        assert not fortress.is_hidden(MapCoord(5, 5, 101))
        assert not fortress.is_hidden(MapCoord(5, 5, 102))

    def test_open_neighbour_reveals(self):
        self.blocks[1] = block_dict(0, 0, 101, {(6, 6): tile(OPEN_SPACE)}, default=ROUGH_WALL)
        self.blocks[2] = block_dict(0, 0, 102, {}, default=ROUGH_WALL)
        fortress, _ = make_map(self.blocks)
        fortress.recompute_hidden()
        assert not fortress.is_hidden(MapCoord(5, 5, 101))
        assert fortress.is_hidden(MapCoord(3, 3, 101))

    def test_floor_buildings_cover(self):
        road = building_dict(1, ROAD_PAVED, (4, 4, 102), (6, 6, 102))
        fortress, _ = make_map(self.blocks, [road])
        fortress.recompute_hidden(lambda building: tuple(building.building_type) == tuple(ROAD_PAVED))
        assert fortress.is_hidden(MapCoord(5, 5, 101))
        assert not fortress.is_hidden(MapCoord(8, 8, 101))


if __name__ == "__main__":
    unittest.main(verbosity=2)
