"""
Unit tests for the shape algebra, directions and coordinates.
"""

import sys
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fortress_vox import shape as sh
from fortress_vox.coords import BoundingBox, MapCoord, gen_bool, stable_rng
from fortress_vox.direction import (
    Direction,
    DirectionFlat,
    NeighbouringFlat,
    connectivity_from_direction_string,
)


class TestSlices(unittest.TestCase):
    """Tests for 2D slices."""

    def test_const_full_empty(self):
        assert sh.slice_const(7).shape == (3, 3)
        assert np.all(sh.slice_const(7) == 7)
        assert sh.slice_full().all()
        assert not sh.slice_empty().any()

    def test_from_fn_is_row_major(self):
        """func(x, y) lands at [y][x]."""
        s = sh.slice_from_fn(lambda x, y: 10 * y + x)
        assert s[0][2] == 2
        assert s[2][0] == 20

    def test_rotation_clockwise(self):
        s = np.array([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
        rotated = sh.slice_rotated(s)
        assert rotated.tolist() == [[7, 4, 1], [8, 5, 2], [9, 6, 3]]

    def test_four_rotations_are_identity(self):
        s = np.arange(9).reshape(3, 3)
        assert np.array_equal(sh.rotated_by(s, 4), s)
        assert np.array_equal(sh.rotated_by(s, -1), sh.rotated_by(s, 3))


class TestBoxes(unittest.TestCase):
    """Tests for 3D boxes."""

    def test_box_from_fn_elevation(self):
        """The function receives the elevation from the bottom."""
        box = sh.box_from_fn(lambda x, y, z: z == 0, dtype=bool)
        assert box[sh.HEIGHT - 1].all()
        assert not box[:sh.HEIGHT - 1].any()

    def test_box_from_levels(self):
        box = sh.box_from_levels(sh.slice_const(2))
        assert box.shape == (5, 3, 3)
        assert box[3:].all()
        assert not box[:3].any()

    def test_levels_beyond_height_fill(self):
        assert sh.box_from_levels(sh.slice_const(9)).all()
        assert not sh.box_from_levels(sh.slice_const(0)).any()

    def test_levels_with_content(self):
        levels = [[1, 0, 0], [0, 0, 0], [0, 0, 5]]
        content = [[4, 4, 4], [4, 4, 4], [4, 4, 9]]
        box = sh.box_from_levels_with_content(levels, content)
        assert box.dtype == np.uint8
        assert box[4, 0, 0] == 4
        assert box[3, 0, 0] == 0
        assert np.all(box[:, 2, 2] == 9)
        assert box[4, 1, 1] == 0

    def test_box_with_material(self):
        box = sh.box_with_material(sh.box_from_levels(sh.slice_const(1)), 12)
        assert set(np.unique(box)) == {0, 12}
        assert np.all(box[4] == 12)

    def test_box_from_shape_fn_visits_set_cells(self):
        values = iter(range(1, 100))
        shape = sh.box_empty()
        shape[4, 0, 0] = shape[0, 2, 2] = True
        box = sh.box_from_shape_fn(shape, lambda: next(values))
        assert box[0, 2, 2] == 1
        assert box[4, 0, 0] == 2
        assert np.count_nonzero(box) == 2

    def test_rotation_of_non_square_box(self):
        box = np.zeros((5, 3, 6), dtype=bool)
        box[:, 0, :] = True
        rotated = sh.rotated_by(box, 1)
        assert rotated.shape == (5, 6, 3)
        # the north row becomes the east column
        assert rotated[:, :, 2].all()

    def test_looking_at(self):
        box = np.zeros((5, 3, 3), dtype=bool)
        box[:, 0, 1] = True
        assert np.array_equal(sh.looking_at(box, DirectionFlat.NORTH), box)
        assert sh.looking_at(box, DirectionFlat.EAST)[:, 1, 2].all()
        assert sh.looking_at(box, DirectionFlat.SOUTH)[:, 2, 1].all()
        assert sh.looking_at(box, DirectionFlat.WEST)[:, 1, 0].all()

    def test_facing_away(self):
        box = np.zeros((5, 3, 3), dtype=bool)
        box[:, 0, 1] = True
        assert np.array_equal(
            sh.facing_away(box, DirectionFlat.NORTH),
            sh.looking_at(box, DirectionFlat.SOUTH),
        )


class TestDirections(unittest.TestCase):
    """Tests for directions and neighbourhoods."""

    def test_offsets(self):
        assert MapCoord(1, 1, 1) + Direction.ABOVE == MapCoord(1, 1, 2)
        assert MapCoord(1, 1, 1) + DirectionFlat.NORTH == MapCoord(1, 0, 1)
        assert MapCoord(1, 1, 1) - DirectionFlat.WEST == MapCoord(2, 1, 1)

    def test_opposite(self):
        for direction in DirectionFlat:
            assert direction.opposite.opposite == direction
        assert DirectionFlat.EAST.opposite == DirectionFlat.WEST

    def test_from_source(self):
        assert DirectionFlat.from_source(0) == DirectionFlat.NORTH
        assert DirectionFlat.from_source(3) == DirectionFlat.WEST
        assert DirectionFlat.from_source("east") == DirectionFlat.EAST
        assert DirectionFlat.from_source(None) is None
        assert DirectionFlat.from_source(7) is None

    def test_neighbouring_or(self):
        a = NeighbouringFlat(n=True, e=False, s=False, w=False)
        b = NeighbouringFlat(n=False, e=False, s=True, w=False)
        c = a | b
        assert (c.n, c.e, c.s, c.w) == (True, False, True, False)
        assert c.directions() == [DirectionFlat.NORTH, DirectionFlat.SOUTH]

    def test_direction_string(self):
        d = NeighbouringFlat.from_direction_string("NS")
        assert d.n and d.s and not d.e and not d.w

    def test_branch_direction_string(self):
        """A single letter tells where the branch heads, it connects on the other side."""
        c = connectivity_from_direction_string("N")
        assert c.s and not c.n
        c = connectivity_from_direction_string("NE")
        assert c.n and c.e and not c.s


class TestCoordinates(unittest.TestCase):
    """Tests for coordinates and seeded generators."""

    def test_to_voxel(self):
        v = MapCoord(2, 3, 4).to_voxel()
        assert (v.x, v.y, v.z) == (6, 9, 20)
        assert v.to_map() == MapCoord(2, 3, 4)

    def test_bounding_box(self):
        bb = BoundingBox(10, 12, 5, 5, 0, 0)
        assert bb.origin == MapCoord(10, 5, 0)
        assert bb.dimension() == (3, 1, 1)
        assert bb.contains(MapCoord(11, 5, 0))
        assert not bb.contains(MapCoord(13, 5, 0))
        assert len(list(bb)) == 3

    def test_stable_rng_is_deterministic(self):
        a = stable_rng(MapCoord(5, -3, 120)).random(8)
        b = stable_rng(MapCoord(5, -3, 120)).random(8)
        c = stable_rng(MapCoord(5, -3, 121)).random(8)
        assert np.array_equal(a, b)
        assert not np.array_equal(a, c)

    def test_gen_bool_clamps(self):
        rng = stable_rng(MapCoord(0, 0, 0))
        assert all(gen_bool(rng, 2.0) for _ in range(20))
        assert not any(gen_bool(rng, -1.0) for _ in range(20))


if __name__ == "__main__":
    unittest.main(verbosity=2)
