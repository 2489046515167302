"""
Unit tests for plants, seasonal growths and flows.
"""

import unittest

import numpy as np

from fortress_fixtures import (
    FLOOR,
    LIGHT_BRANCH,
    OAK,
    OAK_LEAF,
    OAK_WOOD,
    SHRUB,
    STONE,
    TRUNK,
    TWIG,
    block_dict,
    make_context,
    make_map,
    tile,
)

from fortress_vox.builders.block import build_block_models
from fortress_vox.builders.flow import build_flow, flow_material, flow_probability
from fortress_vox.builders.plant import (
    PlantPart,
    build_plant,
    growth_materials,
    is_plant,
    plant_part,
)
from fortress_vox.calendar import Month
from fortress_vox.coords import MapCoord
from fortress_vox.map import iter_tiles
from fortress_vox.palette import Default, DefaultMaterial, EffectiveMaterial, Generic, Palette, Plant
from fortress_vox.records import FlowInfo, FlowType, MapBlock, MatPair, Tiletype
from fortress_vox.voxel import Layer


def tree_blocks():
    """An oak rooted at (5, 5, 100): a trunk, a light branch above it and a twig."""
    return [
        block_dict(0, 0, 100, {(5, 5): tile(TRUNK, OAK, tree=[0, 0, 0])}),
        block_dict(0, 0, 101, {
            (5, 5): tile(TWIG, OAK, tree=[0, 0, -1]),
            (5, 4): tile(LIGHT_BRANCH, OAK, tree=[0, -1, -1]),
        }),
    ]


class TestPlantParts(unittest.TestCase):
    """Tests for plant classification."""

    def setUp(self):
        self.fortress, self.context = make_map(tree_blocks())

    def test_is_plant(self):
        assert is_plant(self.fortress.tile(MapCoord(5, 5, 100)))
        assert not is_plant(self.fortress.tile(MapCoord(1, 1, 100)))

    def test_plant_material_on_any_tile(self):
        fortress, _ = make_map([block_dict(0, 0, 100, {(2, 2): tile(FLOOR, OAK)})])
        assert is_plant(fortress.tile(MapCoord(2, 2, 100)))

    def test_parts(self):
        assert plant_part(self.fortress.tile(MapCoord(5, 5, 100)).tiletype) == PlantPart.TRUNK
        assert plant_part(self.fortress.tile(MapCoord(5, 5, 101)).tiletype) == PlantPart.TWIG
        assert plant_part(self.fortress.tile(MapCoord(5, 4, 101)).tiletype) == PlantPart.LIGHT_BRANCH
        heavy = Tiletype.from_dict({"id": 99, "shape": "BRANCH", "material": "TREE_MATERIAL", "direction": "N"})
        assert plant_part(heavy) == PlantPart.HEAVY_BRANCH

    def test_tree_origin(self):
        for coords in [MapCoord(5, 5, 100), MapCoord(5, 5, 101), MapCoord(5, 4, 101)]:
            assert self.fortress.tile(coords).tree_origin == MapCoord(5, 5, 100)


class TestPlantShapes(unittest.TestCase):
    """Tests for plant structures and growths."""

    def setUp(self):
        self.fortress, self.context = make_map(tree_blocks())
        self.palette = Palette()

    def build(self, coords):
        return build_plant(self.fortress.tile(coords), self.fortress, self.context, self.palette)

    def test_trunk_uses_wood(self):
        box = self.build(MapCoord(5, 5, 100))
        wood = self.palette.get(Generic(MatPair(*OAK_WOOD)), self.context)
        assert set(np.unique(box)) == {0, wood}
        # standing on the ground, the root spreads
        assert box[4].all()
        assert (box[0] > 0).tolist() == [[False, True, False], [True, True, True], [False, True, False]]

    def test_twig_connects_to_branch(self):
        box = self.build(MapCoord(5, 5, 101))
        plant = self.palette.get(Default(DefaultMaterial.PLANT), self.context)
        leaf = self.palette.get(Plant(MatPair(*OAK_LEAF), 2, 2), self.context)
        assert box[0, 0, 1] in (plant, leaf)
        assert box[0, 1, 2] == 0 or box[0, 1, 2] == leaf
        # a leaf always grows at the heart of a twig
        assert box[2, 1, 1] == leaf

    def test_light_branch_reaches_twig(self):
        box = self.build(MapCoord(5, 4, 101))
        wood = self.palette.get(Generic(MatPair(*OAK_WOOD)), self.context)
        assert box[1, 1, 1] != 0
        assert box[1, 2, 1] != 0
        # nothing to reach in the north
        assert box[1, 0, 1] != wood

    def test_growths_follow_the_season(self):
        twig = self.fortress.tile(MapCoord(5, 5, 101))
        assert growth_materials(twig, PlantPart.TWIG, self.context) == [Plant(MatPair(*OAK_LEAF), 2, 2)]

        autumn = make_context(year_tick=Month.TIMBER.year_tick)
        assert growth_materials(twig, PlantPart.TWIG, autumn) == [Plant(MatPair(*OAK_LEAF), 2, 6)]

        green = EffectiveMaterial.from_material(Plant(MatPair(*OAK_LEAF), 2, 2), autumn)
        brown = EffectiveMaterial.from_material(Plant(MatPair(*OAK_LEAF), 2, 6), autumn)
        assert green.rgb != brown.rgb

    def test_no_growth_on_trunk(self):
        trunk = self.fortress.tile(MapCoord(5, 5, 100))
        assert growth_materials(trunk, PlantPart.TRUNK, self.context) == []

    def test_shrub(self):
        fortress, context = make_map([block_dict(0, 0, 100, {(2, 2): tile(SHRUB, OAK)})])
        box = build_plant(fortress.tile(MapCoord(2, 2, 100)), fortress, context, self.palette)
        assert box[4].all()
        assert not box[:3].any()

    def test_plants_go_to_vegetation(self):
        blocks = tree_blocks()
        block = MapBlock.from_dict(blocks[0])
        models = build_block_models(
            list(iter_tiles(block, self.context)), block, self.fortress, self.context, self.palette
        )
        assert Layer.VEGETATION in models.layers()
        assert Layer.TERRAIN not in models.layers()


class TestFlows(unittest.TestCase):
    """Tests for flow clouds."""

    def setUp(self):
        self.context = make_context()
        self.palette = Palette()

    def test_probability(self):
        assert flow_probability(100) == 0.25
        assert flow_probability(-40) == 0.1
        assert flow_probability(1000) == 0.25
        assert flow_probability(0) == 0.0

    def test_materials(self):
        mist = FlowInfo(FlowType.MIST, 50, MapCoord(0, 0, 100))
        dust = FlowInfo(FlowType.MATERIAL_DUST, 50, MapCoord(0, 0, 100), MatPair(*STONE))
        assert flow_material(mist) == Default(DefaultMaterial.MIST)
        assert flow_material(dust) == Generic(MatPair(*STONE))

    def test_empty_flow(self):
        flow = FlowInfo(FlowType.SMOKE, 0, MapCoord(3, 3, 100))
        assert not build_flow(flow, self.context, self.palette).any()

    def test_waves_stay_low(self):
        flow = FlowInfo(FlowType.OCEAN_WAVE, 100, MapCoord(3, 3, 100))
        box = build_flow(flow, self.context, self.palette)
        assert not box[:3].any()
        water = self.palette.get(Default(DefaultMaterial.WATER), self.context)
        assert set(np.unique(box)) <= {0, water}

    def test_flows_of_a_block(self):
        block_data = block_dict(0, 0, 100, {(5, 5): tile(FLOOR)})
        block_data["flows"] = [{"type": "MIST", "density": 100, "pos": [5, 5, 100]}]
        fortress, context = make_map([block_data])
        block = fortress.levels[100].blocks[0]
        models = build_block_models(list(iter_tiles(block, context)), block, fortress, context, self.palette)

        assert Layer.FLOWS in models.layers()
        voxels = models.model(Layer.FLOWS).voxels
        mist = self.palette.get(Default(DefaultMaterial.MIST), context)
        assert set(voxels[:, 3]) == {mist}
        assert set(voxels[:, 0]) <= {15, 16, 17}


if __name__ == "__main__":
    unittest.main(verbosity=2)
