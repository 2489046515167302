"""
Unit tests for the snapshot source.
"""

import json
import tempfile
import unittest
from pathlib import Path

from fortress_fixtures import (
    CHAIR,
    FLOOR,
    MAP_INFO,
    block_dict,
    building_dict,
    snapshot,
    tile,
)

from fortress_vox.errors import SourceError
from fortress_vox.source import SnapshotSource


def three_levels():
    return snapshot(
        blocks=[
            block_dict(0, 0, 100, {(1, 1): tile(FLOOR)}),
            block_dict(16, 0, 100, {}),
            block_dict(0, 0, 101, {}),
        ],
        buildings=[building_dict(1, CHAIR, (1, 1, 100), (1, 1, 100))],
        engravings=[{"pos": [1, 1, 100], "quality": 2}, {"pos": [3, 3, 90], "quality": 1}],
    )


class TestSnapshotSource(unittest.TestCase):
    """Tests for serving a fortress from a snapshot."""

    def setUp(self):
        self.source = SnapshotSource(three_levels())

    def test_lists(self):
        assert len(self.source.tiletypes()) == 14
        assert self.source.map_info().world_name == "Testworld"
        assert self.source.material_flag_names()[1] == "IS_METAL"
        assert self.source.plant_raws()[0].id == "OAK"

    def test_batches(self):
        batches = list(self.source.block_lists(range(100, 102), blocks_per_request=2))
        assert self.source.block_list_count(range(100, 102), blocks_per_request=2) == 2
        assert [len(b.blocks) for b in batches] == [2, 1]
        # engravings of the range come with the first batch
        assert [e.quality for e in batches[0].engravings] == [2]
        assert batches[1].engravings == []

    def test_blocks_carry_buildings(self):
        for batch in self.source.block_lists(range(100, 101)):
            for block in batch.blocks:
                assert [b.index for b in block.buildings] == [1]

    def test_range_filter(self):
        batches = list(self.source.block_lists(range(101, 102)))
        assert [b.map_z for batch in batches for b in batch.blocks] == [101]
        assert list(self.source.block_lists(range(0, 10))) == []

    def test_invalid_batch_size(self):
        with self.assertRaises(ValueError):
            list(self.source.block_lists(range(100, 101), blocks_per_request=0))

    def test_elevations(self):
        data = three_levels()
        data["map_info"] = dict(MAP_INFO, block_pos_z=90)
        source = SnapshotSource(data)
        assert source.elevation_offset() == -10
        assert source.current_elevation() == -10

        data["view_pos_z"] = 5
        assert SnapshotSource(data).current_elevation() == -5

    def test_pause_and_hashes(self):
        self.source.set_pause_state(True)
        assert self.source.paused
        self.source.reset_map_hashes()
        assert self.source.hash_resets == 1

    def test_malformed(self):
        with self.assertRaises(SourceError):
            SnapshotSource({"tiletypes": []})
        with self.assertRaises(SourceError):
            SnapshotSource(dict(three_levels(), blocks=[{"map_x": 0}]))


class TestSnapshotFiles(unittest.TestCase):
    """Tests for reading and writing snapshot files."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_file(self):
        with self.assertRaises(SourceError):
            SnapshotSource.load(self.root / "absent.json")

    def test_invalid_json(self):
        path = self.root / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(SourceError):
            SnapshotSource.load(path)

    def test_dump_and_load(self):
        source = SnapshotSource(three_levels())
        path = self.root / "fortress.json"
        source.dump(path)
        assert SnapshotSource.load(path).to_dict() == source.to_dict()

    def test_dump_lists_only(self):
        path = self.root / "lists.json"
        SnapshotSource(three_levels()).dump(path, lists_only=True)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        assert "blocks" not in data and "buildings" not in data and "engravings" not in data
        assert len(data["tiletypes"]) == 14
        # a list dump is still a valid, empty, snapshot
        assert list(SnapshotSource.load(path).block_lists(range(100, 103))) == []


if __name__ == "__main__":
    unittest.main(verbosity=2)
