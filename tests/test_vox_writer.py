"""
Unit tests for the scene graph and the .vox writer.
"""

import struct
import tempfile
import unittest
from pathlib import Path

import numpy as np

import fortress_fixtures  # noqa: F401

from fortress_vox.errors import ModelFormatError
from fortress_vox.exporters.vox_exporter import VoxExporter, decode_dict, load_vox, read_chunks
from fortress_vox.scene import LAYER_COUNT, VoxScene
from fortress_vox.voxel import MAX_MODEL_SIZE, Layer, VoxModel, model_voxels_from_box, split_box


def small_model(*voxels):
    return VoxModel((4, 4, 4), np.array(voxels, dtype=np.uint8).reshape(-1, 4))


class TestVoxScene(unittest.TestCase):
    """Tests for the scene graph."""

    def test_identical_models_are_shared(self):
        scene = VoxScene()
        a = scene.add_model_and_shape(scene.root_group, "a", small_model([0, 0, 0, 1]), Layer.TERRAIN)
        b = scene.add_model_and_shape(scene.root_group, "b", small_model([0, 0, 0, 1]), Layer.LIQUID)
        c = scene.add_model_and_shape(scene.root_group, "c", small_model([0, 0, 0, 2]), Layer.LIQUID)
        assert a == b != c
        assert len(scene.models) == 2
        assert len(scene.shapes(scene.root_group)) == 3

    def test_groups(self):
        scene = VoxScene()
        level = scene.add_group(scene.root_group, "level 3", (0, 0, 17))
        scene.add_model_and_shape(level, "terrain", small_model([1, 1, 1, 1]), Layer.TERRAIN, (8, 8, 0))

        assert scene.find_group(scene.root_group, "level 3") == level
        assert scene.find_group(scene.root_group, "level 4") is None
        (transform, shape), = scene.shapes(level)
        assert transform.name == "terrain"
        assert transform.layer_id == Layer.TERRAIN.id
        assert transform.frame_attributes() == {"_t": "8 8 0"}
        assert shape.model_ids == [0]

    def test_shape_needs_a_group(self):
        scene = VoxScene()
        shape = scene.add_shape(scene.root_group, "a", 0, Layer.ALL)
        with self.assertRaises(RuntimeError):
            scene.add_group(shape, "nested")


class TestVoxExporter(unittest.TestCase):
    """Tests for the binary encoding."""

    def setUp(self):
        self.scene = VoxScene()
        level = self.scene.add_group(self.scene.root_group, "level 0", (0, 0, 2))
        self.scene.add_model_and_shape(level, "terrain", small_model([1, 2, 3, 1]), Layer.TERRAIN)
        self.scene.set_layer(Layer.TERRAIN)
        self.scene.set_layer(Layer.HIDDEN, hidden=True)
        self.scene.palette[0] = (10, 20, 30, 255)
        self.scene.materials = {1: {"_type": "_glass", "_trans": "0.5"}}

    def chunks(self):
        return read_chunks(VoxExporter().to_bytes(self.scene))

    def test_header(self):
        data = VoxExporter().to_bytes(self.scene)
        assert data[:4] == b"VOX "
        assert struct.unpack_from("<I", data, 4)[0] == 150
        assert data[8:12] == b"MAIN"

    def test_chunk_order(self):
        ids = [chunk_id for chunk_id, _ in self.chunks()]
        assert ids[:2] == [b"SIZE", b"XYZI"]
        # root transform, root group, level transform and group, shape transform and shape
        assert ids[2:8] == [b"nTRN", b"nGRP", b"nGRP", b"nTRN", b"nSHP", b"nTRN"]
        assert ids.count(b"LAYR") == LAYER_COUNT
        assert ids[-2:] == [b"RGBA", b"MATL"]

    def test_layers(self):
        layers = {}
        for chunk_id, content in self.chunks():
            if chunk_id == b"LAYR":
                layer_id, = struct.unpack_from("<i", content)
                layers[layer_id], _ = decode_dict(content, 4)
        assert layers[Layer.HIDDEN.id] == {"_name": "hidden", "_hidden": "1"}
        assert layers[Layer.TERRAIN.id] == {"_name": "terrain"}
        assert layers[20] == {}

    def test_transform_translation(self):
        transforms = []
        for chunk_id, content in self.chunks():
            if chunk_id == b"nTRN":
                node_id, = struct.unpack_from("<i", content)
                attributes, offset = decode_dict(content, 4)
                child, _, layer_id, frames = struct.unpack_from("<iiii", content, offset)
                frame, _ = decode_dict(content, offset + 16)
                transforms.append((node_id, attributes, layer_id, frame))
        root = transforms[0]
        assert root[0] == 0 and root[2] == -1
        assert (3, {"_name": "level 0"}, 0, {"_t": "0 0 2"}) in transforms

    def test_palette_and_materials(self):
        chunks = dict(self.chunks())
        assert tuple(chunks[b"RGBA"][:4]) == (10, 20, 30, 255)
        index, = struct.unpack_from("<i", chunks[b"MATL"])
        properties, _ = decode_dict(chunks[b"MATL"], 4)
        assert index == 1
        assert properties["_type"] == "_glass"
        assert properties["_trans"] == "0.5"
        assert properties["_rough"] == "0.1"

    def test_model_size_limit(self):
        self.scene.add_model(VoxModel((257, 1, 1), np.zeros((0, 4), dtype=np.uint8)))
        with self.assertRaises(ValueError):
            VoxExporter().to_bytes(self.scene)

    def test_export_and_load(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = VoxExporter().export(self.scene, Path(tmp) / "scene.vox")
            assert path.exists()
            assert [p.name for p in Path(tmp).iterdir()] == ["scene.vox"]

            size, voxels, palette = load_vox(path)
            assert size == (4, 4, 4)
            assert voxels.tolist() == [[1, 2, 3, 1]]
            assert tuple(palette[0]) == (10, 20, 30, 255)

    def test_export_replaces_existing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scene.vox"
            path.write_bytes(b"old")
            VoxExporter().export(self.scene, path)
            assert path.read_bytes()[:4] == b"VOX "


class TestModelLimits(unittest.TestCase):
    """Tests for keeping boxes within the size of a model."""

    def test_oversized_box_is_refused(self):
        box = np.ones((5, 3, 300), dtype=np.uint8)
        with self.assertRaises(ValueError):
            model_voxels_from_box(box)

    def test_largest_box(self):
        box = np.ones((5, 3, MAX_MODEL_SIZE), dtype=np.uint8)
        size, voxels = model_voxels_from_box(box)
        assert size == (MAX_MODEL_SIZE, 3, 5)
        assert voxels[:, 0].max() == MAX_MODEL_SIZE - 1

    def test_split_box(self):
        box = np.zeros((5, 6, 273), dtype=np.uint8)
        box[4, :, -1] = 7
        pieces = list(split_box(box))
        assert [(dx, dy, piece.shape) for dx, dy, piece in pieces] == [(0, 0, (5, 6, 255)), (85, 0, (5, 6, 18))]
        assert not pieces[0][2].any()
        assert pieces[1][2][4, :, -1].tolist() == [7] * 6

    def test_small_box_is_one_piece(self):
        box = np.ones((5, 9, 9), dtype=np.uint8)
        (dx, dy, piece), = split_box(box)
        assert (dx, dy) == (0, 0)
        assert piece.shape == box.shape

    def test_split_scene_fits_the_format(self):
        box = np.ones((5, 3, 600), dtype=np.uint8)
        scene = VoxScene()
        for dx, _, piece in split_box(box):
            scene.add_model_and_shape(scene.root_group, f"part {dx}", VoxModel(*model_voxels_from_box(piece)), Layer.BUILDING)
        sizes = [
            struct.unpack("<iii", content)
            for chunk_id, content in read_chunks(VoxExporter().to_bytes(scene))
            if chunk_id == b"SIZE"
        ]
        # the two full pieces share a model
        assert sizes == [(255, 3, 5), (90, 3, 5)]
        assert len(scene.shapes(scene.root_group)) == 3


class TestReadChunks(unittest.TestCase):
    """Tests for decoding errors."""

    def test_bad_magic(self):
        with self.assertRaises(ModelFormatError):
            read_chunks(b"RIFF" + bytes(16))

    def test_truncated(self):
        data = VoxExporter().to_bytes(VoxScene())
        with self.assertRaises(ModelFormatError):
            read_chunks(data[:-10])

    def test_no_model(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = VoxExporter().export(VoxScene(), Path(tmp) / "empty.vox")
            with self.assertRaises(ModelFormatError):
                load_vox(path)


if __name__ == "__main__":
    unittest.main(verbosity=2)
