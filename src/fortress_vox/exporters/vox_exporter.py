"""
MagicaVoxel .vox Scene Writer

The .vox format is a RIFF-style chunk-based binary format used by MagicaVoxel.
It stores models as sparse voxel lists, a scene graph, layers, and a
256-color palette with per-color material attributes.

File Structure:
- Header: "VOX " (4 bytes) + version (4 bytes, int32)
- MAIN chunk (container)
  - SIZE + XYZI chunks: one pair per model
  - nTRN / nGRP / nSHP chunks: scene graph nodes, ids in scene order
  - LAYR chunks: layer names and visibility
  - RGBA chunk: palette, color index i stored at slot i - 1
  - MATL chunks: material attributes of each used color index

Strings are (int32 length, bytes); dictionaries are (int32 count, key/value
strings).

Limitations:
- Maximum 256x256x256 dimensions per model
- Coordinates and color indices are uint8
"""

from pathlib import Path
from typing import Dict, List, Tuple, Union
import os
import struct

import numpy as np

from ..errors import ModelFormatError
from ..scene import GroupNode, ShapeNode, TransformNode, LAYER_COUNT
from ..voxel import MAX_MODEL_SIZE


# VOX format constants
VOX_MAGIC = b'VOX '
VOX_VERSION = 150


def pack_string(value: str) -> bytes:
    data = value.encode('utf-8')
    return struct.pack('<i', len(data)) + data


def pack_dict(values: Dict[str, str]) -> bytes:
    """Pack a DICT: entry count then key/value strings."""
    out = struct.pack('<i', len(values))
    for key, value in values.items():
        out += pack_string(key) + pack_string(str(value))
    return out


def decode_dict(content: bytes, offset: int = 0) -> Tuple[Dict[str, str], int]:
    """
    Read a DICT.

    Returns:
        (dictionary, offset after it)
    """
    count, = struct.unpack_from('<i', content, offset)
    offset += 4
    values = {}
    for _ in range(count):
        strings = []
        for _ in range(2):
            length, = struct.unpack_from('<i', content, offset)
            offset += 4
            strings.append(content[offset:offset + length].decode('utf-8'))
            offset += length
        values[strings[0]] = strings[1]
    return values, offset


class VoxChunk:
    """Base class for VOX chunks."""

    def __init__(self, chunk_id: bytes):
        self.chunk_id = chunk_id
        self.content = b''
        self.children = b''

    def pack(self) -> bytes:
        """Pack the chunk into bytes."""
        content_size = len(self.content)
        children_size = len(self.children)

        return (
            self.chunk_id +
            struct.pack('<II', content_size, children_size) +
            self.content +
            self.children
        )


class SizeChunk(VoxChunk):
    """SIZE chunk containing model dimensions."""

    def __init__(self, size_x: int, size_y: int, size_z: int):
        super().__init__(b'SIZE')
        # Note: VOX uses x, y, z where z is up
        self.content = struct.pack('<III', size_x, size_y, size_z)


class XYZIChunk(VoxChunk):
    """XYZI chunk containing voxel positions and color indices."""

    def __init__(self, voxels: np.ndarray):
        """
        Args:
            voxels: (N, 4) array of (x, y, z, color_index), 0 < color_index < 256
        """
        super().__init__(b'XYZI')
        voxels = np.ascontiguousarray(voxels, dtype=np.uint8).reshape(-1, 4)
        self.content = struct.pack('<I', len(voxels)) + voxels.tobytes()


class TransformChunk(VoxChunk):
    """nTRN chunk: a transform node with a single frame."""

    def __init__(self, node_id: int, node: TransformNode):
        super().__init__(b'nTRN')
        self.content = (
            struct.pack('<i', node_id) +
            pack_dict(node.attributes()) +
            struct.pack('<iiii', node.child, -1, node.layer_id, 1) +
            pack_dict(node.frame_attributes())
        )


class GroupChunk(VoxChunk):
    """nGRP chunk: a group node and its children."""

    def __init__(self, node_id: int, node: GroupNode):
        super().__init__(b'nGRP')
        self.content = (
            struct.pack('<i', node_id) +
            pack_dict({}) +
            struct.pack('<i', len(node.children)) +
            b''.join(struct.pack('<i', child) for child in node.children)
        )


class ShapeChunk(VoxChunk):
    """nSHP chunk: a shape node referencing models."""

    def __init__(self, node_id: int, node: ShapeNode):
        super().__init__(b'nSHP')
        self.content = (
            struct.pack('<i', node_id) +
            pack_dict({}) +
            struct.pack('<i', len(node.model_ids)) +
            b''.join(struct.pack('<i', m) + pack_dict({}) for m in node.model_ids)
        )


class LayerChunk(VoxChunk):
    """LAYR chunk: layer attributes (name, hidden flag)."""

    def __init__(self, layer_id: int, attributes: Dict[str, str]):
        super().__init__(b'LAYR')
        self.content = struct.pack('<i', layer_id) + pack_dict(attributes) + struct.pack('<i', -1)


class RGBAChunk(VoxChunk):
    """RGBA chunk containing the 256-color palette."""

    def __init__(self, palette: np.ndarray):
        """
        Args:
            palette: (256, 4) uint8 array, slot i holding color index i + 1
        """
        super().__init__(b'RGBA')
        table = np.zeros((256, 4), dtype=np.uint8)
        table[:, 3] = 255
        n = min(len(palette), 256)
        table[:n] = palette[:n]
        self.content = table.tobytes()


class MaterialChunk(VoxChunk):
    """MATL chunk: material attributes of one color index."""

    def __init__(self, index: int, properties: Dict[str, str]):
        super().__init__(b'MATL')
        self.content = struct.pack('<i', index) + pack_dict(properties)


class MainChunk(VoxChunk):
    """MAIN container chunk."""

    def __init__(self):
        super().__init__(b'MAIN')

    def add_child(self, chunk: VoxChunk):
        """Add a child chunk."""
        self.children += chunk.pack()


class VoxExporter:
    """
    Export a ``VoxScene`` to MagicaVoxel .vox format.

    Usage:
        exporter = VoxExporter()
        exporter.export(scene, "fortress.vox")
    """

    def to_bytes(self, scene) -> bytes:
        """Encode a scene as the content of a .vox file."""
        main_chunk = MainChunk()

        for model in scene.models:
            size = tuple(int(s) for s in model.size)
            if any(s > MAX_MODEL_SIZE or s <= 0 for s in size):
                raise ValueError(f"VOX format limited to 256x256x256. Model size: {size}")
            main_chunk.add_child(SizeChunk(*size))
            main_chunk.add_child(XYZIChunk(model.voxels))

        for node_id, node in enumerate(scene.nodes):
            if isinstance(node, TransformNode):
                main_chunk.add_child(TransformChunk(node_id, node))
            elif isinstance(node, GroupNode):
                main_chunk.add_child(GroupChunk(node_id, node))
            elif isinstance(node, ShapeNode):
                main_chunk.add_child(ShapeChunk(node_id, node))
            else:
                raise TypeError(f"Unknown scene node: {node!r}")

        for layer_id in range(LAYER_COUNT):
            main_chunk.add_child(LayerChunk(layer_id, scene.layers.get(layer_id, {})))

        main_chunk.add_child(RGBAChunk(scene.palette))

        for index in sorted(scene.materials):
            main_chunk.add_child(MaterialChunk(index, scene.material_properties(index)))

        return VOX_MAGIC + struct.pack('<I', VOX_VERSION) + main_chunk.pack()

    def export(self, scene, output_path: Union[str, Path]) -> Path:
        """
        Write a scene file.

        The file is written next to its destination first and renamed once
        complete, an existing file is never left half-written.

        Args:
            scene: ``VoxScene`` to write
            output_path: Output file path

        Returns:
            The output path
        """
        output_path = Path(output_path)
        data = self.to_bytes(scene)
        temp_path = output_path.with_name(output_path.name + '.tmp')
        try:
            with open(temp_path, 'wb') as f:
                f.write(data)
            os.replace(temp_path, output_path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise
        return output_path


def read_chunks(data: bytes) -> List[Tuple[bytes, bytes]]:
    """
    Split the content of a .vox file into the chunks inside MAIN.

    Returns:
        List of (chunk_id, content)
    """
    if data[:4] != VOX_MAGIC:
        raise ModelFormatError(f"Invalid VOX file: bad magic {data[:4]!r}")
    try:
        main_id = data[8:12]
        if main_id != b'MAIN':
            raise ModelFormatError("Expected MAIN chunk")
        main_content_size, main_children_size = struct.unpack_from('<II', data, 12)
        offset = 20 + main_content_size
        end = offset + main_children_size
        if end > len(data):
            raise ModelFormatError("Truncated VOX file")

        chunks = []
        while offset < end:
            chunk_id = data[offset:offset + 4]
            content_size, children_size = struct.unpack_from('<II', data, offset + 4)
            content = data[offset + 12:offset + 12 + content_size]
            if len(content) < content_size:
                raise ModelFormatError(f"Truncated {chunk_id!r} chunk")
            chunks.append((chunk_id, content))
            # Children are not nested below MAIN in practice, skip them
            offset += 12 + content_size + children_size
    except struct.error as e:
        raise ModelFormatError(f"Invalid VOX file: {e}") from e
    return chunks


def load_vox(file_path: Union[str, Path]) -> Tuple[Tuple[int, int, int], np.ndarray, np.ndarray]:
    """
    Load the first model of a .vox file.

    Args:
        file_path: Path to .vox file

    Returns:
        Tuple of (dimensions, voxels, palette) where:
        - dimensions: (x, y, z) size
        - voxels: Array of shape (N, 4) with (x, y, z, color_index)
        - palette: Array of shape (256, 4) with RGBA colors, as stored
    """
    file_path = Path(file_path)

    with open(file_path, 'rb') as f:
        data = f.read()

    dimensions = None
    voxels = None
    palette = np.zeros((256, 4), dtype=np.uint8)
    palette[:, 3] = 255  # Default opaque

    for chunk_id, content in read_chunks(data):
        if chunk_id == b'SIZE' and dimensions is None:
            if len(content) < 12:
                raise ModelFormatError("Truncated SIZE chunk")
            dimensions = struct.unpack('<III', content[:12])

        elif chunk_id == b'XYZI' and voxels is None:
            num_voxels = struct.unpack('<I', content[:4])[0]
            raw = content[4:4 + num_voxels * 4]
            if len(raw) < num_voxels * 4:
                raise ModelFormatError("Truncated XYZI chunk")
            voxels = np.frombuffer(raw, dtype=np.uint8).reshape(num_voxels, 4).copy()

        elif chunk_id == b'RGBA':
            # 256 colors * 4 bytes
            palette = np.frombuffer(content[:1024], dtype=np.uint8).reshape(-1, 4).copy()

    if dimensions is None or voxels is None:
        raise ModelFormatError(f"No model in {file_path}")

    return dimensions, voxels, palette
