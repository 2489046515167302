"""
Scene Graph

An in-memory MagicaVoxel scene: models, a node tree, named layers, and the
palette. The tree alternates transforms and their child (a group or a
shape), as the file format requires:

    transform (root, layer -1)
    └── group
        ├── transform "level 12" (_t)
        │   └── group
        │       └── transform "block 32 48" (_t)
        │           └── group
        │               └── transform "terrain" (layer)
        │                   └── shape -> model
        ...

Identical models are stored once and shared between shape nodes.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from .voxel import Layer, VoxModel

Translation = Tuple[int, int, int]

# Layer id of the root transform
ROOT_LAYER = -1
# Number of layers in a scene
LAYER_COUNT = 32

# Material attributes of slots no entry overrides
DEFAULT_MATERIAL_PROPERTIES = {"_rough": "0.1", "_ior": "0.3", "_d": "0.05"}


@dataclass
class TransformNode:
    child: int
    layer_id: int = 0
    name: Optional[str] = None
    translation: Optional[Translation] = None

    def attributes(self) -> Dict[str, str]:
        return {"_name": self.name} if self.name is not None else {}

    def frame_attributes(self) -> Dict[str, str]:
        if self.translation is None:
            return {}
        return {"_t": " ".join(str(int(v)) for v in self.translation)}


@dataclass
class GroupNode:
    children: List[int] = field(default_factory=list)


@dataclass
class ShapeNode:
    model_ids: List[int] = field(default_factory=list)


Node = Union[TransformNode, GroupNode, ShapeNode]


class VoxScene:
    """
    Builder for a scene file.

    Usage:
        scene = VoxScene()
        level = scene.add_group(scene.root_group, "level 0", (0, 0, 2))
        scene.add_model_and_shape(level, "terrain", model, Layer.TERRAIN)
    """

    def __init__(self):
        self.models: List[VoxModel] = []
        self._model_index: Dict[tuple, int] = {}
        self.nodes: List[Node] = [TransformNode(child=1, layer_id=ROOT_LAYER), GroupNode()]
        self.root_group = 1
        self.layers: Dict[int, Dict[str, str]] = {}
        self.palette = np.zeros((256, 4), dtype=np.uint8)
        self.palette[:, 3] = 255
        self.materials: Dict[int, Dict[str, str]] = {}

    def add_model(self, model: VoxModel) -> int:
        """Register a model, returning the index of an identical one if any."""
        key = model.key()
        index = self._model_index.get(key)
        if index is None:
            index = len(self.models)
            self.models.append(model)
            self._model_index[key] = index
        return index

    def _add_node(self, node: Node) -> int:
        self.nodes.append(node)
        return len(self.nodes) - 1

    def _attach(self, parent_group: int, child: int) -> None:
        parent = self.nodes[parent_group]
        if not isinstance(parent, GroupNode):
            raise RuntimeError(f"Node {parent_group} is not a group")
        parent.children.append(child)

    def add_group(
        self,
        parent_group: int,
        name: str,
        translation: Optional[Translation] = None,
        layer: Layer = Layer.ALL,
    ) -> int:
        """Add a named group under ``parent_group``; returns the group node id."""
        group = self._add_node(GroupNode())
        transform = self._add_node(TransformNode(group, layer.id, name, translation))
        self._attach(parent_group, transform)
        return group

    def add_shape(
        self,
        parent_group: int,
        name: str,
        model_id: int,
        layer: Layer,
        translation: Optional[Translation] = None,
    ) -> int:
        """Add a shape node referencing ``model_id``; returns the shape node id."""
        shape = self._add_node(ShapeNode([model_id]))
        transform = self._add_node(TransformNode(shape, layer.id, name, translation))
        self._attach(parent_group, transform)
        return shape

    def add_model_and_shape(
        self,
        parent_group: int,
        name: str,
        model: VoxModel,
        layer: Layer,
        translation: Optional[Translation] = None,
    ) -> int:
        """Register a model and reference it from a new shape node; returns the model id."""
        model_id = self.add_model(model)
        self.add_shape(parent_group, name, model_id, layer, translation)
        return model_id

    def set_layer(self, layer: Layer, hidden: bool = False) -> None:
        attributes = {"_name": layer.label}
        if hidden:
            attributes["_hidden"] = "1"
        self.layers[layer.id] = attributes

    def material_properties(self, index: int) -> Dict[str, str]:
        """Attributes of the MATL chunk of a palette index."""
        properties = dict(DEFAULT_MATERIAL_PROPERTIES)
        properties.update(self.materials.get(index, {}))
        return properties

    # Queries, mostly for inspection and tests

    def children(self, group_id: int) -> List[Tuple[TransformNode, int]]:
        """(transform, child node id) pairs under a group."""
        group = self.nodes[group_id]
        return [(self.nodes[t], self.nodes[t].child) for t in group.children]

    def find_group(self, parent_group: int, name: str) -> Optional[int]:
        for transform, child in self.children(parent_group):
            if transform.name == name and isinstance(self.nodes[child], GroupNode):
                return child
        return None

    def shapes(self, group_id: int) -> List[Tuple[TransformNode, ShapeNode]]:
        return [
            (transform, self.nodes[child])
            for transform, child in self.children(group_id)
            if isinstance(self.nodes[child], ShapeNode)
        ]
