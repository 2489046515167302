"""
Block Builder

A block (16 x 16 tiles of one level) becomes a group of the scene with one
shape per non-empty layer. Fully hidden blocks reference the shared hidden
block model instead, so undiscovered terrain cannot be told apart.
"""

from typing import List, Optional, Tuple

from ..logging_utils import get_logger
from ..map import Tile, iter_tiles
from ..shape import BASE, HEIGHT
from ..voxel import BLOCK_VOX_SIZE, BlockModels, Layer, voxels_from_shape
from .flow import build_flow
from .tile import build_tile

logger = get_logger(__name__)

# Index of the shared hidden block model
HIDDEN_BLOCK_MODEL = 0


def block_name(map_x: int, map_y: int) -> str:
    return f"block {map_x} {map_y}"


def model_translation(map_x: int, map_y: int, size, context) -> Tuple[int, int, int]:
    """
    Scene position of a model whose north-west tile is (map_x, map_y).

    The editor positions models by their center (rounded down), the map is
    centered on the scene origin and its bottom level sits on the level's
    base.

    Args:
        map_x: Tile x of the model's west edge
        map_y: Tile y of the model's north edge
        size: Model size (x, y, z) in voxels
        context: ``ExportContext``, for the map size
    """
    size_x, size_y, size_z = size
    x = map_x * BASE - context.max_vox_x() + size_x // 2
    y = context.max_vox_y() - map_y * BASE - (size_y - 1) + size_y // 2
    z = size_z // 2 - HEIGHT // 2
    return (x, y, z)


def block_translation(map_x: int, map_y: int, context) -> Tuple[int, int, int]:
    """Scene position of a block, (x - max_vox_x + 24, max_vox_y - y - 23, 0) in voxels."""
    return model_translation(map_x, map_y, BLOCK_VOX_SIZE, context)


def build_block_models(
    tiles: List[Tile],
    block,
    fortress_map,
    context,
    palette,
    cancel=None,
) -> Optional[BlockModels]:
    """
    Build the voxels of every tile of a block.

    Returns:
        The block models, None when cancelled
    """
    models = BlockModels()
    for tile in tiles:
        if cancel is not None and cancel.is_set():
            return None
        build_tile(tile, models, fortress_map, context, palette)
        for flow in block.flows:
            if flow.pos == tile.coords:
                models.extend(
                    Layer.FLOWS,
                    voxels_from_shape(build_flow(flow, context, palette), tile.local_x, tile.local_y),
                )
    return models


def build_block(block, fortress_map, context, palette, scene, level_group: int, cancel=None) -> Optional[int]:
    """
    Add a block to a level group of the scene.

    Args:
        block: ``MapBlock`` to build
        fortress_map: ``FortressMap`` holding the block
        context: ``ExportContext``
        palette: ``Palette`` receiving the materials
        scene: ``VoxScene`` being assembled
        level_group: Group node of the block's level
        cancel: Optional ``threading.Event`` checked before every tile

    Returns:
        The block group node id, None when nothing was added
    """
    tiles = list(iter_tiles(block, context))
    if not tiles:
        return None

    name = block_name(block.map_x, block.map_y)
    translation = block_translation(block.map_x, block.map_y, context)

    if all(fortress_map.is_hidden(tile.coords) for tile in tiles):
        logger.debug("%s at z=%d is fully hidden", name, block.map_z)
        group = scene.add_group(level_group, name, translation)
        scene.add_shape(group, "hidden", HIDDEN_BLOCK_MODEL, Layer.HIDDEN)
        return group

    models = build_block_models(tiles, block, fortress_map, context, palette, cancel)
    if models is None or models.is_empty():
        # empty groups show as big cubes in the editor
        return None

    group = scene.add_group(level_group, name, translation)
    for layer in models.layers():
        scene.add_model_and_shape(group, layer.label, models.model(layer), layer)
    return group
