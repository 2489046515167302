"""Flows: mist, smoke, fire, dust clouds and waves, as sparse voxel clouds."""

import numpy as np

from ..coords import stable_rng
from ..palette import Default, DefaultMaterial, Generic, Material
from ..records import FlowType
from .. import shape as sh

# Density is 0..100, a full flow fills a quarter of its tile
MAX_DENSITY = 100
DENSITY_DIVISOR = 400
# Shape layers a wave rolls on, the lowest two
WAVE_LAYERS = (sh.HEIGHT - 2, sh.HEIGHT - 1)

_DEFAULT_FLOW_MATERIALS = {
    FlowType.MIST: DefaultMaterial.MIST,
    FlowType.SEA_FOAM: DefaultMaterial.MIST,
    FlowType.STEAM: DefaultMaterial.MIST,
    FlowType.OCEAN_WAVE: DefaultMaterial.WATER,
    FlowType.MAGMA_MIST: DefaultMaterial.MAGMA,
    FlowType.FIRE: DefaultMaterial.FIRE,
    FlowType.CAMP_FIRE: DefaultMaterial.FIRE,
    FlowType.DRAGONFIRE: DefaultMaterial.FIRE,
    FlowType.MIASMA: DefaultMaterial.MIASMA,
    FlowType.SMOKE: DefaultMaterial.SMOKE,
}


def flow_material(flow) -> Material:
    """Default material of a flow type, the flow's own material otherwise."""
    kind = _DEFAULT_FLOW_MATERIALS.get(flow.type)
    if kind is not None:
        return Default(kind)
    return Generic(flow.material)


def flow_probability(density: int) -> float:
    return min(max(abs(density), 0), MAX_DENSITY) / DENSITY_DIVISOR


def build_flow(flow, context, palette) -> np.ndarray:
    """
    Build the cloud of a flow over its tile.

    Returns:
        uint8 material box
    """
    rng = stable_rng(flow.pos)
    probability = flow_probability(flow.density)
    shape = sh.box_from_fn(lambda x, y, z: bool(rng.random() < probability), dtype=bool)
    if flow.type == FlowType.OCEAN_WAVE:
        mask = np.zeros(shape.shape, dtype=bool)
        mask[list(WAVE_LAYERS)] = True
        shape &= mask
    return sh.box_with_material(shape, palette.get(flow_material(flow), context))
