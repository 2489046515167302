"""Minecart tracks: rails raised one voxel above a rock bed, flat or on a ramp."""

import numpy as np

from ..direction import NeighbouringFlat
from ..palette import Default, DefaultMaterial, Generic
from ..records import TiletypeShape
from .. import shape as sh
from .terrain import ramp_levels


def rails_slice(direction: str) -> np.ndarray:
    """Cells holding a rail, for the track directions of a tile."""
    d = NeighbouringFlat.from_direction_string(direction)
    return np.array([
        [True, not d.n, True],
        [not d.w, False, not d.e],
        [True, not d.s, True],
    ], dtype=bool)


def build_track(tile, fortress_map, context, palette) -> np.ndarray:
    """
    Build a track tile.

    The material under the track is unknown, the bed uses generic rock.

    Returns:
        uint8 material box
    """
    track_material = palette.get(Generic(tile.material), context)
    ground_material = palette.get(Default(DefaultMaterial.ROCK), context)

    rails = rails_slice(tile.tiletype.direction)
    content = np.where(rails, track_material, ground_material).astype(np.uint8)

    if tile.tiletype.shape == TiletypeShape.RAMP:
        levels = ramp_levels(fortress_map, tile.coords)
    else:
        levels = np.ones((sh.BASE, sh.BASE), dtype=int)
    levels = np.where(rails, np.clip(levels + 1, 0, sh.HEIGHT), levels)

    return sh.box_from_levels_with_content(levels, content)
