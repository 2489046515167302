"""
Materials and Palette

Voxels reference a palette of at most 255 entries. The exporter works with
``Material`` descriptors (where a color comes from) and projects each one to
an ``EffectiveMaterial`` (what ends up in the file: color plus physical
attributes). Descriptors that project to the same effective material share
a palette index.

Descriptors:
- Default(kind): hard-coded colors the game does not provide (water, magma...)
- Generic(mat): a game material, colored by its state color
- DarkGeneric(mat): the same, darkened
- TileGeneric(mat, tile_material): a game material as a terrain tile
- DarkTileGeneric(mat, tile_material): the same, darkened
- Plant(mat, source_color, dest_color): a growth material recolored
  for the current season

Palette indices start at 1, index 0 meaning "no voxel".
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from . import color
from .logging_utils import get_logger
from .records import MatPair, TiletypeMaterial

logger = get_logger(__name__)

# Highest palette index
MAX_PALETTE_INDEX = 255
# HSV value factor for dark variants
DARK_FACTOR = 0.2
# Terrain never goes below this HSV value
MIN_TILE_VALUE = 0.02


class DefaultMaterial(Enum):
    """Hard-coded materials, registered first so they get stable indices."""
    HIDDEN = 0
    WATER = 1
    MIST = 2
    MAGMA = 3
    FIRE = 4
    SMOKE = 5
    MIASMA = 6
    PLANT = 7
    DEAD_PLANT = 8
    WOOD = 9
    LIGHT = 10
    ROCK = 11

    @property
    def rgba(self) -> Tuple[int, int, int, int]:
        return _DEFAULT_RGBA[self]


_DEFAULT_RGBA = {
    DefaultMaterial.HIDDEN: (0, 0, 0, 255),
    DefaultMaterial.WATER: (0, 0, 255, 64),
    DefaultMaterial.MIST: (255, 255, 255, 64),
    DefaultMaterial.MAGMA: (134, 0, 0, 64),
    DefaultMaterial.FIRE: (255, 174, 0, 64),
    DefaultMaterial.SMOKE: (100, 100, 100, 64),
    DefaultMaterial.MIASMA: (208, 89, 255, 64),
    DefaultMaterial.PLANT: (0, 153, 51, 255),
    DefaultMaterial.DEAD_PLANT: (61, 102, 0, 255),
    DefaultMaterial.WOOD: (75, 21, 0, 255),
    DefaultMaterial.LIGHT: (255, 255, 255, 255),
    DefaultMaterial.ROCK: (100, 98, 122, 255),
}


@dataclass(frozen=True)
class Default:
    kind: DefaultMaterial


@dataclass(frozen=True)
class Generic:
    mat: MatPair


@dataclass(frozen=True)
class DarkGeneric:
    mat: MatPair


@dataclass(frozen=True)
class TileGeneric:
    mat: MatPair
    tile_material: TiletypeMaterial


@dataclass(frozen=True)
class DarkTileGeneric:
    mat: MatPair
    tile_material: TiletypeMaterial


@dataclass(frozen=True)
class Plant:
    """A growth material; colors are console color indices of its prints."""
    mat: MatPair
    source_color: int
    dest_color: int


Material = Union[Default, Generic, DarkGeneric, TileGeneric, DarkTileGeneric, Plant]


def _fmt(value: float) -> str:
    return f"{value:g}"


@dataclass(frozen=True)
class EffectiveMaterial:
    """
    What a palette entry holds.

    Numeric attributes are stored as integer percents (density in per
    mille) so the record hashes reliably.
    """
    r: int = 0
    g: int = 0
    b: int = 0
    a: int = 0
    mat_type: Optional[str] = None
    metalness: Optional[int] = None
    roughness: Optional[int] = None
    transparency: Optional[int] = None
    emit: Optional[int] = None
    flux: Optional[int] = None
    ior: Optional[int] = None
    media_type: Optional[str] = None
    density: Optional[int] = None

    @property
    def rgba(self) -> Tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def with_rgb(self, rgb) -> "EffectiveMaterial":
        r, g, b = rgb
        return self._replace(r=int(r), g=int(g), b=int(b))

    def _replace(self, **changes) -> "EffectiveMaterial":
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update(changes)
        return EffectiveMaterial(**values)

    def properties(self) -> Dict[str, str]:
        """Material attributes as written in a MATL chunk."""
        props = {}
        if self.mat_type is not None:
            props["_type"] = self.mat_type
        if self.emit is not None:
            props["_emit"] = _fmt(self.emit / 100.0)
        if self.metalness is not None:
            props["_metal"] = _fmt(self.metalness / 100.0)
        if self.roughness is not None:
            props["_rough"] = _fmt(self.roughness / 100.0)
        if self.transparency is not None:
            props["_trans"] = _fmt(self.transparency / 100.0)
            props["_alpha"] = props["_trans"]
        if self.flux is not None:
            props["_flux"] = _fmt(float(self.flux))
        if self.ior is not None:
            props["_ior"] = _fmt(self.ior / 100.0)
        if self.media_type is not None:
            props["_media"] = self.media_type
        if self.density is not None:
            props["_d"] = _fmt(self.density / 1000.0)
        return props

    @classmethod
    def from_material(cls, material: Material, context) -> "EffectiveMaterial":
        """
        Project a material descriptor.

        Args:
            material: Any ``Material`` variant
            context: ``ExportContext`` holding the game's material lists

        Returns:
            The effective material
        """
        if isinstance(material, Default):
            return cls.from_default(material.kind)
        if isinstance(material, Generic):
            return cls.from_matpair(material.mat, context)
        if isinstance(material, DarkGeneric):
            res = cls.from_matpair(material.mat, context)
            return res.with_rgb(color.darken(res.rgb, DARK_FACTOR))
        if isinstance(material, TileGeneric):
            return cls.from_matpair_and_tiletype(material.mat, material.tile_material, context)
        if isinstance(material, DarkTileGeneric):
            res = cls.from_matpair_and_tiletype(material.mat, material.tile_material, context)
            return res.with_rgb(color.darken(res.rgb, DARK_FACTOR))
        if isinstance(material, Plant):
            return cls.from_plant(material, context)
        raise TypeError(f"Not a material: {material!r}")

    @classmethod
    def from_default(cls, kind: DefaultMaterial) -> "EffectiveMaterial":
        r, g, b, a = kind.rgba
        if kind == DefaultMaterial.WATER:
            return cls(r, g, b, a, mat_type="_glass", transparency=50)
        if kind == DefaultMaterial.MAGMA:
            return cls(
                r, g, b, a, mat_type="_blend", roughness=100, ior=0, metalness=50,
                transparency=100, media_type="2", density=100,
            )
        if kind in (DefaultMaterial.FIRE, DefaultMaterial.LIGHT):
            return cls(r, g, b, a, mat_type="_emit", emit=50, flux=1)
        if kind == DefaultMaterial.MIST:
            return cls(r, g, b, a, mat_type="_glass", ior=0, transparency=75)
        if kind in (DefaultMaterial.SMOKE, DefaultMaterial.MIASMA):
            return cls(r, g, b, a, mat_type="_glass", ior=0, transparency=25)
        return cls(r, g, b, a, mat_type="_diffuse")

    @classmethod
    def from_matpair(cls, mat: MatPair, context) -> "EffectiveMaterial":
        values = dict(r=0, g=0, b=0, a=0)
        definition = context.material(mat)
        if definition is None:
            context.note_skipped("material", mat)
        else:
            r, g, b = definition.state_color
            values.update(r=r, g=g, b=b, a=255)
            # water is clear, its state color is not
            if definition.id == "WATER":
                values.update(r=200, g=200, b=230, a=255)

        for flag in context.inorganic_flags(mat):
            if flag == "IS_METAL":
                values.update(mat_type="_metal", metalness=60, roughness=20)
            elif flag == "IS_GEM":
                values.update(mat_type="_glass", roughness=3, transparency=30)
            elif flag == "IS_GLASS":
                values.update(mat_type="_glass", roughness=5, transparency=60)
            elif flag == "IS_CERAMIC":
                values.update(mat_type="_glass", transparency=0)
        if context.inorganic_token(mat) == "MARBLE":
            values.update(mat_type="_metal", roughness=50, metalness=50)
        return cls(**values)

    @classmethod
    def from_matpair_and_tiletype(
        cls,
        mat: MatPair,
        tile_material: TiletypeMaterial,
        context
    ) -> "EffectiveMaterial":
        res = cls.from_matpair(mat, context)

        if tile_material == TiletypeMaterial.FROZEN_LIQUID:
            res = res._replace(mat_type="_glass", ior=50, transparency=50)
        elif tile_material == TiletypeMaterial.LAVA_STONE:
            res = res._replace(mat_type="_glass", roughness=10, transparency=0, ior=5)
        elif tile_material == TiletypeMaterial.GRASS_LIGHT:
            res = res._replace(r=0, g=153, b=51, a=255)
        elif tile_material == TiletypeMaterial.GRASS_DARK:
            res = res._replace(r=0, g=102, b=0, a=255)
        elif tile_material in (TiletypeMaterial.GRASS_DRY, TiletypeMaterial.GRASS_DEAD):
            res = res._replace(r=61, g=102, b=0, a=255)
        elif tile_material == TiletypeMaterial.CONSTRUCTION:
            res = res.with_rgb(color.desaturate(res.rgb, 0.1))
        elif tile_material in (TiletypeMaterial.STONE, TiletypeMaterial.DRIFTWOOD):
            res = res.with_rgb(color.desaturate(res.rgb, 0.15))

        return res.with_rgb(color.with_min_value(res.rgb, MIN_TILE_VALUE))

    @classmethod
    def from_plant(cls, material: Plant, context) -> "EffectiveMaterial":
        definition = context.material(material.mat)
        main = definition.state_color if definition is not None else (0, 0, 0)
        if material.source_color == material.dest_color:
            return cls(*main, 255, mat_type="_diffuse")
        rgb = color.recolor(
            main,
            color.console_color(material.source_color),
            color.console_color(material.dest_color),
        )
        return cls(*rgb, 255, mat_type="_diffuse")


class Palette:
    """
    Assignment of effective materials to palette indices.

    Usage:
        palette = Palette()
        palette.cache_default_materials(context)
        index = palette.get(Generic(mat_pair), context)
    """

    def __init__(self):
        self.materials: Dict[EffectiveMaterial, int] = {}
        self.material_cache: Dict[Material, int] = {}
        self.overflowed = False

    def __len__(self) -> int:
        return len(self.materials)

    def get(self, material: Material, context) -> int:
        """
        Palette index of a material, allocating one on first use.

        Once 255 effective materials are registered, new ones share the
        last index.
        """
        cached = self.material_cache.get(material)
        if cached is not None:
            return cached

        effective = EffectiveMaterial.from_material(material, context)
        index = self.materials.get(effective)
        if index is None:
            if len(self.materials) < MAX_PALETTE_INDEX:
                index = len(self.materials) + 1
                self.materials[effective] = index
            else:
                index = MAX_PALETTE_INDEX
                if not self.overflowed:
                    logger.warning(
                        "Palette is full, further materials share index %d", MAX_PALETTE_INDEX
                    )
                    self.overflowed = True
        self.material_cache[material] = index
        return index

    def cache_default_materials(self, context) -> None:
        for kind in DefaultMaterial:
            self.get(Default(kind), context)

    def entries(self) -> List[Tuple[int, EffectiveMaterial]]:
        """Registered entries ordered by index."""
        return sorted(((i, m) for m, i in self.materials.items()), key=lambda e: e[0])

    def rgba(self) -> np.ndarray:
        """
        The 256-slot color table of the file: index i is stored at slot i - 1.

        Returns:
            uint8 array of shape (256, 4)
        """
        table = np.zeros((256, 4), dtype=np.uint8)
        table[:, 3] = 255
        for index, material in self.entries():
            table[index - 1] = material.rgba
        return table

    def write_palette(self, scene) -> None:
        """Copy colors and material attributes of every used index into a scene."""
        scene.palette = self.rgba()
        scene.materials = {index: m.properties() for index, m in self.entries()}
