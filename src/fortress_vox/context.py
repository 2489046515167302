"""
Export Context

A read-only bundle of the source-wide lists every stage of the export
needs: tile types, materials, inorganic flags, plant raws and building
definitions. It is built once per export and passed down explicitly.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .logging_utils import get_logger
from .records import (
    BLOCK_SIZE,
    BuildingDefinition,
    InorganicMaterial,
    MapInfo,
    MatPair,
    MaterialDefinition,
    PlantRaw,
    Tiletype,
)
from .shape import BASE

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExportSettings:
    """Settings shared by the whole export."""
    year_tick: int = 0


class ExportContext:
    """
    Lookup tables for one export.

    Usage:
        context = ExportContext.from_source(source, ExportSettings(year_tick=0))
        tiletype = context.tiletype(42)
    """

    def __init__(
        self,
        settings: ExportSettings,
        map_info: MapInfo,
        tiletypes: List[Tiletype] = (),
        materials: List[MaterialDefinition] = (),
        inorganic_materials: List[InorganicMaterial] = (),
        material_flag_names: List[str] = (),
        plant_raws: List[PlantRaw] = (),
        building_definitions: List[BuildingDefinition] = (),
    ):
        self.settings = settings
        self.map_info = map_info
        self.tiletypes: Dict[int, Tiletype] = {t.id: t for t in tiletypes}
        # first definition wins, like a linear search would
        self.materials: Dict[MatPair, MaterialDefinition] = {}
        for material in materials:
            self.materials.setdefault(material.mat_pair, material)
        self.inorganic_materials: Dict[MatPair, InorganicMaterial] = {
            m.mat_pair: m for m in inorganic_materials
        }
        self.material_flag_names = list(material_flag_names)
        self.plant_raws: Dict[int, PlantRaw] = {p.index: p for p in plant_raws}
        self.building_map: Dict[Tuple[int, int, int], BuildingDefinition] = {
            tuple(d.building_type): d for d in building_definitions
        }
        self.skipped: Counter = Counter()

    @classmethod
    def from_source(cls, source, settings: ExportSettings) -> "ExportContext":
        """Fetch every list from a ``FortressSource``."""
        return cls(
            settings=settings,
            map_info=source.map_info(),
            tiletypes=source.tiletypes(),
            materials=source.materials(),
            inorganic_materials=source.inorganic_materials(),
            material_flag_names=source.material_flag_names(),
            plant_raws=source.plant_raws(),
            building_definitions=source.building_definitions(),
        )

    @property
    def year_tick(self) -> int:
        return self.settings.year_tick

    def tiletype(self, tiletype_id: int) -> Optional[Tiletype]:
        return self.tiletypes.get(tiletype_id)

    def material(self, mat_pair: MatPair) -> Optional[MaterialDefinition]:
        return self.materials.get(mat_pair)

    def plant_raw(self, index: int) -> Optional[PlantRaw]:
        return self.plant_raws.get(index)

    def inorganic_flags(self, mat_pair: MatPair) -> List[str]:
        """Flag names of an inorganic material, empty when unknown."""
        info = self.inorganic_materials.get(mat_pair)
        if info is None:
            return []
        names = self.material_flag_names
        return [names[f] for f in info.flags if 0 <= f < len(names)]

    def inorganic_token(self, mat_pair: MatPair) -> str:
        info = self.inorganic_materials.get(mat_pair)
        return info.token if info is not None else ""

    def building_definition(self, building_type) -> Optional[BuildingDefinition]:
        return self.building_map.get(tuple(building_type))

    def note_skipped(self, kind: str, detail) -> None:
        """Record a source record that could not be exported."""
        self.skipped[kind] += 1
        logger.debug("Skipped %s: %s", kind, detail)

    def max_vox_x(self) -> int:
        return (self.map_info.block_size_x * BLOCK_SIZE * BASE) // 2

    def max_vox_y(self) -> int:
        return (self.map_info.block_size_y * BLOCK_SIZE * BASE) // 2
