"""
Game Sources

The exporter reads the fortress through the ``FortressSource`` interface.
A live remote-procedure client implements it against a running game; this
package ships ``SnapshotSource``, which serves the same records from a JSON
snapshot of a fortress (the format written by ``fortvox dump-lists`` and by
the ``dump`` method below).

Snapshot layout::

    {
      "map_info": {...},
      "current_tick": 0,
      "view_pos_z": 0,
      "tiletypes": [...],
      "materials": [...],
      "inorganic_materials": [...],
      "enums": {"material_flags": [...]},
      "plant_raws": [...],
      "building_definitions": [...],
      "buildings": [...],
      "blocks": [...],
      "engravings": [...]
    }

Buildings are fortress-global: like the game, the snapshot source attaches
the whole building list to every block it streams.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, List, Optional, Union

from .errors import SourceError
from .logging_utils import get_logger
from .records import (
    BlockList,
    BuildingDefinition,
    BuildingInstance,
    Engraving,
    InorganicMaterial,
    MapBlock,
    MapInfo,
    MaterialDefinition,
    PlantRaw,
    Tiletype,
)

logger = get_logger(__name__)

# The game reports elevations relative to this z-level
ELEVATION_BASE = 100


class FortressSource(ABC):
    """Read-only access to a fortress, apart from pausing the game."""

    @abstractmethod
    def set_pause_state(self, paused: bool) -> None:
        ...

    @abstractmethod
    def reset_map_hashes(self) -> None:
        """Ask the game to resend every block, even unchanged ones."""

    @abstractmethod
    def map_info(self) -> MapInfo:
        ...

    @abstractmethod
    def tiletypes(self) -> List[Tiletype]:
        ...

    @abstractmethod
    def materials(self) -> List[MaterialDefinition]:
        ...

    @abstractmethod
    def inorganic_materials(self) -> List[InorganicMaterial]:
        ...

    @abstractmethod
    def material_flag_names(self) -> List[str]:
        """Names of the material flag enum, indexed by flag value."""

    @abstractmethod
    def plant_raws(self) -> List[PlantRaw]:
        ...

    @abstractmethod
    def building_definitions(self) -> List[BuildingDefinition]:
        ...

    @abstractmethod
    def current_tick(self) -> int:
        """Current tick of the in-game year."""

    @abstractmethod
    def block_lists(self, z_range: range, blocks_per_request: int = 100) -> Iterator[BlockList]:
        """Stream the map blocks whose z is in ``z_range``, in batches."""

    def elevation_offset(self) -> int:
        """Offset between map z-levels and the elevations displayed in game."""
        return self.map_info().block_pos_z - ELEVATION_BASE

    def current_elevation(self) -> int:
        """Elevation currently displayed in game."""
        return self.elevation_offset()

    def block_list_count(self, z_range: range, blocks_per_request: int = 100) -> Optional[int]:
        """Number of batches ``block_lists`` will yield, when known."""
        return None


class SnapshotSource(FortressSource):
    """
    A fortress served from a JSON snapshot.

    Usage:
        source = SnapshotSource.load("fortress.json")
        info = source.map_info()
    """

    def __init__(self, data: dict):
        """
        Initialize from a parsed snapshot.

        Args:
            data: Mapping following the snapshot layout

        Raises:
            SourceError: if a mandatory section is missing or malformed
        """
        try:
            self._map_info = MapInfo.from_dict(data["map_info"])
            self._tiletypes = [Tiletype.from_dict(t) for t in data.get("tiletypes", [])]
            self._materials = [MaterialDefinition.from_dict(m) for m in data.get("materials", [])]
            self._inorganics = [
                InorganicMaterial.from_dict(m) for m in data.get("inorganic_materials", [])
            ]
            self._flag_names = list(data.get("enums", {}).get("material_flags", []))
            self._plant_raws = [PlantRaw.from_dict(p) for p in data.get("plant_raws", [])]
            self._building_defs = [
                BuildingDefinition.from_dict(b) for b in data.get("building_definitions", [])
            ]
            self._buildings = [BuildingInstance.from_dict(b) for b in data.get("buildings", [])]
            self._blocks = [MapBlock.from_dict(b) for b in data.get("blocks", [])]
            self._engravings = [Engraving.from_dict(e) for e in data.get("engravings", [])]
            self._current_tick = int(data.get("current_tick", 0))
            self._view_pos_z = data.get("view_pos_z")
        except (KeyError, TypeError, ValueError) as e:
            raise SourceError(f"Malformed snapshot: {e!r}") from e

        self.paused = False
        self.hash_resets = 0

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SnapshotSource":
        """Read a snapshot file."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SourceError(f"Cannot read snapshot {path}: {e}") from e
        logger.debug("Loaded snapshot %s", path)
        return cls(data)

    def to_dict(self) -> dict:
        data = {
            "map_info": self._map_info.to_dict(),
            "current_tick": self._current_tick,
            "tiletypes": [t.to_dict() for t in self._tiletypes],
            "materials": [m.to_dict() for m in self._materials],
            "inorganic_materials": [m.to_dict() for m in self._inorganics],
            "enums": {"material_flags": list(self._flag_names)},
            "plant_raws": [p.to_dict() for p in self._plant_raws],
            "building_definitions": [b.to_dict() for b in self._building_defs],
            "buildings": [b.to_dict() for b in self._buildings],
            "blocks": [b.to_dict() for b in self._blocks],
            "engravings": [e.to_dict() for e in self._engravings],
        }
        if self._view_pos_z is not None:
            data["view_pos_z"] = self._view_pos_z
        return data

    def dump(self, path: Union[str, Path], lists_only: bool = False) -> None:
        """
        Write the snapshot back to disk.

        Args:
            path: Output file
            lists_only: Only write the global lists (materials, tile types,
                plant raws, building definitions), not the map itself
        """
        data = self.to_dict()
        if lists_only:
            for key in ("buildings", "blocks", "engravings"):
                data.pop(key)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=1)

    def set_pause_state(self, paused: bool) -> None:
        self.paused = paused

    def reset_map_hashes(self) -> None:
        self.hash_resets += 1

    def map_info(self) -> MapInfo:
        return self._map_info

    def tiletypes(self) -> List[Tiletype]:
        return self._tiletypes

    def materials(self) -> List[MaterialDefinition]:
        return self._materials

    def inorganic_materials(self) -> List[InorganicMaterial]:
        return self._inorganics

    def material_flag_names(self) -> List[str]:
        return self._flag_names

    def plant_raws(self) -> List[PlantRaw]:
        return self._plant_raws

    def building_definitions(self) -> List[BuildingDefinition]:
        return self._building_defs

    def current_tick(self) -> int:
        return self._current_tick

    def current_elevation(self) -> int:
        if self._view_pos_z is None:
            return super().current_elevation()
        return int(self._view_pos_z) + self.elevation_offset()

    def _blocks_in(self, z_range: range) -> List[MapBlock]:
        return [b for b in self._blocks if b.map_z in z_range]

    def block_list_count(self, z_range: range, blocks_per_request: int = 100) -> int:
        count = len(self._blocks_in(z_range))
        return (count + blocks_per_request - 1) // blocks_per_request

    def block_lists(self, z_range: range, blocks_per_request: int = 100) -> Iterator[BlockList]:
        if blocks_per_request <= 0:
            raise ValueError("blocks_per_request must be positive")
        blocks = self._blocks_in(z_range)
        engravings = [e for e in self._engravings if e.pos.z in z_range]
        for start in range(0, len(blocks), blocks_per_request):
            batch = []
            for block in blocks[start:start + blocks_per_request]:
                streamed = MapBlock(**{**block.__dict__, "buildings": list(self._buildings)})
                batch.append(streamed)
            yield BlockList(blocks=batch, engravings=engravings if start == 0 else [])
