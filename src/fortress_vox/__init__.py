"""
Fortress Vox
============

Export a fortress map to MagicaVoxel (.vox) scenes.

Every map tile becomes a 3x3x5 box of voxels. Terrain, vegetation, liquids,
spatters, fire and flows go to separate layers, buildings are drawn
procedurally or from prefab models, and undiscovered terrain is covered
by opaque hidden blocks.

Key Features:
- Streaming map aggregation with neighbour-aware walls, ramps and stairs
- Seasonal plant growths, timed against the in-game calendar
- Prefab models stretched over any building footprint
- Deterministic output: randomness is seeded by tile coordinates
- Background export worker with progress events and cancellation

Example Usage:
    from fortress_vox import SnapshotSource, export_voxels, Month

    source = SnapshotSource.load("fortress.json")
    export_voxels(source, (-10, 0), Month.TIMBER.year_tick, "fortress.vox")
"""

__version__ = "1.0.0"

from .calendar import Month, TimeOfTheYear
from .export import ExportParams, FortressExporter, Progress, export_voxels, export_year, run_export_thread
from .prefabs import PrefabRegistry, default_prefabs
from .source import FortressSource, SnapshotSource

__all__ = [
    "Month",
    "TimeOfTheYear",
    "ExportParams",
    "FortressExporter",
    "Progress",
    "export_voxels",
    "export_year",
    "run_export_thread",
    "PrefabRegistry",
    "default_prefabs",
    "FortressSource",
    "SnapshotSource",
]
