"""
Fortress Export Pipeline

This is the primary interface of the exporter. It orchestrates:
1. Pausing the game and streaming the map blocks
2. Indexing tiles, buildings and engravings in a ``FortressMap``
3. Building the block and building models, level by level
4. Writing the palette and the scene to a .vox file

Example Usage:
    source = SnapshotSource.load("fortress.json")
    export_voxels(source, (-10, 0), Month.TIMBER.year_tick, "fortress.vox")

Long exports run in a background worker that reports ``Progress`` events:

    events, cancel, thread = run_export_thread(params, source)
    while True:
        event = events.get()
        if isinstance(event, (Progress.Done, Progress.Error)):
            break
"""

import queue
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from .builders import build_block, build_building, model_translation
from .calendar import Month, TimeOfTheYear
from .context import ExportContext, ExportSettings
from .exporters import VoxExporter
from .logging_utils import get_logger
from .map import FortressMap
from .palette import Default, DefaultMaterial, Palette
from .prefabs import PrefabRegistry, default_prefabs
from .scene import VoxScene
from .shape import HEIGHT
from .voxel import BLOCK_VOX_SIZE, Layer, VoxModel, model_voxels_from_box, split_box

logger = get_logger(__name__)

# Blocks fetched per source round-trip
BLOCKS_PER_REQUEST = 100


class Progress:
    """Events sent by the export worker, in emission order."""

    @dataclass(frozen=True)
    class Undetermined:
        message: str

    @dataclass(frozen=True)
    class Start:
        message: str
        total: int

    @dataclass(frozen=True)
    class Update:
        message: str
        current: int
        total: int

    @dataclass(frozen=True)
    class Done:
        path: Path

    @dataclass(frozen=True)
    class Error:
        detail: str


ProgressCallback = Callable[[object], None]


@dataclass(frozen=True)
class ExportParams:
    """
    What to export.

    Attributes:
        elevation_low: Lowest elevation, as displayed in game
        elevation_high: Highest elevation, inclusive
        time: Time of the year used for the plant growths
        path: Output .vox file
    """
    elevation_low: int
    elevation_high: int
    time: TimeOfTheYear = field(default_factory=TimeOfTheYear.current)
    path: Path = Path("fortress.vox")


@dataclass
class ExportStats:
    tiles: int = 0
    blocks: int = 0
    buildings: int = 0
    models: int = 0
    palette: int = 0
    skipped: Dict[str, int] = field(default_factory=dict)


def _ignore(event) -> None:
    pass


def level_name(elevation: int) -> str:
    return f"level {elevation}"


def hidden_block_model(palette: Palette, context) -> VoxModel:
    """A full block of the Hidden material."""
    size_x, size_y, size_z = BLOCK_VOX_SIZE
    index = palette.get(Default(DefaultMaterial.HIDDEN), context)
    box = np.full((size_z, size_y, size_x), index, dtype=np.uint8)
    return VoxModel(*model_voxels_from_box(box))


class FortressExporter:
    """
    Step by step export of a fortress.

    Usage:
        exporter = FortressExporter(source, (-10, 0), year_tick=0)
        exporter.read_map()
        exporter.build_scene()
        exporter.save("fortress.vox")

    Each step returns False when cancelled.
    """

    def __init__(
        self,
        source,
        elevation_range: Tuple[int, int],
        year_tick: int = 0,
        prefabs: Optional[PrefabRegistry] = None,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[threading.Event] = None,
    ):
        """
        Initialize the exporter.

        Args:
            source: ``FortressSource`` to read from
            elevation_range: (low, high) displayed elevations, inclusive
            year_tick: Tick of the year used for the plant growths
            prefabs: Prefab registry, the shipped one by default
            progress: Receives ``Progress`` events
            cancel: Checked between batches, blocks and tiles

        Raises:
            ValueError: if the range is reversed
        """
        low, high = elevation_range
        if low > high:
            raise ValueError(f"Invalid elevation range: {low} > {high}")
        self.source = source
        self.elevation_range = (low, high)
        self.year_tick = year_tick
        self.prefabs = prefabs if prefabs is not None else default_prefabs()
        self.progress = progress or _ignore
        self.cancel = cancel or threading.Event()

        self.offset = 0
        self.z_range = range(0)
        self._context: Optional[ExportContext] = None
        self._map: Optional[FortressMap] = None
        self._palette: Optional[Palette] = None
        self._scene: Optional[VoxScene] = None
        self.stats = ExportStats()

    @property
    def context(self) -> Optional[ExportContext]:
        return self._context

    @property
    def fortress_map(self) -> Optional[FortressMap]:
        return self._map

    @property
    def scene(self) -> Optional[VoxScene]:
        return self._scene

    def _is_floor(self, building) -> bool:
        definition = self._context.building_definition(building.building_type)
        return definition is not None and self.prefabs.is_floor(definition.id)

    def read_map(self) -> bool:
        """Stream the blocks of the elevation range into the map."""
        low, high = self.elevation_range
        self.offset = self.source.elevation_offset()
        self.z_range = range(low - self.offset, high - self.offset + 1)

        self.progress(Progress.Undetermined("Reading the game lists"))
        self._context = ExportContext.from_source(self.source, ExportSettings(year_tick=self.year_tick))
        self._map = FortressMap(self._context)

        total = self.source.block_list_count(self.z_range, BLOCKS_PER_REQUEST)
        if total is None:
            self.progress(Progress.Undetermined("Reading the map"))
        else:
            self.progress(Progress.Start("Reading the map", total))

        for i, block_list in enumerate(self.source.block_lists(self.z_range, BLOCKS_PER_REQUEST)):
            if self.cancel.is_set():
                return False
            for engraving in block_list.engravings:
                self._map.add_engraving(engraving)
            for block in block_list.blocks:
                self._map.add_block(block)
            self.stats.blocks += len(block_list.blocks)
            if total is not None:
                self.progress(Progress.Update("Reading the map", i + 1, total))

        if self.cancel.is_set():
            return False

        if self._context.map_info.adventure:
            self._map.recompute_hidden(self._is_floor)

        self.stats.tiles = self._map.tile_count()
        logger.debug("Read %d blocks, %d tiles", self.stats.blocks, self.stats.tiles)
        return True

    def _setup_scene(self) -> None:
        self._palette = Palette()
        self._palette.cache_default_materials(self._context)
        self._scene = VoxScene()
        # first model, index 0 is what hidden blocks reference
        self._scene.add_model(hidden_block_model(self._palette, self._context))
        for layer in Layer:
            self._scene.set_layer(layer, hidden=layer == Layer.HIDDEN)

    def build_scene(self) -> bool:
        """Build every level, its blocks then its buildings."""
        if self._map is None:
            raise RuntimeError("No map read. Call read_map() first.")
        self._setup_scene()

        levels = sorted(z for z in self._map.levels if z in self.z_range)
        self.progress(Progress.Start("Building levels", len(levels)))
        for i, z in enumerate(levels):
            if not self._build_level(z):
                return False
            self.progress(Progress.Update("Building levels", i + 1, len(levels)))

        self._palette.write_palette(self._scene)
        self.stats.models = len(self._scene.models)
        self.stats.palette = len(self._palette)
        self.stats.skipped = dict(self._context.skipped)
        return True

    def _build_level(self, z: int) -> bool:
        level = self._map.levels[z]
        translation = (0, 0, HEIGHT // 2 + z * HEIGHT - self.z_range.start * HEIGHT)
        group = self._scene.add_group(self._scene.root_group, level_name(z + self.offset), translation)

        for block in level.blocks:
            if self.cancel.is_set():
                return False
            build_block(block, self._map, self._context, self._palette, self._scene, group, self.cancel)
        if self.cancel.is_set():
            return False

        buildings_group = None
        for building in level.buildings:
            box = build_building(building, self._map, self._context, self._palette, self.prefabs)
            if box is None or not box.any():
                continue
            if buildings_group is None:
                buildings_group = self._scene.add_group(group, "buildings", layer=Layer.BUILDING)
            name = building_name(building, self._context)
            # long roads and bridges do not fit in a single model
            pieces = [(dx, dy, piece) for dx, dy, piece in split_box(box) if piece.any()]
            if len(pieces) > 1:
                logger.debug("Split %s into %d models", name, len(pieces))
            origin = building.origin
            for part, (dx, dy, piece) in enumerate(pieces, 1):
                size, voxels = model_voxels_from_box(piece)
                self._scene.add_model_and_shape(
                    buildings_group,
                    name if len(pieces) == 1 else f"{name} part {part}",
                    VoxModel(size, voxels),
                    Layer.BUILDING,
                    model_translation(origin.x + dx, origin.y + dy, size, self._context),
                )
            self.stats.buildings += 1
        return True

    def save(self, path: Union[str, Path]) -> Path:
        """Write the scene, replacing ``path`` only once fully written."""
        if self._scene is None:
            raise RuntimeError("No scene built. Call build_scene() first.")
        path = Path(path)
        self.progress(Progress.Undetermined("Writing the file"))
        VoxExporter().export(self._scene, path)
        return path


def building_name(building, context) -> str:
    definition = context.building_definition(building.building_type)
    label = definition.id if definition is not None else "building"
    return f"{label} {building.index}"


def log_stats(stats: ExportStats) -> None:
    logger.info(
        "Exported %d tiles in %d blocks, %d buildings, %d models, %d palette entries",
        stats.tiles, stats.blocks, stats.buildings, stats.models, stats.palette,
    )
    if stats.skipped:
        details = ", ".join(f"{kind}: {count}" for kind, count in sorted(stats.skipped.items()))
        logger.info("Skipped records: %s", details)


def export_voxels(
    source,
    elevation_range: Tuple[int, int],
    year_tick: int,
    path: Union[str, Path],
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[threading.Event] = None,
    prefabs: Optional[PrefabRegistry] = None,
) -> Optional[ExportStats]:
    """
    Export a range of elevations to a .vox file.

    The game stays paused while the map is read. Nothing is written when
    cancelled.

    Args:
        source: ``FortressSource`` to read from
        elevation_range: (low, high) displayed elevations, inclusive
        year_tick: Tick of the year used for the plant growths
        path: Output file
        progress: Receives ``Progress`` events, ``Done`` last
        cancel: Cancellation signal
        prefabs: Prefab registry, the shipped one by default

    Returns:
        Export statistics, None when cancelled
    """
    progress = progress or _ignore
    exporter = FortressExporter(source, elevation_range, year_tick, prefabs, progress, cancel)

    source.set_pause_state(True)
    try:
        source.reset_map_hashes()
        if not exporter.read_map():
            logger.info("Export cancelled while reading the map")
            return None
    finally:
        source.set_pause_state(False)

    if not exporter.build_scene():
        logger.info("Export cancelled while building the scene")
        return None

    path = exporter.save(path)
    log_stats(exporter.stats)
    progress(Progress.Done(path))
    return exporter.stats


def run_export_thread(
    params: ExportParams,
    source,
    prefabs: Optional[PrefabRegistry] = None,
) -> Tuple["queue.Queue", threading.Event, threading.Thread]:
    """
    Run an export in a background thread.

    The worker owns the source for the duration of the export. Any failure
    is reported as a single ``Progress.Error``.

    Returns:
        (progress queue, cancel event, started thread)
    """
    events: "queue.Queue" = queue.Queue()
    cancel = threading.Event()

    def worker() -> None:
        try:
            year_tick = params.time.ticks(source)
            export_voxels(
                source,
                (params.elevation_low, params.elevation_high),
                year_tick,
                params.path,
                progress=events.put,
                cancel=cancel,
                prefabs=prefabs,
            )
        except Exception as e:
            logger.exception("Export failed")
            events.put(Progress.Error(str(e) or type(e).__name__))

    thread = threading.Thread(target=worker, name="fortress-export", daemon=True)
    thread.start()
    return events, cancel, thread


def year_file_name(month: Month) -> str:
    return f"{month.index + 1:02d}-{month.display_name}.vox"


def export_year(
    source,
    elevation_low: int,
    elevation_high: int,
    directory: Union[str, Path],
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[threading.Event] = None,
    prefabs: Optional[PrefabRegistry] = None,
) -> List[Path]:
    """
    Export the same range once per month, to ``01-Granite.vox`` and so on.

    Returns:
        Written files, fewer than twelve when cancelled
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    prefabs = prefabs if prefabs is not None else default_prefabs()

    written = []
    for month in Month:
        path = directory / year_file_name(month)
        logger.info("Exporting %s", month.display_name)
        stats = export_voxels(
            source, (elevation_low, elevation_high), month.year_tick, path,
            progress=progress, cancel=cancel, prefabs=prefabs,
        )
        if stats is None:
            break
        written.append(path)
    return written
