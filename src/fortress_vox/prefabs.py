"""
Prefab Engine

Buildings that are hard to describe procedurally are drawn from template
models shipped in ``assets/buildings``. A template does not hold colors but
material channels, resolved per building:

    0..7    build materials of the building (cycled)
    8..15   the same, darkened
    16..23  content materials (items stored in the building)
    24      fire
    25      wood
    26      light

Templates are cut into 3x3 tiles. Edge tiles map to the edges of the
building footprint and interior tiles repeat, so a template stretches to
any building size. Templates are authored looking north: the north edge
is their front, the one turned away from walls.

Configuration (``assets/prefabs.yaml``):

    buildings:
      Workshop/*:
        orientation: FromSource       # | AgainstWall | FacingChairOrAgainstWall
        content: Unique               # | All
        connectivity: None            # | SelfOrWall | {SelfRemovesLayer: 1}
        is_floor: false
      Floodgate:
        model: Floodgate.yaml

Every model file auto-registers its path without extension as an id.
Glob ids fill in what concrete ids leave unset.

Model files are either MagicaVoxel ``.vox`` files (palette index i is
channel i - 1) or ``.yaml`` text models:

    layers:          # top layer first
    - |
      .........      # north row first, '.' is empty,
      ..0000...      # '0'-'9' and 'a'-'q' are channels 0-26
"""

import fnmatch
from dataclasses import dataclass, fields, replace
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import yaml

from .direction import DirectionFlat, NeighbouringFlat
from .errors import ModelFormatError, PrefabConfigError
from .exporters.vox_exporter import load_vox
from .logging_utils import get_logger
from .palette import DarkGeneric, Default, DefaultMaterial, Generic, Material
from .shape import BASE, facing_away, looking_at

logger = get_logger(__name__)

ASSETS_DIR = Path(__file__).parent / "assets"
DEFAULT_CONFIG_PATH = ASSETS_DIR / "prefabs.yaml"
DEFAULT_MODELS_DIR = ASSETS_DIR / "buildings"
MODEL_EXTENSIONS = (".vox", ".yaml")

# Channel layout
CHANNELS_PER_GROUP = 8
CHANNEL_COUNT = 3 * CHANNELS_PER_GROUP + 3
EMPTY = -1
_CHANNEL_CHARS = "0123456789abcdefghijklmnopq"


class OrientationMode(Enum):
    FROM_SOURCE = "FromSource"
    AGAINST_WALL = "AgainstWall"
    FACING_CHAIR_OR_AGAINST_WALL = "FacingChairOrAgainstWall"


class ContentMode(Enum):
    UNIQUE = "Unique"
    ALL = "All"


@dataclass(frozen=True)
class Connectivity:
    """
    Erosion applied to a built prefab.

    kind is "None", "SelfOrWall" or "SelfRemovesLayer"; ``layer`` is the
    elevation (from the bottom) of the eroded layer.
    """
    kind: str = "None"
    layer: int = 0

    @classmethod
    def parse(cls, value) -> "Connectivity":
        if value in ("None", None):
            return cls()
        if value == "SelfOrWall":
            return cls("SelfOrWall")
        if isinstance(value, dict) and list(value) == ["SelfRemovesLayer"]:
            layer = value["SelfRemovesLayer"]
            if isinstance(layer, int) and not isinstance(layer, bool) and layer >= 0:
                return cls("SelfRemovesLayer", layer)
        raise PrefabConfigError(f"Invalid connectivity: {value!r}")


def _parse_enum(enum_cls, value, key: str):
    try:
        return enum_cls(value)
    except ValueError:
        names = ", ".join(m.value for m in enum_cls)
        raise PrefabConfigError(f"Invalid {key}: {value!r} (expected one of {names})") from None


@dataclass(frozen=True)
class PrefabConfig:
    """One entry of the configuration, unset fields are None."""
    model: Optional[str] = None
    orientation: Optional[OrientationMode] = None
    content: Optional[ContentMode] = None
    connectivity: Optional[Connectivity] = None
    is_floor: Optional[bool] = None

    @classmethod
    def from_dict(cls, building_id: str, data) -> "PrefabConfig":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise PrefabConfigError(f"Entry of {building_id} must be a mapping")
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise PrefabConfigError(f"Unknown keys for {building_id}: {sorted(unknown)}")

        values = {}
        if data.get("model") is not None:
            values["model"] = str(data["model"])
        if data.get("orientation") is not None:
            values["orientation"] = _parse_enum(OrientationMode, data["orientation"], "orientation")
        if data.get("content") is not None:
            values["content"] = _parse_enum(ContentMode, data["content"], "content")
        if "connectivity" in data:
            values["connectivity"] = Connectivity.parse(data["connectivity"])
        if data.get("is_floor") is not None:
            values["is_floor"] = bool(data["is_floor"])
        return cls(**values)

    def or_else(self, other: "PrefabConfig") -> "PrefabConfig":
        """Fill the unset fields from ``other``."""
        return PrefabConfig(**{
            f.name: getattr(self, f.name) if getattr(self, f.name) is not None else getattr(other, f.name)
            for f in fields(self)
        })


# Model loading

def parse_text_model(data) -> np.ndarray:
    """
    Decode a text model.

    Returns:
        int16 channel box (H, Y, X), -1 where empty
    """
    if not isinstance(data, dict) or not isinstance(data.get("layers"), list) or not data["layers"]:
        raise ModelFormatError("A text model needs a non-empty 'layers' list")

    layers = []
    for index, layer in enumerate(data["layers"]):
        if not isinstance(layer, str):
            raise ModelFormatError(f"Layer {index} is not a block of text")
        rows = [row.strip() for row in layer.strip().splitlines() if row.strip()]
        layers.append(rows)

    size_y = len(layers[0])
    size_x = len(layers[0][0]) if size_y else 0
    if size_x % BASE or size_y % BASE or size_x == 0:
        raise ModelFormatError(f"Model footprint {size_x}x{size_y} is not made of {BASE}x{BASE} tiles")

    box = np.full((len(layers), size_y, size_x), EMPTY, dtype=np.int16)
    for z, rows in enumerate(layers):
        if len(rows) != size_y or any(len(row) != size_x for row in rows):
            raise ModelFormatError(f"Layer {z} is not {size_x}x{size_y}")
        for y, row in enumerate(rows):
            for x, char in enumerate(row):
                if char == ".":
                    continue
                channel = _CHANNEL_CHARS.find(char.lower())
                if channel < 0:
                    raise ModelFormatError(f"Unknown channel {char!r} at layer {z}, row {y}")
                box[z, y, x] = channel
    return box


def channels_from_vox(size: Tuple[int, int, int], voxels: np.ndarray) -> np.ndarray:
    """Channel box of a .vox model (z up, y north) in box order."""
    size_x, size_y, size_z = size
    box = np.full((size_z, size_y, size_x), EMPTY, dtype=np.int16)
    for x, y, z, i in voxels:
        if i == 0:
            continue
        box[size_z - 1 - int(z), size_y - 1 - int(y), int(x)] = int(i) - 1
    return box


def load_model(path: Path) -> np.ndarray:
    """Load a template model file as a channel box."""
    if path.suffix == ".vox":
        size, voxels, _ = load_vox(path)
        return channels_from_vox(size, voxels)
    if path.suffix == ".yaml":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ModelFormatError(f"Invalid text model {path}: {e}") from e
        return parse_text_model(data)
    raise ModelFormatError(f"Unsupported model file type: {path}")


# Prefab building

@dataclass(frozen=True)
class Prefab:
    template: np.ndarray
    orientation: OrientationMode = OrientationMode.FROM_SOURCE
    content: ContentMode = ContentMode.UNIQUE
    connectivity: Connectivity = Connectivity()
    is_floor: bool = False

    def orient(self, building, fortress_map, context) -> np.ndarray:
        """Rotate the template according to the orientation policy."""
        origin = building.origin
        if self.orientation == OrientationMode.FROM_SOURCE:
            direction = DirectionFlat.from_source(building.direction)
            if direction is None:
                return self.template
            return looking_at(self.template, direction)
        if self.orientation == OrientationMode.FACING_CHAIR_OR_AGAINST_WALL:
            chairs = fortress_map.neighbouring_flat(
                origin, lambda o: any(is_chair(b, context) for b in o.buildings)
            )
            directions = chairs.directions()
            if directions:
                return looking_at(self.template, directions[0])
        return facing_away(self.template, fortress_map.wall_direction(origin))

    def material_table(self, building) -> List[Optional[Material]]:
        """The material of each channel, None where the building has none."""
        build = building.build_materials() or [building.material]
        table: List[Optional[Material]] = [
            Generic(build[i % len(build)]) for i in range(CHANNELS_PER_GROUP)
        ]
        table += [DarkGeneric(build[i % len(build)]) for i in range(CHANNELS_PER_GROUP)]

        content = building.content_materials()
        if self.content == ContentMode.UNIQUE:
            content = list(dict.fromkeys(content))
        content = [Generic(m) for m in content[:CHANNELS_PER_GROUP]]
        table += content + [None] * (CHANNELS_PER_GROUP - len(content))

        table += [
            Default(DefaultMaterial.FIRE),
            Default(DefaultMaterial.WOOD),
            Default(DefaultMaterial.LIGHT),
        ]
        return table

    def build(self, building, fortress_map, context, palette) -> np.ndarray:
        """
        Build the prefab for a building.

        Args:
            building: ``BuildingInstance``
            fortress_map: ``FortressMap`` for the orientation and connectivity
            context: ``ExportContext``
            palette: ``Palette`` receiving the materials

        Returns:
            uint8 material box (H, Dy * BASE, Dx * BASE)
        """
        channels = self.orient(building, fortress_map, context)

        # resolve the channels, unused channels leave no voxel
        lookup = np.zeros(CHANNEL_COUNT + 1, dtype=np.uint8)
        for channel, material in enumerate(self.material_table(building)):
            if material is not None and np.any(channels == channel):
                lookup[channel + 1] = palette.get(material, context)
        valid = (channels >= 0) & (channels < CHANNEL_COUNT)
        model = np.where(valid, lookup[np.clip(channels + 1, 0, CHANNEL_COUNT)], 0).astype(np.uint8)

        dim_x, dim_y, _ = building.bounding_box.dimension()
        model = tile_template(model, dim_x, dim_y)
        return self.erode(model, building, fortress_map, context)

    def erode(self, model: np.ndarray, building, fortress_map, context) -> np.ndarray:
        kind = self.connectivity.kind
        if kind == "None":
            return model

        origin = building.origin
        neighbours = self_connectivity(building, fortress_map, context)
        height, size_y, size_x = model.shape
        cy, cx = size_y // 2, size_x // 2
        ys = np.arange(size_y).reshape(1, size_y, 1)
        xs = np.arange(size_x).reshape(1, 1, size_x)

        if kind == "SelfOrWall":
            walls = fortress_map.neighbouring_flat(origin, lambda o: o.tile is not None and o.tile.is_wall())
            c = neighbours | walls
            keep = (
                ((xs >= cx) | c.w) & ((xs <= cx) | c.e)
                & ((ys >= cy) | c.n) & ((ys <= cy) | c.s)
            )
            return np.where(keep, model, 0).astype(np.uint8)

        # SelfRemovesLayer: the layer vanishes where the footprint goes on
        footprint = NeighbouringFlat.from_fn(lambda d: building.bounding_box.contains(origin + d))
        c = neighbours | footprint
        remove = (
            ((xs < cx) & c.w) | ((xs > cx) & c.e)
            | ((ys < cy) & c.n) | ((ys > cy) & c.s)
        )
        zi = height - 1 - self.connectivity.layer
        result = model.copy()
        if 0 <= zi < height:
            result[zi] = np.where(remove[0], 0, result[zi])
        return result


def tile_index(i: int, dimension: int, tiles: int) -> int:
    """Template tile used at footprint position ``i``."""
    if tiles >= 3:
        if i == 0:
            return 0
        if i == dimension - 1:
            return tiles - 1
        return (i - 1) % (tiles - 2) + 1
    return i % tiles


def tile_template(model: np.ndarray, dim_x: int, dim_y: int) -> np.ndarray:
    """
    Stretch a template over a footprint of ``dim_x`` x ``dim_y`` tiles.

    Edge tiles stay on the edges, interior tiles repeat.
    """
    height, size_y, size_x = model.shape
    tiles_x, tiles_y = size_x // BASE, size_y // BASE
    out = np.zeros((height, dim_y * BASE, dim_x * BASE), dtype=model.dtype)
    for x in range(dim_x):
        tx = tile_index(x, dim_x, tiles_x)
        for y in range(dim_y):
            ty = tile_index(y, dim_y, tiles_y)
            out[:, y * BASE:(y + 1) * BASE, x * BASE:(x + 1) * BASE] = \
                model[:, ty * BASE:(ty + 1) * BASE, tx * BASE:(tx + 1) * BASE]
    return out


def is_chair(building, context) -> bool:
    definition = context.building_definition(building.building_type)
    if definition is not None:
        return definition.id == "Chair"
    return building.building_type[0] == 0


def self_connectivity(building, fortress_map, context) -> NeighbouringFlat:
    """Flat neighbours of the origin holding another building of the same type."""
    def same_type(occupancy) -> bool:
        return any(
            other.building_type == building.building_type and other.index != building.index
            for other in occupancy.buildings
        )
    return fortress_map.neighbouring_flat(building.origin, same_type)


# Registry

class PrefabRegistry:
    """
    Prefabs by building id.

    Usage:
        prefabs = PrefabRegistry.load()
        prefab = prefabs.building("Workshop/Still")
    """

    def __init__(self, prefabs: Dict[str, Prefab]):
        self.prefabs = prefabs

    def __len__(self) -> int:
        return len(self.prefabs)

    def __contains__(self, building_id: str) -> bool:
        return building_id in self.prefabs

    def ids(self) -> List[str]:
        return sorted(self.prefabs)

    def building(self, building_id: Optional[str]) -> Optional[Prefab]:
        if building_id is None:
            return None
        return self.prefabs.get(building_id)

    def is_floor(self, building_id: Optional[str]) -> bool:
        prefab = self.building(building_id)
        return prefab is not None and prefab.is_floor

    @classmethod
    def load(
        cls,
        config_path: Union[str, Path] = DEFAULT_CONFIG_PATH,
        models_dir: Union[str, Path] = DEFAULT_MODELS_DIR,
    ) -> "PrefabRegistry":
        """
        Load the configuration and every model it references.

        Raises:
            PrefabConfigError: Malformed configuration or missing model
        """
        config_path, models_dir = Path(config_path), Path(models_dir)
        configs = read_config(config_path)

        if models_dir.is_dir():
            for path in sorted(p for p in models_dir.rglob("*") if p.is_file()):
                relative = path.relative_to(models_dir)
                if path.suffix not in MODEL_EXTENSIONS:
                    raise PrefabConfigError(f"Unsupported model file type: {relative}")
                building_id = relative.with_suffix("").as_posix()
                config = configs.get(building_id, PrefabConfig())
                if config.model is None:
                    config = replace(config, model=relative.as_posix())
                configs[building_id] = config

        globs = {k: v for k, v in configs.items() if "*" in k}
        statics = {k: v for k, v in configs.items() if "*" not in k}

        prefabs = {}
        for building_id, config in statics.items():
            for pattern, glob_config in sorted(globs.items()):
                if fnmatch.fnmatchcase(building_id, pattern):
                    config = config.or_else(glob_config)
            if config.model is None:
                raise PrefabConfigError(f"No model for building {building_id}")
            model_path = models_dir / config.model
            if not model_path.is_file():
                raise PrefabConfigError(f"Missing file: {config.model} for building {building_id}")
            try:
                template = load_model(model_path)
            except ModelFormatError as e:
                raise PrefabConfigError(f"Invalid model for building {building_id}: {e}") from e
            prefabs[building_id] = Prefab(
                template=template,
                orientation=config.orientation or OrientationMode.FROM_SOURCE,
                content=config.content or ContentMode.UNIQUE,
                connectivity=config.connectivity or Connectivity(),
                is_floor=bool(config.is_floor),
            )

        logger.debug("Loaded %d prefabs", len(prefabs))
        return cls(prefabs)


def read_config(path: Path) -> Dict[str, PrefabConfig]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise PrefabConfigError(f"Cannot read prefab configuration {path}: {e}") from e
    except yaml.YAMLError as e:
        raise PrefabConfigError(f"Invalid prefab configuration {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict) or set(data) - {"buildings"}:
        raise PrefabConfigError("The prefab configuration only holds a 'buildings' mapping")
    buildings = data.get("buildings") or {}
    if not isinstance(buildings, dict):
        raise PrefabConfigError("'buildings' must be a mapping")
    return {str(k): PrefabConfig.from_dict(str(k), v) for k, v in buildings.items()}


@lru_cache(maxsize=None)
def default_prefabs() -> PrefabRegistry:
    """The prefabs shipped with the package, loaded once per process."""
    return PrefabRegistry.load()
