"""
Map reader - handles reading and parsing map files from a decomp project.

Layouts come from data/layouts/layouts.json, the map list from
data/maps/map_groups.json, and per-map metadata from data/maps/<Map>/map.json.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .binary_reader import decode_block_data
from .constants import NULL_TILESET
from .logging_config import get_logger
from .metatile import Block
from .utils import PathLike, load_json

logger = get_logger('map_reader')


@dataclass(frozen=True)
class LayoutInfo:
    """One entry of layouts.json."""
    id: str
    name: str
    width: int
    height: int
    primary_tileset: str = NULL_TILESET
    secondary_tileset: str = NULL_TILESET
    blockdata_filepath: str = ""

    @property
    def has_tilesets(self) -> bool:
        return NULL_TILESET not in (self.primary_tileset, self.secondary_tileset)

    @property
    def cell_count(self) -> int:
        return self.width * self.height


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any, default: Optional[str]) -> Optional[str]:
    return default if value is None else str(value)


class MapReader:
    """Handles reading and parsing map files from decomp format."""

    def __init__(self, input_dir: PathLike):
        """
        Initialize MapReader.

        Args:
            input_dir: Path to decomp root directory
        """
        self.input_dir = Path(input_dir)
        self.maps_dir = self.input_dir / "data" / "maps"

    def load_layouts(self) -> Dict[str, LayoutInfo]:
        """
        Parse layouts.json into a layout ID -> LayoutInfo table.

        Entries without an ID are skipped; missing tileset labels become "NULL".
        """
        layouts_path = self.input_dir / "data" / "layouts" / "layouts.json"
        if not layouts_path.exists():
            logger.warning(f"layouts.json not found: {layouts_path}")
            return {}

        root = load_json(layouts_path)
        entries = root.get("layouts") if isinstance(root, dict) else None
        if not isinstance(entries, list):
            return {}

        layouts = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            layout_id = _as_str(entry.get("id"), None)
            if layout_id is None:
                continue
            layouts[layout_id] = LayoutInfo(
                id=layout_id,
                name=_as_str(entry.get("name"), layout_id),
                width=_as_int(entry.get("width")),
                height=_as_int(entry.get("height")),
                primary_tileset=_as_str(entry.get("primary_tileset"), NULL_TILESET),
                secondary_tileset=_as_str(entry.get("secondary_tileset"), NULL_TILESET),
                blockdata_filepath=_as_str(entry.get("blockdata_filepath"), ""),
            )

        logger.debug(f"Loaded {len(layouts)} layouts from {layouts_path}")
        return layouts

    def collect_map_names(self) -> List[str]:
        """
        List every map directory name, in map_groups.json group order.

        Without a group_order, every array in map_groups.json is taken in file
        order. Without map_groups.json, data/maps/ is scanned for directories
        holding a map.json.
        """
        groups_path = self.maps_dir / "map_groups.json"
        if not groups_path.exists():
            logger.warning("map_groups.json not found, scanning directories")
            if not self.maps_dir.is_dir():
                return []
            return [
                path.name for path in sorted(self.maps_dir.iterdir())
                if (path / "map.json").exists()
            ]

        root = load_json(groups_path)
        names: List[str] = []
        group_order = root.get("group_order")

        if isinstance(group_order, list):
            groups: Iterable[Any] = (root.get(group) for group in group_order)
        else:
            groups = (value for key, value in root.items() if key != "group_order")

        for group in groups:
            if isinstance(group, list):
                names.extend(str(name) for name in group)
        return names

    def map_json_path(self, map_name: str) -> Path:
        return self.maps_dir / map_name / "map.json"

    def load_map_json(self, map_name: str) -> Optional[Dict[str, Any]]:
        """map.json of a map, or None if the map has none."""
        path = self.map_json_path(map_name)
        if not path.exists():
            return None
        return load_json(path)

    def blockdata_path(self, layout: LayoutInfo) -> Path:
        return self.input_dir / layout.blockdata_filepath

    def read_block_data(self, layout: LayoutInfo) -> Optional[List[Block]]:
        """
        Read a layout's map.bin.

        Format: Each entry is u16 with:
        - Bits 0-9: Metatile ID
        - Bits 10-11: Collision
        - Bits 12-15: Elevation

        Returns:
            Flat row-major list of blocks, or None if the file does not exist
        """
        path = self.blockdata_path(layout)
        if not layout.blockdata_filepath or not path.is_file():
            return None
        with open(path, 'rb') as f:
            return decode_block_data(f.read())
