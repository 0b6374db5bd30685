"""
Godot 4.3+ output writers.

- .tres: TileSet resource with Ground, Overlay and Collisions atlas sources
- .tscn: scene with one TileMapLayer node per atlas source
- .json: per-map events, connections and per-cell metadata
- project.godot: minimal project file for a standalone output directory

TileMapLayer cells are stored as `tile_map_data`, a PackedByteArray holding
a u16 format version (0) followed by 12 bytes per cell:
x, y, source id, atlas x, atlas y, alternative tile, all little-endian u16.
"""

import struct
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .constants import (
    COLLISION_COLS,
    COLLISION_ROWS,
    METATILE_SIZE,
    TILE_MAP_DATA_FORMAT,
    FIRERED,
)
from .logging_config import get_logger
from .metatile import Block
from .tileset import TilesetPair
from .utils import PathLike, save_json, write_text

logger = get_logger('godot_writer')

GROUND_SOURCE_ID = 0
OVERLAY_SOURCE_ID = 1

PROJECT_FILENAME = "project.godot"

# map.json fields copied verbatim when present
PASSTHROUGH_FIELDS = ("id", "music", "weather", "map_type", "show_map_name", "battle_scene")
EVENT_FIELDS = ("object_events", "warp_events", "coord_events", "bg_events")

CellMapper = Callable[[int], Tuple[int, int]]

_CELL_STRUCT = struct.Struct("<6H")


# ---------------------------------------------------------------------------
# Cell serialization
# ---------------------------------------------------------------------------

def metatile_atlas_coords(block: int, columns: int = FIRERED.atlas_columns) -> Tuple[int, int]:
    """Atlas (column, row) of a cell's metatile."""
    metatile_id = Block(block).metatile_id
    return metatile_id % columns, metatile_id // columns


def collision_atlas_coords(block: int) -> Tuple[int, int]:
    """Collision atlas (column, row) of a cell: (collision, elevation)."""
    block = Block(block)
    return block.collision, block.elevation


def pack_tile_map_data(
    blocks: Sequence[int],
    width: int,
    height: int,
    source_id: int,
    cell_mapper: CellMapper,
) -> bytes:
    """
    Serialize a width x height grid of cells into Godot's tile_map_data bytes.

    Cells are emitted row by row (y outer, x inner).

    Raises:
        ValueError: If `blocks` holds fewer than width * height cells
    """
    if len(blocks) < width * height:
        raise ValueError(f"Need {width * height} cells for {width}x{height}, got {len(blocks)}")

    out = bytearray(struct.pack("<H", TILE_MAP_DATA_FORMAT))
    for y in range(height):
        for x in range(width):
            atlas_x, atlas_y = cell_mapper(blocks[y * width + x])
            out += _CELL_STRUCT.pack(x, y, source_id, atlas_x, atlas_y, 0)
    return bytes(out)


def format_packed_byte_array(data: bytes) -> str:
    """Render bytes as a Godot `PackedByteArray(...)` literal."""
    return "PackedByteArray(" + ", ".join(str(b) for b in data) + ")"


# ---------------------------------------------------------------------------
# TileSet resource (.tres)
# ---------------------------------------------------------------------------

def _tile_entries(count: int, columns: int) -> List[str]:
    return [f"{i % columns}:{i // columns}/0 = 0" for i in range(count)]


def _atlas_source(index: int, name: str, texture_id: int,
                  count: int, columns: int) -> List[str]:
    lines = [
        f'[sub_resource type="TileSetAtlasSource" id="TileSetAtlasSource_{index}"]',
        f'resource_name = "{name}"',
        f'texture = ExtResource("{texture_id}")',
        f"texture_region_size = Vector2i({METATILE_SIZE}, {METATILE_SIZE})",
    ]
    lines.extend(_tile_entries(count, columns))
    lines.append("")
    return lines


def collision_source_id(has_overlay: bool) -> int:
    """
    Source id of the Collisions atlas: 2 after Ground and Overlay, or 1 when
    the pair has no Overlay source. The id differs between tileset pairs, so
    scenes and downstream tools must read it from here or from the .tres
    rather than assuming 2.
    """
    return 2 if has_overlay else 1


def build_tileset_resource(
    ground_texture: str,
    overlay_texture: Optional[str],
    collision_texture: str,
    total_positions: int,
    has_overlay: bool,
    atlas_columns: int = FIRERED.atlas_columns,
) -> str:
    """
    Build the text of a TileSet resource.

    Every metatile position gets a tile entry in the Ground (and Overlay)
    source, so any metatile ID in block data is a valid atlas coordinate.
    """
    ext_count = 2 + (1 if has_overlay else 0)
    load_steps = ext_count * 2 + 1

    next_id = 1
    ground_id = next_id
    next_id += 1
    overlay_id = None
    if has_overlay:
        overlay_id = next_id
        next_id += 1
    collision_id = next_id

    lines = [f'[gd_resource type="TileSet" load_steps={load_steps} format=3]', ""]

    lines.append(f'[ext_resource type="Texture2D" path="{ground_texture}" id="{ground_id}"]')
    if has_overlay:
        lines.append(f'[ext_resource type="Texture2D" path="{overlay_texture}" id="{overlay_id}"]')
    lines.append(f'[ext_resource type="Texture2D" path="{collision_texture}" id="{collision_id}"]')
    lines.append("")

    lines.extend(_atlas_source(GROUND_SOURCE_ID, "Ground", ground_id,
                               total_positions, atlas_columns))
    if has_overlay:
        lines.extend(_atlas_source(OVERLAY_SOURCE_ID, "Overlay", overlay_id,
                                   total_positions, atlas_columns))
    collision_index = collision_source_id(has_overlay)
    lines.extend(_atlas_source(collision_index, "Collisions", collision_id,
                               COLLISION_COLS * COLLISION_ROWS, COLLISION_COLS))

    lines.append("[resource]")
    lines.append(f"tile_size = Vector2i({METATILE_SIZE}, {METATILE_SIZE})")
    lines.append(f'sources/{GROUND_SOURCE_ID} = SubResource("TileSetAtlasSource_{GROUND_SOURCE_ID}")')
    if has_overlay:
        lines.append(
            f'sources/{OVERLAY_SOURCE_ID} = SubResource("TileSetAtlasSource_{OVERLAY_SOURCE_ID}")'
        )
    lines.append(f'sources/{collision_index} = SubResource("TileSetAtlasSource_{collision_index}")')

    return "\n".join(lines) + "\n"


def write_tileset_resource(
    tres_path: PathLike,
    ground_texture: str,
    overlay_texture: Optional[str],
    collision_texture: str,
    total_positions: int,
    has_overlay: bool,
    atlas_columns: int = FIRERED.atlas_columns,
) -> None:
    """Write a TileSet resource; texture paths are relative to the .tres file."""
    text = build_tileset_resource(
        ground_texture, overlay_texture, collision_texture,
        total_positions, has_overlay, atlas_columns,
    )
    write_text(tres_path, text)
    logger.debug(f"Wrote tileset resource {tres_path} ({total_positions} positions)")


# ---------------------------------------------------------------------------
# Map scene (.tscn)
# ---------------------------------------------------------------------------

def sanitize_node_name(name: Optional[str]) -> str:
    """
    Make a Godot node name: letters, digits and underscores only.

    Spaces and hyphens become underscores, anything else is dropped, and
    leading/trailing underscores are trimmed. Falls back to "Map".
    """
    if not name or not name.strip():
        return "Map"
    chars = []
    for c in name:
        if c.isalnum() or c == "_":
            chars.append(c)
        elif c in (" ", "-"):
            chars.append("_")
    return "".join(chars).strip("_") or "Map"


def _layer_node(name: str, tile_map_data: bytes, hidden: bool = False) -> List[str]:
    lines = [
        f'[node name="{name}" type="TileMapLayer" parent="."]',
        'tile_set = ExtResource("1")',
    ]
    if hidden:
        lines.append("modulate = Color(1, 1, 1, 0.3)")
    lines.append("texture_filter = 1")
    if hidden:
        lines.append("visible = false")
    lines.append("tile_map_data = " + format_packed_byte_array(tile_map_data))
    return lines


def build_map_scene(
    tileset_path: str,
    map_name: str,
    blocks: Sequence[int],
    width: int,
    height: int,
    has_overlay: bool,
    atlas_columns: int = FIRERED.atlas_columns,
) -> str:
    """Build the text of a map scene with Ground, Overlay and Collisions layers."""
    metatile_mapper = partial(metatile_atlas_coords, columns=atlas_columns)

    lines = [
        "[gd_scene load_steps=2 format=3]",
        "",
        f'[ext_resource type="TileSet" path="{tileset_path}" id="1"]',
        "",
        f'[node name="{sanitize_node_name(map_name)}" type="Node2D"]',
        "",
    ]

    lines.extend(_layer_node(
        "Ground",
        pack_tile_map_data(blocks, width, height, GROUND_SOURCE_ID, metatile_mapper),
    ))
    lines.append("")

    if has_overlay:
        lines.extend(_layer_node(
            "Overlay",
            pack_tile_map_data(blocks, width, height, OVERLAY_SOURCE_ID, metatile_mapper),
        ))
        lines.append("")

    lines.extend(_layer_node(
        "Collisions",
        pack_tile_map_data(blocks, width, height, collision_source_id(has_overlay),
                           collision_atlas_coords),
        hidden=True,
    ))

    return "\n".join(lines) + "\n"


def write_map_scene(
    tscn_path: PathLike,
    tileset_path: str,
    map_name: str,
    blocks: Sequence[int],
    width: int,
    height: int,
    has_overlay: bool,
    atlas_columns: int = FIRERED.atlas_columns,
) -> None:
    """Write a map scene; `tileset_path` is relative to the .tscn file."""
    text = build_map_scene(tileset_path, map_name, blocks, width, height,
                           has_overlay, atlas_columns)
    write_text(tscn_path, text)
    logger.debug(f"Wrote scene {tscn_path} ({width}x{height})")


# ---------------------------------------------------------------------------
# Map data (.json)
# ---------------------------------------------------------------------------

def _grid(blocks: Sequence[int], width: int, height: int,
          value: Callable[[Block], int]) -> List[List[int]]:
    return [
        [value(Block(blocks[y * width + x])) for x in range(width)]
        for y in range(height)
    ]


def build_map_data(
    map_name: str,
    map_json: Dict[str, Any],
    blocks: Sequence[int],
    width: int,
    height: int,
    pair: TilesetPair,
) -> Dict[str, Any]:
    """Assemble the per-map data document; behaviors come from the pair's attributes."""
    data: Dict[str, Any] = {
        "name": map_name,
        "width": width,
        "height": height,
    }
    for key in PASSTHROUGH_FIELDS:
        if key in map_json:
            data[key] = map_json[key]

    data["connections"] = map_json["connections"] if "connections" in map_json else []
    for key in EVENT_FIELDS:
        data[key] = map_json[key] if key in map_json else []

    data["metatile_behaviors"] = _grid(
        blocks, width, height,
        lambda block: pair.attribute_at(block.metatile_id).behavior,
    )
    data["collision"] = _grid(blocks, width, height, lambda block: block.collision)
    data["elevation"] = _grid(blocks, width, height, lambda block: block.elevation)
    return data


def write_map_data_json(
    json_path: PathLike,
    map_name: str,
    map_json: Dict[str, Any],
    blocks: Sequence[int],
    width: int,
    height: int,
    pair: TilesetPair,
) -> None:
    data = build_map_data(map_name, map_json, blocks, width, height, pair)
    save_json(data, json_path)
    logger.debug(f"Wrote map data {json_path}")


# ---------------------------------------------------------------------------
# project.godot
# ---------------------------------------------------------------------------

PROJECT_TEMPLATE = """; Godot project generated by porygodot

config_version=5

[application]

config/name="Decomp Maps"
config/features=PackedStringArray("4.3")

[rendering]

textures/canvas_textures/default_texture_filter=0
"""


def find_project_root(start: PathLike) -> Optional[Path]:
    """Closest directory at or above `start` that holds a project.godot."""
    start = Path(start).resolve()
    for directory in (start, *start.parents):
        if (directory / PROJECT_FILENAME).exists():
            return directory
    return None


def write_project_godot(output_dir: PathLike) -> bool:
    """
    Write a minimal project.godot into `output_dir`.

    Nothing is written when the output directory already sits inside a Godot
    project.

    Returns:
        True if a file was written
    """
    existing = find_project_root(output_dir)
    if existing is not None:
        logger.debug(f"Using existing Godot project at {existing}")
        return False

    project_path = Path(output_dir) / PROJECT_FILENAME
    write_text(project_path, PROJECT_TEMPLATE)
    logger.info(f"Wrote {project_path}")
    return True
