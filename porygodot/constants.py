"""
Constants for Gen 3 tileset data and Godot output.

This module contains all magic numbers and constants used throughout the codebase
to make the code more maintainable and self-documenting.
"""

from dataclasses import dataclass

# Tile dimensions
TILE_SIZE = 8  # 8x8 pixels
METATILE_SIZE = 16  # 16x16 pixels (2x2 tiles)
NUM_TILES_PER_METATILE = 8
NUM_TILES_PER_LAYER = 4
METATILE_DATA_LENGTH = 16  # 8 u16 tile entries
METATILE_ATTRIBUTE_LENGTH = 4  # u32 per metatile
BLOCK_LENGTH = 2  # u16 per map cell
TILE_4BPP_LENGTH = 32  # 8x8 pixels, 2 pixels per byte

# Tile entry bit layout (metatiles.bin)
TILE_ID_MASK = 0x03FF      # Bits 0-9
TILE_HFLIP = 0x0400        # Bit 10
TILE_VFLIP = 0x0800        # Bit 11
TILE_PALETTE_SHIFT = 12    # Bits 12-15

# Block bit layout (map.bin)
METATILE_ID_MASK = 0x03FF  # Bits 0-9: Metatile ID
COLLISION_MASK = 0x0C00    # Bits 10-11: Collision type
COLLISION_SHIFT = 10
ELEVATION_MASK = 0xF000    # Bits 12-15: Elevation
ELEVATION_SHIFT = 12

# Metatile attribute bit layout (metatile_attributes.bin)
ATTR_BEHAVIOR_MASK = 0x000001FF        # Bits 0-8
ATTR_TERRAIN_MASK = 0x00003E00         # Bits 9-13
ATTR_TERRAIN_SHIFT = 9
ATTR_ENCOUNTER_MASK = 0x07000000       # Bits 24-26
ATTR_ENCOUNTER_SHIFT = 24
ATTR_LAYER_TYPE_MASK = 0x60000000      # Bits 29-30
ATTR_LAYER_TYPE_SHIFT = 29

# Ruby/Sapphire/Emerald ROMs store u16 attributes
METATILE_ATTRIBUTE16_LENGTH = 2
ATTR16_BEHAVIOR_MASK = 0x00FF          # Bits 0-7
ATTR16_LAYER_TYPE_MASK = 0xF000        # Bits 12-15
ATTR16_LAYER_TYPE_SHIFT = 12

# Palette constants
NUM_PALETTES_PER_TILESET = 16
PALETTE_COLORS = 16
UNSET_COLOR = (0, 0, 0, 0)

# Collision overlay atlas
COLLISION_COLS = 4   # one column per collision value 0-3
COLLISION_ROWS = 16  # one row per elevation value 0-15

# Godot TileMapLayer tile_map_data format version
TILE_MAP_DATA_FORMAT = 0
TILE_MAP_CELL_LENGTH = 12

# GBA ROM layout
GBA_ROM_BASE = 0x08000000
GBA_ROM_MAX_SIZE = 0x02000000
ROM_GAME_CODE_OFFSET = 0xAC
TILESET_HEADER_LENGTH = 24
GBA_PALETTE_LENGTH = 32  # 16 BGR555 colors
LZ77_TYPE = 0x10

# Decomp naming
TILESET_LABEL_PREFIX = "gTileset_"
NULL_TILESET = "NULL"

# Output layout
TILES_DIR = "tiles"
TILESETS_DIR = "tilesets"
SCENES_DIR = "scenes"
DATA_DIR = "data"
COLLISION_ATLAS_FILENAME = "collision_overlay.png"


@dataclass(frozen=True)
class RenderConfig:
    """
    Geometry of the tile/metatile/palette ID spaces and the atlas layout.

    The primary ranges are the fixed sizes the game reserves for the primary
    tileset, not the number of entries a tileset actually defines.
    """
    num_tiles_in_primary: int = 640
    num_metatiles_in_primary: int = 640
    num_pals_in_primary: int = 7
    num_pals_total: int = 13
    atlas_columns: int = 8


# FireRed/LeafGreen
FIRERED = RenderConfig()
# Ruby/Sapphire/Emerald
EMERALD = RenderConfig(
    num_tiles_in_primary=512,
    num_metatiles_in_primary=512,
    num_pals_in_primary=6,
    num_pals_total=13,
)

GAME_CONFIGS = {
    "firered": FIRERED,
    "emerald": EMERALD,
}
