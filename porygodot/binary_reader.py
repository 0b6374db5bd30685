"""
Binary structure decoder for GBA tileset data.

Every reader takes a byte buffer plus an offset and either returns a complete
record or raises TruncatedData; nothing here reads past the end of a buffer.
All multi-byte values are little-endian.
"""

import struct
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .constants import (
    METATILE_DATA_LENGTH,
    METATILE_ATTRIBUTE_LENGTH,
    METATILE_ATTRIBUTE16_LENGTH,
    ATTR16_BEHAVIOR_MASK,
    ATTR16_LAYER_TYPE_MASK,
    ATTR16_LAYER_TYPE_SHIFT,
    ATTR_LAYER_TYPE_MASK,
    ATTR_LAYER_TYPE_SHIFT,
    BLOCK_LENGTH,
    NUM_TILES_PER_METATILE,
    PALETTE_COLORS,
    GBA_PALETTE_LENGTH,
    GBA_ROM_BASE,
    GBA_ROM_MAX_SIZE,
    TILESET_HEADER_LENGTH,
    TILE_SIZE,
    TILE_4BPP_LENGTH,
)
from .errors import TruncatedData
from .metatile import Metatile, MetatileAttribute, Block
from .tile_store import TilePixels

Color = Tuple[int, int, int, int]

_METATILE_STRUCT = struct.Struct(f'<{NUM_TILES_PER_METATILE}H')
_PALETTE_STRUCT = struct.Struct(f'<{PALETTE_COLORS}H')
_HEADER_STRUCT = struct.Struct('<BBxx5I')


def require(data: bytes, offset: int, size: int, what: str) -> None:
    """Raise TruncatedData unless data[offset:offset + size] is fully present."""
    if offset < 0 or offset + size > len(data):
        raise TruncatedData(what, offset, size, len(data) - offset)


def read_u8(data: bytes, offset: int) -> int:
    require(data, offset, 1, "u8")
    return data[offset]


def read_u16(data: bytes, offset: int) -> int:
    require(data, offset, 2, "u16")
    return data[offset] | (data[offset + 1] << 8)


def read_u32(data: bytes, offset: int) -> int:
    require(data, offset, 4, "u32")
    return struct.unpack_from('<I', data, offset)[0]


class TilesetLayout(Enum):
    """
    Field order of the trailing pointers in a ROM tileset header.

    FIRERED: ..., metatiles, callback, metatileAttributes
    RUBY:    ..., metatiles, metatileAttributes, callback
    """
    FIRERED = "firered"
    RUBY = "ruby"

    @property
    def attribute_length(self) -> int:
        """Bytes per metatile attribute: u32 on FireRed/LeafGreen, u16 otherwise."""
        if self is TilesetLayout.FIRERED:
            return METATILE_ATTRIBUTE_LENGTH
        return METATILE_ATTRIBUTE16_LENGTH

    @classmethod
    def from_game_code(cls, game_code: str) -> "TilesetLayout":
        """FireRed/LeafGreen game codes start with 'BP' (BPRE, BPGE)."""
        if game_code.startswith("BP"):
            return cls.FIRERED
        return cls.RUBY


@dataclass(frozen=True)
class TilesetHeader:
    """Decoded `struct Tileset` from ROM. Pointers are raw GBA addresses."""
    is_compressed: bool
    is_secondary: bool
    tiles_ptr: int
    palettes_ptr: int
    metatiles_ptr: int
    metatile_attributes_ptr: int
    callback_ptr: int

    @property
    def metatile_count(self) -> int:
        """Metatiles are stored directly before their attribute table."""
        if not self.metatiles_ptr or self.metatile_attributes_ptr <= self.metatiles_ptr:
            return 0
        return (self.metatile_attributes_ptr - self.metatiles_ptr) // METATILE_DATA_LENGTH


def parse_tileset_header(data: bytes, offset: int, layout: TilesetLayout) -> TilesetHeader:
    """
    Decode a 24-byte tileset header.

    Layout:
        u8  isCompressed
        u8  isSecondary
        u8  padding[2]
        u32 tiles
        u32 palettes
        u32 metatiles
        u32 metatileAttributes / callback  (order depends on layout)
        u32 callback / metatileAttributes
    """
    require(data, offset, TILESET_HEADER_LENGTH, "tileset header")
    (is_compressed, is_secondary, tiles, palettes, metatiles,
     fourth, fifth) = _HEADER_STRUCT.unpack_from(data, offset)

    if layout is TilesetLayout.FIRERED:
        callback, attributes = fourth, fifth
    else:
        attributes, callback = fourth, fifth

    return TilesetHeader(
        is_compressed=bool(is_compressed),
        is_secondary=bool(is_secondary),
        tiles_ptr=tiles,
        palettes_ptr=palettes,
        metatiles_ptr=metatiles,
        metatile_attributes_ptr=attributes,
        callback_ptr=callback,
    )


def gba_pointer_to_offset(pointer: int) -> Optional[int]:
    """
    Convert a GBA ROM address (0x08xxxxxx) to a file offset.

    Returns:
        The offset, or None for a null pointer

    Raises:
        ValueError: If the pointer does not point into cartridge ROM
    """
    if pointer == 0:
        return None
    offset = pointer - GBA_ROM_BASE
    if offset < 0 or offset >= GBA_ROM_MAX_SIZE:
        raise ValueError(f"0x{pointer:08X} is not a ROM pointer")
    return offset


def decode_metatile(data: bytes, offset: int = 0) -> Metatile:
    """Decode one 16-byte metatile record."""
    require(data, offset, METATILE_DATA_LENGTH, "metatile")
    return Metatile.from_raw(_METATILE_STRUCT.unpack_from(data, offset))


def decode_metatiles(data: bytes, offset: int = 0, count: Optional[int] = None) -> List[Metatile]:
    """
    Decode an array of metatiles (metatiles.bin).

    Args:
        data: Raw bytes
        offset: Start of the array
        count: Number of records to read; defaults to as many whole records as
            the buffer holds (a trailing partial record is ignored)
    """
    if count is None:
        count = max(len(data) - offset, 0) // METATILE_DATA_LENGTH
    else:
        require(data, offset, count * METATILE_DATA_LENGTH, "metatile array")
    return [decode_metatile(data, offset + i * METATILE_DATA_LENGTH) for i in range(count)]


def decode_metatile_attributes(data: bytes, offset: int = 0,
                               count: Optional[int] = None) -> List[MetatileAttribute]:
    """Decode an array of u32 metatile attributes (metatile_attributes.bin)."""
    if count is None:
        count = max(len(data) - offset, 0) // METATILE_ATTRIBUTE_LENGTH
    else:
        require(data, offset, count * METATILE_ATTRIBUTE_LENGTH, "metatile attribute array")
    values = struct.unpack_from(f'<{count}I', data, offset) if count else ()
    return [MetatileAttribute(v) for v in values]


def decode_metatile_attributes_u16(data: bytes, offset: int = 0,
                                   count: Optional[int] = None) -> List[MetatileAttribute]:
    """
    Decode an array of u16 attributes (Ruby/Sapphire/Emerald ROMs).

    Behavior (bits 0-7) and layer type (bits 12-15) are moved to their
    places in the 32-bit word; the u16 form has no terrain or encounter type.
    """
    if count is None:
        count = max(len(data) - offset, 0) // METATILE_ATTRIBUTE16_LENGTH
    else:
        require(data, offset, count * METATILE_ATTRIBUTE16_LENGTH, "metatile attribute array")
    values = struct.unpack_from(f'<{count}H', data, offset) if count else ()
    return [
        MetatileAttribute(
            (v & ATTR16_BEHAVIOR_MASK)
            | ((((v & ATTR16_LAYER_TYPE_MASK) >> ATTR16_LAYER_TYPE_SHIFT) << ATTR_LAYER_TYPE_SHIFT)
               & ATTR_LAYER_TYPE_MASK)
        )
        for v in values
    ]


def decode_block_data(data: bytes, offset: int = 0, count: Optional[int] = None) -> List[Block]:
    """Decode u16 map cells (map.bin / blockdata)."""
    if count is None:
        count = max(len(data) - offset, 0) // BLOCK_LENGTH
    else:
        require(data, offset, count * BLOCK_LENGTH, "block data")
    values = struct.unpack_from(f'<{count}H', data, offset) if count else ()
    return [Block(v) for v in values]


def _upconvert(channel: int) -> int:
    """5-bit to 8-bit channel, matching gbagfx's JASC-PAL output."""
    return (channel * 255) // 31


def decode_gba_palette(data: bytes, offset: int = 0) -> List[Color]:
    """
    Decode a 16-color BGR555 palette.

    Each color is a u16: bits 0-4 red, 5-9 green, 10-14 blue.
    """
    require(data, offset, GBA_PALETTE_LENGTH, "palette")
    colors = []
    for value in _PALETTE_STRUCT.unpack_from(data, offset):
        r = _upconvert(value & 0x1F)
        g = _upconvert((value >> 5) & 0x1F)
        b = _upconvert((value >> 10) & 0x1F)
        colors.append((r, g, b, 255))
    return colors


def decode_4bpp_tiles(data: bytes, tiles_wide: int = 16) -> TilePixels:
    """
    Lay out raw 4bpp tile data as an index matrix `tiles_wide` tiles across.

    Each 8x8 tile is 32 bytes, 4 bytes per row; the low nibble of each byte is
    the left pixel of the pair. A trailing partial tile is ignored.
    """
    if tiles_wide <= 0:
        raise ValueError("tiles_wide must be positive")

    total_tiles = len(data) // TILE_4BPP_LENGTH
    tiles_tall = (total_tiles + tiles_wide - 1) // tiles_wide
    width = tiles_wide * TILE_SIZE
    height = tiles_tall * TILE_SIZE
    pixels = bytearray(width * height)

    for tile in range(total_tiles):
        base_x = (tile % tiles_wide) * TILE_SIZE
        base_y = (tile // tiles_wide) * TILE_SIZE
        src = tile * TILE_4BPP_LENGTH
        for row in range(TILE_SIZE):
            dst = (base_y + row) * width + base_x
            for pair in range(TILE_SIZE // 2):
                value = data[src + row * 4 + pair]
                pixels[dst + pair * 2] = value & 0x0F
                pixels[dst + pair * 2 + 1] = value >> 4

    return TilePixels(width, height, bytes(pixels))
