"""
Metatile, attribute and block records.

A metatile is a 16x16 map unit built from 8 tile entries:
- Entries 0-3: bottom (ground) layer, TL/TR/BL/BR
- Entries 4-7: top (overlay) layer, TL/TR/BL/BR

Each tile entry is a u16:
- Bits 0-9: tile ID (0-1023)
- Bit 10: horizontal flip
- Bit 11: vertical flip
- Bits 12-15: palette index (0-15)
"""

from typing import NamedTuple, Tuple

from .constants import (
    NUM_TILES_PER_METATILE,
    NUM_TILES_PER_LAYER,
    TILE_ID_MASK,
    TILE_HFLIP,
    TILE_VFLIP,
    TILE_PALETTE_SHIFT,
    METATILE_ID_MASK,
    COLLISION_MASK,
    COLLISION_SHIFT,
    ELEVATION_MASK,
    ELEVATION_SHIFT,
    ATTR_BEHAVIOR_MASK,
    ATTR_TERRAIN_MASK,
    ATTR_TERRAIN_SHIFT,
    ATTR_ENCOUNTER_MASK,
    ATTR_ENCOUNTER_SHIFT,
    ATTR_LAYER_TYPE_MASK,
    ATTR_LAYER_TYPE_SHIFT,
)


class TileEntry(NamedTuple):
    """One 8x8 tile reference inside a metatile."""
    tile_id: int
    h_flip: bool
    v_flip: bool
    palette_index: int

    @classmethod
    def from_raw(cls, value: int) -> "TileEntry":
        return cls(
            tile_id=value & TILE_ID_MASK,
            h_flip=bool(value & TILE_HFLIP),
            v_flip=bool(value & TILE_VFLIP),
            palette_index=(value >> TILE_PALETTE_SHIFT) & 0xF,
        )

    def to_raw(self) -> int:
        value = self.tile_id & TILE_ID_MASK
        if self.h_flip:
            value |= TILE_HFLIP
        if self.v_flip:
            value |= TILE_VFLIP
        return value | ((self.palette_index & 0xF) << TILE_PALETTE_SHIFT)


class Metatile(NamedTuple):
    """Eight tile entries: four ground followed by four overlay."""
    entries: Tuple[TileEntry, ...]

    @classmethod
    def from_raw(cls, values) -> "Metatile":
        entries = tuple(TileEntry.from_raw(v) for v in values)
        if len(entries) != NUM_TILES_PER_METATILE:
            raise ValueError(
                f"A metatile has {NUM_TILES_PER_METATILE} tile entries, got {len(entries)}"
            )
        return cls(entries)

    @property
    def ground(self) -> Tuple[TileEntry, ...]:
        return self.entries[:NUM_TILES_PER_LAYER]

    @property
    def overlay(self) -> Tuple[TileEntry, ...]:
        return self.entries[NUM_TILES_PER_LAYER:]

    def layer(self, is_overlay: bool) -> Tuple[TileEntry, ...]:
        return self.overlay if is_overlay else self.ground


class MetatileAttribute(int):
    """
    32-bit metatile attribute word.

    - Bits 0-8: behavior
    - Bits 9-13: terrain type
    - Bits 24-26: encounter type
    - Bits 29-30: layer type (0=normal, 1=covered, 2=split)
    """

    @property
    def behavior(self) -> int:
        return self & ATTR_BEHAVIOR_MASK

    @property
    def terrain_type(self) -> int:
        return (self & ATTR_TERRAIN_MASK) >> ATTR_TERRAIN_SHIFT

    @property
    def encounter_type(self) -> int:
        return (self & ATTR_ENCOUNTER_MASK) >> ATTR_ENCOUNTER_SHIFT

    @property
    def layer_type(self) -> int:
        return (self & ATTR_LAYER_TYPE_MASK) >> ATTR_LAYER_TYPE_SHIFT


class Block(int):
    """
    Packed map cell (u16).

    - Bits 0-9: Metatile ID
    - Bits 10-11: Collision
    - Bits 12-15: Elevation
    """

    @property
    def metatile_id(self) -> int:
        return self & METATILE_ID_MASK

    @property
    def collision(self) -> int:
        return (self & COLLISION_MASK) >> COLLISION_SHIFT

    @property
    def elevation(self) -> int:
        return (self & ELEVATION_MASK) >> ELEVATION_SHIFT
