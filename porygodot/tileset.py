"""
Decoded tilesets and primary/secondary pairs.

A map always loads two tilesets at once. The primary fills tile IDs
[0, num_tiles_in_primary), metatile IDs [0, num_metatiles_in_primary) and
the first palette slots; the secondary fills everything above those
boundaries. The boundaries are fixed ID-space sizes, so a primary tileset
that defines fewer metatiles leaves a gap of empty positions.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple, Union

from .binary_reader import decode_metatiles, decode_metatile_attributes
from .constants import NUM_PALETTES_PER_TILESET, RenderConfig, FIRERED
from .logging_config import get_logger
from .metatile import Metatile, MetatileAttribute
from .palette_loader import Color, PaletteTable, load_tileset_palettes
from .tile_store import TilePixels, load_tile_pixels

logger = get_logger('tileset')


@dataclass(frozen=True)
class Tileset:
    """Immutable view of one tileset's graphics, palettes and metatiles."""
    name: str
    is_secondary: bool
    palettes: Tuple[Tuple[Color, ...], ...]
    pixels: Optional[TilePixels]
    metatiles: Tuple[Metatile, ...] = ()
    attributes: Tuple[MetatileAttribute, ...] = ()
    is_compressed: bool = False
    anim_callback: Optional[str] = None

    def __post_init__(self):
        if len(self.palettes) != NUM_PALETTES_PER_TILESET:
            raise ValueError(
                f"Tileset {self.name} has {len(self.palettes)} palette slots, "
                f"expected {NUM_PALETTES_PER_TILESET}"
            )

    @property
    def tile_count(self) -> int:
        return self.pixels.tile_count if self.pixels is not None else 0

    @property
    def metatile_count(self) -> int:
        return len(self.metatiles)

    @property
    def has_animation(self) -> bool:
        return self.anim_callback is not None


def _read_optional(path: Path) -> bytes:
    if not path.exists():
        logger.debug(f"{path.name} not found at {path}")
        return b""
    with open(path, 'rb') as f:
        return f.read()


def load_decomp_tileset(
    name: str,
    tileset_dir: Union[str, Path],
    is_secondary: bool,
    tiles_dir: Optional[Union[str, Path]] = None,
    palettes_dir: Optional[Union[str, Path]] = None,
    anim_callback: Optional[str] = None,
    is_compressed: bool = False,
) -> Tileset:
    """
    Load a tileset from a decomp directory.

    Args:
        name: Tileset label (for logging and cache keys)
        tileset_dir: Directory holding metatiles.bin and metatile_attributes.bin
        is_secondary: Whether this is a secondary tileset
        tiles_dir: Directory holding tiles.png, when borrowed from another tileset
        palettes_dir: Directory holding palettes/, when borrowed from another tileset
        anim_callback: Name of the tileset animation callback, if any
        is_compressed: Whether the game stores this tileset's graphics LZ77-compressed
    """
    tileset_dir = Path(tileset_dir)
    tiles_dir = Path(tiles_dir) if tiles_dir is not None else tileset_dir
    palettes_dir = Path(palettes_dir) if palettes_dir is not None else tileset_dir

    pixels = load_tile_pixels(tiles_dir / "tiles.png")
    if pixels is None:
        logger.warning(f"Tileset {name} has no tiles.png in {tiles_dir}")

    palettes = tuple(tuple(p) for p in load_tileset_palettes(palettes_dir))
    metatiles = tuple(decode_metatiles(_read_optional(tileset_dir / "metatiles.bin")))
    attributes = tuple(decode_metatile_attributes(
        _read_optional(tileset_dir / "metatile_attributes.bin")
    ))

    logger.debug(
        f"Loaded tileset {name}: {pixels.tile_count if pixels else 0} tiles, "
        f"{len(metatiles)} metatiles, {len(attributes)} attributes"
    )

    return Tileset(
        name=name,
        is_secondary=is_secondary,
        palettes=palettes,
        pixels=pixels,
        metatiles=metatiles,
        attributes=attributes,
        is_compressed=is_compressed,
        anim_callback=anim_callback,
    )


@dataclass
class TilesetPair:
    """A primary and secondary tileset loaded together, as on hardware."""
    primary: Tileset
    secondary: Tileset
    config: RenderConfig = FIRERED
    _palette_table: Optional[PaletteTable] = field(default=None, init=False, repr=False)

    @property
    def total_positions(self) -> int:
        """Atlas positions: the full primary ID space plus every secondary metatile."""
        return self.config.num_metatiles_in_primary + self.secondary.metatile_count

    def locate(self, position: int) -> Tuple[Tileset, int]:
        """
        Map a metatile position to (owning tileset, index within that tileset).

        Positions below the primary ID-space size belong to the primary
        tileset; the rest are offset into the secondary tileset.
        """
        if position < 0:
            raise ValueError(f"Negative metatile position {position}")
        if position < self.config.num_metatiles_in_primary:
            return self.primary, position
        return self.secondary, position - self.config.num_metatiles_in_primary

    def metatile_at(self, position: int) -> Optional[Metatile]:
        """Metatile at a position, or None for unused positions."""
        tileset, index = self.locate(position)
        if index < tileset.metatile_count:
            return tileset.metatiles[index]
        return None

    def attribute_at(self, position: int) -> MetatileAttribute:
        """Attribute at a position; 0 when the tileset does not define one."""
        tileset, index = self.locate(position)
        if index < len(tileset.attributes):
            return tileset.attributes[index]
        return MetatileAttribute(0)

    def pixel_source(self, tile_id: int) -> Tuple[Optional[TilePixels], int]:
        """Pixel matrix holding a tile ID and the tile's index within it."""
        if tile_id < self.config.num_tiles_in_primary:
            return self.primary.pixels, tile_id
        return self.secondary.pixels, tile_id - self.config.num_tiles_in_primary

    @property
    def palette_table(self) -> PaletteTable:
        if self._palette_table is None:
            self._palette_table = PaletteTable.merge(
                self.primary.palettes, self.secondary.palettes, self.config
            )
        return self._palette_table
