"""
ROM tileset reader - builds tilesets straight from a GBA ROM image.

Only tileset headers and the data they point to are followed; map headers,
events and scripts are not read from ROM.
"""

from pathlib import Path
from typing import List, Optional

from .binary_reader import (
    TilesetHeader,
    TilesetLayout,
    decode_4bpp_tiles,
    decode_gba_palette,
    decode_metatile_attributes,
    decode_metatile_attributes_u16,
    decode_metatiles,
    gba_pointer_to_offset,
    parse_tileset_header,
    require,
)
from .collision_atlas import write_collision_atlas
from .constants import (
    COLLISION_ATLAS_FILENAME,
    GBA_PALETTE_LENGTH,
    METATILE_ATTRIBUTE_LENGTH,
    NUM_PALETTES_PER_TILESET,
    ROM_GAME_CODE_OFFSET,
    TILE_4BPP_LENGTH,
    TILES_DIR,
    TILESETS_DIR,
    RenderConfig,
    FIRERED,
)
from .godot_writer import write_project_godot, write_tileset_resource
from .logging_config import get_logger
from .lz77 import lz77_decompress
from .metatile_renderer import MetatileRenderer, RenderedAtlases
from .palette_loader import Color, empty_palette
from .png_writer import write_png
from .tileset import Tileset, TilesetPair
from .utils import PathLike

logger = get_logger('rom_reader')

# Tile IDs addressable by a primary + secondary pair
TOTAL_TILE_IDS = 1024


class RomTilesetReader:
    """Reads tileset headers and their graphics from a ROM image."""

    def __init__(self, rom: bytes, config: RenderConfig = FIRERED):
        require(rom, ROM_GAME_CODE_OFFSET, 4, "ROM game code")
        self.rom = rom
        self.config = config
        self.game_code = rom[ROM_GAME_CODE_OFFSET:ROM_GAME_CODE_OFFSET + 4].decode(
            'ascii', errors='replace'
        )
        self.layout = TilesetLayout.from_game_code(self.game_code)
        logger.info(f"ROM game code {self.game_code}, {self.layout.value} tileset layout")

    @classmethod
    def from_file(cls, rom_path: PathLike, config: RenderConfig = FIRERED) -> "RomTilesetReader":
        with open(rom_path, 'rb') as f:
            return cls(f.read(), config)

    def _offset(self, pointer: int) -> Optional[int]:
        offset = gba_pointer_to_offset(pointer)
        if offset is not None and offset >= len(self.rom):
            raise ValueError(f"Pointer 0x{pointer:08X} is past the end of the ROM")
        return offset

    @property
    def _decode_attributes(self):
        if self.layout.attribute_length == METATILE_ATTRIBUTE_LENGTH:
            return decode_metatile_attributes
        return decode_metatile_attributes_u16

    def read_header(self, offset: int) -> TilesetHeader:
        return parse_tileset_header(self.rom, offset, self.layout)

    def _palette_slots(self, is_secondary: bool) -> range:
        if is_secondary:
            return range(self.config.num_pals_in_primary, NUM_PALETTES_PER_TILESET)
        return range(0, self.config.num_pals_in_primary)

    def _read_palettes(self, header: TilesetHeader) -> List[List[Color]]:
        """
        Read the palette slots a tileset contributes.

        The palette table holds all 16 slots; a primary tileset supplies the
        low slots and a secondary one the rest. Slots the tileset does not
        supply stay unset.
        """
        palettes = [empty_palette() for _ in range(NUM_PALETTES_PER_TILESET)]
        base = self._offset(header.palettes_ptr)
        if base is None:
            return palettes
        for slot in self._palette_slots(header.is_secondary):
            offset = base + slot * GBA_PALETTE_LENGTH
            if offset + GBA_PALETTE_LENGTH > len(self.rom):
                break
            palettes[slot] = decode_gba_palette(self.rom, offset)
        return palettes

    def _read_tile_data(self, header: TilesetHeader) -> bytes:
        offset = self._offset(header.tiles_ptr)
        if offset is None:
            return b""
        if header.is_compressed:
            return lz77_decompress(self.rom, offset)

        # Uncompressed graphics have no length field; read the tileset's whole ID range
        if header.is_secondary:
            num_tiles = TOTAL_TILE_IDS - self.config.num_tiles_in_primary
        else:
            num_tiles = self.config.num_tiles_in_primary
        available = (len(self.rom) - offset) // TILE_4BPP_LENGTH
        length = min(num_tiles, available) * TILE_4BPP_LENGTH
        return self.rom[offset:offset + length]

    def read_tileset(self, offset: int, name: Optional[str] = None) -> Tileset:
        """
        Decode the tileset whose header starts at ROM offset `offset`.

        Raises:
            TruncatedData: If the header or its tables run past the end of the ROM
            ValueError: If a pointer does not point into the ROM, or compressed
                graphics are malformed
        """
        header = self.read_header(offset)
        name = name or f"Tileset_{offset:06X}"

        tile_data = self._read_tile_data(header)
        pixels = decode_4bpp_tiles(tile_data) if tile_data else None

        count = header.metatile_count
        metatiles_offset = self._offset(header.metatiles_ptr)
        attributes_offset = self._offset(header.metatile_attributes_ptr)
        metatiles = (
            decode_metatiles(self.rom, metatiles_offset, count)
            if metatiles_offset is not None else []
        )
        attributes = (
            self._decode_attributes(self.rom, attributes_offset, count)
            if attributes_offset is not None else []
        )

        callback = f"0x{header.callback_ptr:08X}" if header.callback_ptr else None

        logger.debug(
            f"ROM tileset {name} at 0x{offset:X}: "
            f"{'secondary' if header.is_secondary else 'primary'}, "
            f"{pixels.tile_count if pixels else 0} tiles, {count} metatiles"
        )

        return Tileset(
            name=name,
            is_secondary=header.is_secondary,
            palettes=tuple(tuple(p) for p in self._read_palettes(header)),
            pixels=pixels,
            metatiles=tuple(metatiles),
            attributes=tuple(attributes),
            is_compressed=header.is_compressed,
            anim_callback=callback,
        )

    def read_tileset_pair(self, primary_offset: int, secondary_offset: int) -> TilesetPair:
        primary = self.read_tileset(primary_offset)
        secondary = self.read_tileset(secondary_offset)
        if primary.is_secondary:
            logger.warning(f"Tileset at 0x{primary_offset:X} is flagged secondary")
        if not secondary.is_secondary:
            logger.warning(f"Tileset at 0x{secondary_offset:X} is flagged primary")
        return TilesetPair(primary, secondary, self.config)


def convert_rom_tilesets(
    rom_path: PathLike,
    primary_offset: int,
    secondary_offset: int,
    output_dir: PathLike,
    name: str = "rom",
    config: RenderConfig = FIRERED,
) -> RenderedAtlases:
    """
    Render a ROM tileset pair into the output tree.

    Writes tiles/<name>_ground.png, tiles/<name>_overlay.png (when the overlay
    has any pixels), tiles/collision_overlay.png and tilesets/<name>_tileset.tres.

    Returns:
        The rendered atlases
    """
    output_dir = Path(output_dir)
    tiles_dir = output_dir / TILES_DIR

    reader = RomTilesetReader.from_file(rom_path, config)
    pair = reader.read_tileset_pair(primary_offset, secondary_offset)
    atlases = MetatileRenderer(config).render_atlases(pair)

    ground_filename = f"{name}_ground.png"
    overlay_filename = f"{name}_overlay.png"
    ground = atlases.ground
    write_png(ground.to_bytes(), ground.width, ground.height, tiles_dir / ground_filename)
    if atlases.has_overlay:
        overlay = atlases.overlay
        write_png(overlay.to_bytes(), overlay.width, overlay.height, tiles_dir / overlay_filename)

    write_collision_atlas(tiles_dir / COLLISION_ATLAS_FILENAME)
    write_tileset_resource(
        output_dir / TILESETS_DIR / f"{name}_tileset.tres",
        f"../{TILES_DIR}/{ground_filename}",
        f"../{TILES_DIR}/{overlay_filename}" if atlases.has_overlay else None,
        f"../{TILES_DIR}/{COLLISION_ATLAS_FILENAME}",
        atlases.total_positions,
        atlases.has_overlay,
        config.atlas_columns,
    )
    write_project_godot(output_dir)

    logger.info(
        f"Rendered ROM tilesets 0x{primary_offset:X}/0x{secondary_offset:X} "
        f"({atlases.total_positions} positions) -> {tiles_dir}"
    )
    return atlases
