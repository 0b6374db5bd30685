"""
Metatile rendering - composites ground and overlay atlases for a tileset pair.

Every metatile position gets a 16x16 cell in two atlases: the ground atlas
holds tile entries 0-3 and the overlay atlas entries 4-7. Cell (col, row) of
position p is (p % atlas_columns, p // atlas_columns), so a map cell's
metatile ID addresses its atlas cell directly.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from PIL import Image

from .atlas_buffer import AtlasBuffer
from .constants import TILE_SIZE, METATILE_SIZE, RenderConfig, FIRERED
from .logging_config import get_logger
from .metatile import Metatile, TileEntry
from .tileset import TilesetPair

logger = get_logger('metatile_renderer')

# Pixel offset of each tile inside a metatile layer: TL, TR, BL, BR
QUADRANT_OFFSETS = (
    (0, 0),
    (TILE_SIZE, 0),
    (0, TILE_SIZE),
    (TILE_SIZE, TILE_SIZE),
)


@dataclass
class RenderedAtlases:
    """Ground and overlay atlases for one tileset pair."""
    ground: AtlasBuffer
    overlay: AtlasBuffer
    total_positions: int

    @property
    def has_overlay(self) -> bool:
        return not self.overlay.is_empty()


class MetatileRenderer:
    """Renders metatiles into 16x16 atlas cells."""

    def __init__(self, config: RenderConfig = FIRERED):
        """
        Initialize metatile renderer.

        Args:
            config: ID-space sizes and atlas column count
        """
        self.config = config

    def atlas_size(self, total_positions: int) -> Tuple[int, int]:
        """Pixel size of an atlas holding `total_positions` metatiles."""
        columns = self.config.atlas_columns
        rows = max(1, (total_positions + columns - 1) // columns)
        return columns * METATILE_SIZE, rows * METATILE_SIZE

    def cell_origin(self, position: int) -> Tuple[int, int]:
        """Top-left pixel of a metatile position's atlas cell."""
        columns = self.config.atlas_columns
        return (position % columns) * METATILE_SIZE, (position // columns) * METATILE_SIZE

    def render_atlases(self, pair: TilesetPair) -> RenderedAtlases:
        """
        Render the ground and overlay atlases for a primary + secondary pair.

        Positions between the last primary metatile and the primary ID-space
        boundary have no metatile and stay transparent.
        """
        total_positions = pair.total_positions
        width, height = self.atlas_size(total_positions)
        ground = AtlasBuffer(width, height)
        overlay = AtlasBuffer(width, height)

        rendered = 0
        for position in range(total_positions):
            metatile = pair.metatile_at(position)
            if metatile is None:
                continue
            dest_x, dest_y = self.cell_origin(position)
            self.render_metatile(ground, overlay, dest_x, dest_y, metatile, pair)
            rendered += 1

        logger.debug(
            f"Rendered {rendered} metatiles for {pair.primary.name}/{pair.secondary.name} "
            f"into {width}x{height} atlases ({total_positions} positions)"
        )
        return RenderedAtlases(ground=ground, overlay=overlay, total_positions=total_positions)

    def render_metatile(
        self,
        ground: AtlasBuffer,
        overlay: AtlasBuffer,
        dest_x: int,
        dest_y: int,
        metatile: Metatile,
        pair: TilesetPair,
    ) -> None:
        """Paint a metatile's bottom layer into `ground` and top layer into `overlay`."""
        for buffer, is_overlay in ((ground, False), (overlay, True)):
            self._render_tile_grid(buffer, dest_x, dest_y, metatile.layer(is_overlay), pair)

    def _render_tile_grid(
        self,
        buffer: AtlasBuffer,
        dest_x: int,
        dest_y: int,
        tiles: Sequence[TileEntry],
        pair: TilesetPair,
    ) -> None:
        """Render a 2x2 grid of 8x8 tiles (TL, TR, BL, BR) into a 16x16 cell."""
        for (offset_x, offset_y), entry in zip(QUADRANT_OFFSETS, tiles):
            tile = self.render_tile(entry, pair)
            if tile is not None:
                buffer.paste_tile(tile, dest_x + offset_x, dest_y + offset_y)

    def render_tile(self, entry: TileEntry, pair: TilesetPair) -> Optional[Image.Image]:
        """
        Render one 8x8 tile as an RGBA image.

        Index 0 is transparent. Flips are applied after the tile is colored.

        Returns:
            The tile, or None when its pixel source is missing or too small
        """
        pixels, local_id = pair.pixel_source(entry.tile_id)
        if pixels is None or pixels.width == 0:
            return None

        tiles_per_row = pixels.tiles_per_row
        if tiles_per_row == 0 or local_id < 0 or local_id >= pixels.tile_count:
            return None

        palette = pair.palette_table.palette(entry.palette_index)
        src_x0 = (local_id % tiles_per_row) * TILE_SIZE
        src_y0 = (local_id // tiles_per_row) * TILE_SIZE
        src_width = pixels.width
        indices = pixels.indices

        data = bytearray(TILE_SIZE * TILE_SIZE * 4)
        for py in range(TILE_SIZE):
            src_row = (src_y0 + py) * src_width + src_x0
            for px in range(TILE_SIZE):
                index = indices[src_row + px]
                if index == 0:
                    continue
                r, g, b, _ = palette[index]
                offset = (py * TILE_SIZE + px) * 4
                data[offset:offset + 4] = bytes((r, g, b, 255))

        tile = Image.frombytes('RGBA', (TILE_SIZE, TILE_SIZE), bytes(data))
        if entry.h_flip:
            tile = tile.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        if entry.v_flip:
            tile = tile.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
        return tile
