"""
Tile pixel store - palette indices of a tileset's 8x8 tiles.

Tileset graphics (tiles.png) are 4bpp indexed images. The renderer never
uses the image's own palette; it only needs the raw color index of each
pixel so it can look the color up in the merged palette table.
"""

from pathlib import Path
from typing import Optional, Union

from PIL import Image

from .constants import TILE_SIZE
from .errors import UnsupportedRasterFormat
from .logging_config import get_logger

logger = get_logger('tile_store')

# Alpha at or above this counts as opaque in the non-indexed fallback
ALPHA_THRESHOLD = 128


class TilePixels:
    """Row-major matrix of 4-bit palette indices."""

    __slots__ = ("width", "height", "indices")

    def __init__(self, width: int, height: int, indices: bytes):
        if len(indices) != width * height:
            raise ValueError(
                f"Expected {width * height} pixel indices for {width}x{height}, got {len(indices)}"
            )
        self.width = width
        self.height = height
        self.indices = bytes(indices)

    def index_at(self, x: int, y: int) -> int:
        return self.indices[y * self.width + x]

    @property
    def tiles_per_row(self) -> int:
        return self.width // TILE_SIZE

    @property
    def tile_count(self) -> int:
        """Number of whole 8x8 tiles in the raster."""
        return self.tiles_per_row * (self.height // TILE_SIZE)

    def __eq__(self, other) -> bool:
        if not isinstance(other, TilePixels):
            return NotImplemented
        return (self.width, self.height, self.indices) == (other.width, other.height, other.indices)

    def __repr__(self) -> str:
        return f"TilePixels({self.width}x{self.height}, {self.tile_count} tiles)"


def _decode_indexed(image: Image.Image, source: str = "") -> bytes:
    """
    Read raw palette indices from an indexed image.

    4bpp PNGs load as 'P' with indices 0-15. 8bpp indexed images keep only
    the lower 4 bits, since GBA tiles can only address 16 colors.

    Raises:
        UnsupportedRasterFormat: If the image is not indexed
    """
    if image.mode != 'P':
        raise UnsupportedRasterFormat(image.mode, source)
    return bytes(value & 0x0F for value in image.tobytes())


def _decode_alpha(image: Image.Image) -> bytes:
    """Approximate indices from alpha: transparent -> 0, anything else -> 1."""
    alpha = image.convert('RGBA').getchannel('A')
    return bytes(0 if a < ALPHA_THRESHOLD else 1 for a in alpha.tobytes())


def decode_tiles(image: Image.Image, source: str = "") -> TilePixels:
    """
    Extract 4-bit palette indices from tileset graphics.

    Non-indexed images cannot be remapped per palette. They are approximated
    as index 1 for opaque pixels and 0 for transparent ones, and a warning is
    logged; colors in the rendered atlas will be wrong for those tiles.

    Args:
        image: PIL image of the tileset graphics
        source: Optional description (usually the file path) for log messages

    Returns:
        TilePixels with every index in [0, 15]
    """
    width, height = image.size
    try:
        indices = _decode_indexed(image, source)
    except UnsupportedRasterFormat as e:
        logger.warning(f"{e}. Palette remapping may be incorrect.")
        indices = _decode_alpha(image)
    return TilePixels(width, height, indices)


def load_tile_pixels(tiles_path: Union[str, Path]) -> Optional[TilePixels]:
    """
    Load tiles.png and decode its palette indices.

    Returns:
        TilePixels, or None if the file does not exist
    """
    tiles_path = Path(tiles_path)
    if not tiles_path.exists():
        logger.debug(f"Tile graphics not found: {tiles_path}")
        return None

    with Image.open(tiles_path) as img:
        img.load()
        return decode_tiles(img, str(tiles_path))
