"""
RGBA atlas image shared by the atlas renderers and the PNG writer.
"""

from typing import Tuple

from PIL import Image

TRANSPARENT = (0, 0, 0, 0)


class AtlasBuffer:
    """Pillow RGBA image initialized fully transparent."""

    __slots__ = ("image",)

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid atlas size {width}x{height}")
        self.image = Image.new('RGBA', (width, height), TRANSPARENT)

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def set_pixel(self, x: int, y: int, rgba: Tuple[int, int, int, int]) -> None:
        """Write one pixel; coordinates outside the buffer are ignored."""
        if 0 <= x < self.width and 0 <= y < self.height:
            self.image.putpixel((x, y), tuple(rgba))

    def get_pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        return self.image.getpixel((x, y))

    def fill_rect(self, x: int, y: int, width: int, height: int,
                  rgba: Tuple[int, int, int, int]) -> None:
        """Fill a rectangle, clipped to the buffer."""
        left, top = max(x, 0), max(y, 0)
        right, bottom = min(x + width, self.width), min(y + height, self.height)
        if left < right and top < bottom:
            self.image.paste(tuple(rgba), (left, top, right, bottom))

    def paste_tile(self, tile: Image.Image, x: int, y: int) -> None:
        """Paste an RGBA tile, using its own alpha as the mask."""
        self.image.paste(tile, (x, y), tile)

    def is_empty(self) -> bool:
        """True when no pixel has any alpha."""
        return self.image.getchannel('A').getbbox() is None

    def to_bytes(self) -> bytes:
        """Row-major RGBA bytes, 4 per pixel."""
        return self.image.tobytes()
