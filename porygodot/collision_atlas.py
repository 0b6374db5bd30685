"""
Collision overlay atlas generator.

Layout: 4 columns (collision 0-3) x 16 rows (elevation 0-15) of 16x16
swatches. Each row is tinted by elevation; passable swatches (collision 0)
are more transparent and impassable ones carry a white X. Every swatch shows
its elevation as a hex digit.
"""

from typing import Tuple

from .atlas_buffer import AtlasBuffer
from .constants import COLLISION_COLS, COLLISION_ROWS, METATILE_SIZE
from .logging_config import get_logger
from .png_writer import write_png
from .utils import PathLike

logger = get_logger('collision_atlas')

HUE_STEP = 22.5
SATURATION = 0.75
VALUE = 1.0

PASSABLE_ALPHA = 128
BLOCKED_ALPHA = 192
CROSS_COLOR = (255, 255, 255, 220)
CROSS_INSET = 2

GLYPH_ORIGIN = (7, 6)
GLYPH_OUTLINE = (0, 0, 0, 255)
GLYPH_FILL = (255, 255, 255, 255)

# 3x5 hex digits; each row is a 3-bit pattern, MSB is the left pixel
HEX_FONT = (
    (7, 5, 5, 5, 7),  # 0
    (6, 2, 2, 2, 7),  # 1
    (7, 1, 7, 4, 7),  # 2
    (7, 1, 7, 1, 7),  # 3
    (5, 5, 7, 1, 1),  # 4
    (7, 4, 7, 1, 7),  # 5
    (7, 4, 7, 5, 7),  # 6
    (7, 1, 2, 2, 2),  # 7
    (7, 5, 7, 5, 7),  # 8
    (7, 5, 7, 1, 7),  # 9
    (7, 5, 7, 5, 5),  # A
    (6, 5, 6, 5, 6),  # B
    (7, 4, 4, 4, 7),  # C
    (6, 5, 5, 5, 6),  # D
    (7, 4, 7, 4, 7),  # E
    (7, 4, 7, 4, 4),  # F
)


def hsv_to_rgb(h: float, s: float, v: float) -> Tuple[int, int, int]:
    """Convert HSV (h in degrees, s and v in [0, 1]) to 8-bit RGB."""
    h = h % 360
    c = v * s
    x = c * (1 - abs((h / 60) % 2 - 1))
    m = v - c

    if h < 60:
        r1, g1, b1 = c, x, 0.0
    elif h < 120:
        r1, g1, b1 = x, c, 0.0
    elif h < 180:
        r1, g1, b1 = 0.0, c, x
    elif h < 240:
        r1, g1, b1 = 0.0, x, c
    elif h < 300:
        r1, g1, b1 = x, 0.0, c
    else:
        r1, g1, b1 = c, 0.0, x

    return (
        int(round((r1 + m) * 255)),
        int(round((g1 + m) * 255)),
        int(round((b1 + m) * 255)),
    )


def _glyph_pixels(digit: int):
    glyph = HEX_FONT[digit & 0xF]
    for gy, row in enumerate(glyph):
        for gx in range(3):
            if row & (4 >> gx):
                yield gx, gy


def _draw_hex_digit(buffer: AtlasBuffer, tile_x: int, tile_y: int, digit: int) -> None:
    """Black 1px outline first, then the white glyph on top."""
    cx = tile_x + GLYPH_ORIGIN[0]
    cy = tile_y + GLYPH_ORIGIN[1]
    pixels = list(_glyph_pixels(digit))

    for gx, gy in pixels:
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                buffer.set_pixel(cx + gx + dx, cy + gy + dy, GLYPH_OUTLINE)

    for gx, gy in pixels:
        buffer.set_pixel(cx + gx, cy + gy, GLYPH_FILL)


def _draw_swatch(buffer: AtlasBuffer, collision: int, elevation: int) -> None:
    size = METATILE_SIZE
    ox = collision * size
    oy = elevation * size
    r, g, b = hsv_to_rgb(elevation * HUE_STEP, SATURATION, VALUE)
    alpha = PASSABLE_ALPHA if collision == 0 else BLOCKED_ALPHA

    buffer.fill_rect(ox, oy, size, size, (r, g, b, alpha))

    border = (r // 2, g // 2, b // 2, alpha)
    for d in range(size):
        buffer.set_pixel(ox + d, oy, border)
        buffer.set_pixel(ox + d, oy + size - 1, border)
        buffer.set_pixel(ox, oy + d, border)
        buffer.set_pixel(ox + size - 1, oy + d, border)

    if collision > 0:
        for d in range(CROSS_INSET, size - CROSS_INSET):
            buffer.set_pixel(ox + d, oy + d, CROSS_COLOR)
            buffer.set_pixel(ox + size - 1 - d, oy + d, CROSS_COLOR)

    _draw_hex_digit(buffer, ox, oy, elevation)


def generate_collision_atlas() -> AtlasBuffer:
    """Build the 64x256 collision/elevation atlas."""
    buffer = AtlasBuffer(COLLISION_COLS * METATILE_SIZE, COLLISION_ROWS * METATILE_SIZE)
    for elevation in range(COLLISION_ROWS):
        for collision in range(COLLISION_COLS):
            _draw_swatch(buffer, collision, elevation)
    return buffer


def write_collision_atlas(output_path: PathLike) -> AtlasBuffer:
    """Generate the collision atlas and write it as a PNG."""
    buffer = generate_collision_atlas()
    write_png(buffer.to_bytes(), buffer.width, buffer.height, output_path)
    logger.info(f"Collision overlay: {output_path}")
    return buffer
