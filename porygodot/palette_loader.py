"""
Palette loading utilities for decomp tilesets.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .constants import (
    NUM_PALETTES_PER_TILESET,
    PALETTE_COLORS,
    UNSET_COLOR,
    RenderConfig,
    FIRERED,
)
from .logging_config import get_logger

logger = get_logger('palette_loader')

Color = Tuple[int, int, int, int]
Palette = List[Color]

JASC_HEADER = "JASC-PAL"
JASC_VERSION = "0100"


def empty_palette() -> Palette:
    """16 unset (transparent black) colors."""
    return [UNSET_COLOR] * PALETTE_COLORS


def load_palette(palette_path: Union[str, Path]) -> Palette:
    """
    Load a JASC-PAL format palette file.

    Format:
    JASC-PAL
    0100
    <num_colors>
    <r> <g> <b>
    ...

    A missing file is not an error: tilesets only ship the palettes they use,
    so the result is 16 unset colors. Lines that are not "R G B" triples are
    skipped, and colors past the last parsed line stay unset.

    Returns:
        List of 16 RGBA tuples; parsed colors are fully opaque
    """
    palette_path = Path(palette_path)
    if not palette_path.exists():
        return empty_palette()

    with open(palette_path, 'r', encoding='utf-8', errors='replace') as f:
        lines = f.readlines()

    if not lines or lines[0].strip() != JASC_HEADER:
        logger.warning(f"{palette_path} does not start with {JASC_HEADER}")

    colors: Palette = []
    past_count = False
    for raw_line in lines:
        if len(colors) >= PALETTE_COLORS:
            break
        line = raw_line.strip()
        if line in (JASC_HEADER, JASC_VERSION):
            continue
        parts = line.split()
        # The first lone integer is the color count line
        if not past_count and len(parts) == 1 and parts[0].isdigit():
            past_count = True
            continue
        if len(parts) < 3:
            continue
        try:
            r, g, b = (int(p) for p in parts[:3])
        except ValueError:
            continue
        colors.append((r & 0xFF, g & 0xFF, b & 0xFF, 255))

    while len(colors) < PALETTE_COLORS:
        colors.append(UNSET_COLOR)
    return colors


def load_tileset_palettes(tileset_dir: Union[str, Path]) -> List[Palette]:
    """
    Load all 16 palettes (00.pal through 15.pal) from a tileset's palettes directory.

    Returns:
        List of 16 palettes (unset colors for missing files)
    """
    palettes_dir = Path(tileset_dir) / "palettes"
    return [load_palette(palettes_dir / f"{i:02d}.pal") for i in range(NUM_PALETTES_PER_TILESET)]


class PaletteTable:
    """
    The 16 palette slots visible while a primary/secondary pair is loaded.

    Slots [0, num_pals_in_primary) come from the primary tileset and
    [num_pals_in_primary, num_pals_total) from the secondary; the rest stay
    unset.
    """

    def __init__(self, palettes: Optional[Sequence[Sequence[Color]]] = None):
        slots = [empty_palette() for _ in range(NUM_PALETTES_PER_TILESET)]
        if palettes is not None:
            if len(palettes) > NUM_PALETTES_PER_TILESET:
                raise ValueError(
                    f"At most {NUM_PALETTES_PER_TILESET} palettes, got {len(palettes)}"
                )
            for i, palette in enumerate(palettes):
                slots[i] = _normalize(palette)
        self._slots: Tuple[Tuple[Color, ...], ...] = tuple(tuple(p) for p in slots)

    @classmethod
    def merge(
        cls,
        primary: Sequence[Sequence[Color]],
        secondary: Sequence[Sequence[Color]],
        config: RenderConfig = FIRERED,
    ) -> "PaletteTable":
        """
        Combine the palettes of a primary and a secondary tileset.

        Args:
            primary: 16 palettes of the primary tileset
            secondary: 16 palettes of the secondary tileset, already taken from
                the tileset it borrows palettes from when there is one
            config: Slot ranges
        """
        slots = [empty_palette() for _ in range(NUM_PALETTES_PER_TILESET)]
        for i in range(config.num_pals_in_primary):
            if i < len(primary):
                slots[i] = list(primary[i])
        for i in range(config.num_pals_in_primary, config.num_pals_total):
            if i < len(secondary):
                slots[i] = list(secondary[i])
        return cls(slots)

    def palette(self, index: int) -> Tuple[Color, ...]:
        """Palette for a tile entry; indices outside [0, 16) use slot 0."""
        if 0 <= index < NUM_PALETTES_PER_TILESET:
            return self._slots[index]
        return self._slots[0]


def _normalize(palette: Sequence[Color]) -> Palette:
    colors = list(palette)[:PALETTE_COLORS]
    while len(colors) < PALETTE_COLORS:
        colors.append(UNSET_COLOR)
    return colors
