from dataclasses import replace

import pytest

from porygodot.constants import EMERALD, FIRERED, UNSET_COLOR
from porygodot.metatile import Metatile, TileEntry
from porygodot.metatile_renderer import MetatileRenderer
from porygodot.png_writer import encode_png
from porygodot.tile_store import decode_tiles
from porygodot.tileset import Tileset, TilesetPair

from builders import entry, solid_tile, split_tile, tiles_image

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
YELLOW = (255, 255, 0, 255)
TRANSPARENT = (0, 0, 0, 0)


def _palettes(slots):
    palettes = []
    for slot in range(16):
        colors = [UNSET_COLOR] * 16
        for index, color in slots.get(slot, {}).items():
            colors[index] = color
        palettes.append(tuple(colors))
    return tuple(palettes)


def _metatile(ground, overlay=None):
    overlay = overlay or [entry(0)] * 4
    return Metatile.from_raw(list(ground) + list(overlay))


def _tileset(name, secondary, tiles, slots, metatiles):
    return Tileset(
        name=name,
        is_secondary=secondary,
        palettes=_palettes(slots),
        pixels=decode_tiles(tiles_image(tiles)) if tiles is not None else None,
        metatiles=tuple(metatiles),
    )


@pytest.fixture
def primary():
    return _tileset(
        "gTileset_General", False,
        [solid_tile(0), solid_tile(1), split_tile(2, 3)],
        {0: {1: RED, 2: GREEN, 3: BLUE}},
        [_metatile([entry(1)] * 4), _metatile([entry(2)] * 4)],
    )


@pytest.fixture
def secondary():
    metatiles = [_metatile([entry(641, palette=7)] * 4) for _ in range(100)]
    return _tileset(
        "gTileset_PalletTown", True,
        [solid_tile(0), solid_tile(1)],
        {7: {1: YELLOW}},
        metatiles,
    )


def test_total_positions_and_atlas_size(primary, secondary):
    pair = TilesetPair(primary, secondary)
    assert pair.total_positions == 740
    atlases = MetatileRenderer().render_atlases(pair)
    assert atlases.total_positions == 740
    assert (atlases.ground.width, atlases.ground.height) == (8 * 16, 93 * 16)
    assert (atlases.overlay.width, atlases.overlay.height) == (8 * 16, 93 * 16)


def test_position_mapping_across_primary_boundary(primary, secondary):
    pair = TilesetPair(primary, secondary)
    assert pair.locate(639) == (primary, 639)
    assert pair.locate(640) == (secondary, 0)
    assert pair.metatile_at(639) is None
    assert pair.metatile_at(640) is secondary.metatiles[0]

    renderer = MetatileRenderer()
    atlases = renderer.render_atlases(pair)
    # 639 is an empty primary slot, 640 the first secondary metatile
    x, y = renderer.cell_origin(639)
    assert (x, y) == (7 * 16, 79 * 16)
    assert atlases.ground.get_pixel(x + 4, y + 4) == TRANSPARENT
    x, y = renderer.cell_origin(640)
    assert (x, y) == (0, 80 * 16)
    assert atlases.ground.get_pixel(x + 4, y + 4) == YELLOW


def test_emerald_boundary(primary, secondary):
    pair = TilesetPair(primary, secondary, EMERALD)
    assert pair.total_positions == 612
    assert pair.locate(512) == (secondary, 0)
    assert pair.pixel_source(513) == (secondary.pixels, 1)


def test_ground_pixels_and_transparent_overlay(primary, secondary):
    atlases = MetatileRenderer().render_atlases(TilesetPair(primary, secondary))
    for x in range(16):
        for y in range(16):
            assert atlases.ground.get_pixel(x, y) == RED
    assert not atlases.has_overlay


def test_index_zero_never_paints(secondary):
    primary = _tileset(
        "gTileset_General", False,
        [solid_tile(0), solid_tile(1)],
        {0: {0: GREEN, 1: RED}},
        [_metatile([entry(0)] * 4, [entry(1), entry(0), entry(0), entry(0)])],
    )
    atlases = MetatileRenderer().render_atlases(TilesetPair(primary, secondary))
    assert atlases.ground.get_pixel(3, 3) == TRANSPARENT
    assert atlases.overlay.get_pixel(3, 3) == RED
    assert atlases.overlay.get_pixel(12, 3) == TRANSPARENT
    assert atlases.has_overlay


@pytest.mark.parametrize("hflip,vflip,left,right", [
    (False, False, GREEN, BLUE),
    (True, False, BLUE, GREEN),
    (False, True, GREEN, BLUE),
    (True, True, BLUE, GREEN),
])
def test_flips_mirror_the_read_position(secondary, hflip, vflip, left, right):
    metatile = _metatile([entry(2, hflip=hflip, vflip=vflip)] * 4)
    primary = _tileset("gTileset_General", False,
                       [solid_tile(0), solid_tile(1), split_tile(2, 3)],
                       {0: {1: RED, 2: GREEN, 3: BLUE}}, [metatile])
    atlases = MetatileRenderer().render_atlases(TilesetPair(primary, secondary))
    assert atlases.ground.get_pixel(0, 0) == left
    assert atlases.ground.get_pixel(7, 7) == right
    assert atlases.ground.get_pixel(8, 8) == left


def test_vertical_flip_reverses_rows(secondary):
    top_row = [5] * 8 + [0] * 56
    primary = _tileset("gTileset_General", False,
                       [solid_tile(0), top_row],
                       {0: {5: RED}},
                       [_metatile([entry(1, vflip=True)] * 4)])
    atlases = MetatileRenderer().render_atlases(TilesetPair(primary, secondary))
    assert atlases.ground.get_pixel(0, 0) == TRANSPARENT
    assert atlases.ground.get_pixel(0, 7) == RED


def test_palette_index_out_of_range_uses_slot_zero(secondary):
    metatile = Metatile(tuple(
        [TileEntry(tile_id=1, h_flip=False, v_flip=False, palette_index=20)] * 4
        + [TileEntry(0, False, False, 0)] * 4
    ))
    primary = _tileset("gTileset_General", False, [solid_tile(0), solid_tile(1)],
                       {0: {1: RED}, 4: {1: GREEN}}, [metatile])
    atlases = MetatileRenderer().render_atlases(TilesetPair(primary, secondary))
    assert atlases.ground.get_pixel(0, 0) == RED


def test_missing_pixel_source_and_out_of_range_tiles_are_skipped():
    primary = _tileset("gTileset_General", False, None, {0: {1: RED}},
                       [_metatile([entry(1)] * 4)])
    secondary_meta = [_metatile([entry(640 + 300, palette=7)] * 4)]
    secondary = _tileset("gTileset_PalletTown", True, [solid_tile(0), solid_tile(1)],
                         {7: {1: YELLOW}}, secondary_meta)
    renderer = MetatileRenderer()
    atlases = renderer.render_atlases(TilesetPair(primary, secondary))
    assert atlases.ground.is_empty()


def test_custom_column_count(primary, secondary):
    renderer = MetatileRenderer(replace(FIRERED, atlas_columns=16))
    atlases = renderer.render_atlases(TilesetPair(primary, secondary))
    assert atlases.ground.width == 256
    assert atlases.ground.height == 47 * 16


def test_rendering_is_deterministic(primary, secondary):
    renderer = MetatileRenderer()
    first = renderer.render_atlases(TilesetPair(primary, secondary))
    second = renderer.render_atlases(TilesetPair(primary, secondary))
    a, b = first.ground, second.ground
    assert encode_png(a.to_bytes(), a.width, a.height) == encode_png(b.to_bytes(), b.width, b.height)
