import struct

import pytest
from PIL import Image

from porygodot.constants import EMERALD, UNSET_COLOR
from porygodot.errors import TruncatedData
from porygodot.metatile_renderer import MetatileRenderer
from porygodot.rom_reader import RomTilesetReader, convert_rom_tilesets
from porygodot.tileset import TilesetPair

from builders import entry, pack_metatiles, pack_u16, pack_u32

BASE = 0x08000000
PRIMARY_HEADER = 0x200
SECONDARY_HEADER = 0x220


def _lz77_literals(data):
    """LZ77 stream made only of literal runs."""
    out = bytearray([0x10]) + struct.pack("<I", len(data))[:3]
    for start in range(0, len(data), 8):
        out.append(0)
        out += data[start:start + 8]
    return bytes(out)


def _header(compressed, secondary, tiles, palettes, metatiles, callback, attributes):
    # FireRed order: callback before metatileAttributes
    return struct.pack("<BBxx5I", compressed, secondary, tiles, palettes,
                       metatiles, callback, attributes)


def _put(rom, offset, data):
    rom[offset:offset + len(data)] = data


def build_rom():
    rom = bytearray(0x1000)
    _put(rom, 0xAC, b"BPRE")

    _put(rom, PRIMARY_HEADER, _header(
        1, 0, BASE + 0x400, BASE + 0x600, BASE + 0x800, BASE + 0x1234, BASE + 0x820))
    _put(rom, 0x400, _lz77_literals(bytes(32) + bytes([0x11]) * 32))
    _put(rom, 0x600 + 1 * 2, pack_u16([0x001F]))
    _put(rom, 0x800, pack_metatiles([
        [entry(1)] * 4 + [entry(0)] * 4,
        [entry(0)] * 4 + [entry(1)] + [entry(0)] * 3,
    ]))
    _put(rom, 0x820, pack_u32([0x10, 0x20]))

    _put(rom, SECONDARY_HEADER, _header(
        0, 1, BASE + 0xA00, BASE + 0xC00, BASE + 0xE00, 0, BASE + 0xE10))
    _put(rom, 0xA20, bytes([0x22]) * 32)
    _put(rom, 0xC00 + 7 * 32 + 2 * 2, pack_u16([0x7C00]))
    _put(rom, 0xE00, pack_metatiles([[entry(641, palette=7)] * 4 + [entry(0)] * 4]))
    _put(rom, 0xE10, pack_u32([0x30]))
    return bytes(rom)


@pytest.fixture
def reader():
    return RomTilesetReader(build_rom())


def test_game_code(reader):
    assert reader.game_code == "BPRE"
    assert reader.layout.value == "firered"


def test_rom_too_short_for_game_code():
    with pytest.raises(TruncatedData):
        RomTilesetReader(bytes(0x20))


def test_read_compressed_primary(reader):
    tileset = reader.read_tileset(PRIMARY_HEADER)
    assert tileset.name == "Tileset_000200"
    assert not tileset.is_secondary
    assert tileset.is_compressed
    assert tileset.pixels.index_at(0, 0) == 0
    assert tileset.pixels.index_at(8, 0) == 1
    assert len(tileset.metatiles) == 2
    assert [a.behavior for a in tileset.attributes] == [0x10, 0x20]
    assert tileset.anim_callback == "0x08001234"
    assert tileset.palettes[0][1] == (255, 0, 0, 255)
    assert tileset.palettes[6][0] == (0, 0, 0, 255)
    assert tileset.palettes[7] == (UNSET_COLOR,) * 16


def test_read_uncompressed_secondary(reader):
    tileset = reader.read_tileset(SECONDARY_HEADER, name="PalletTown")
    assert tileset.name == "PalletTown"
    assert tileset.is_secondary
    assert not tileset.is_compressed
    assert tileset.anim_callback is None
    # clipped to the end of the ROM
    assert tileset.pixels.tile_count == 48
    assert tileset.pixels.index_at(8, 0) == 2
    assert len(tileset.metatiles) == 1
    assert tileset.palettes[7][2] == (0, 0, 255, 255)
    assert tileset.palettes[0] == (UNSET_COLOR,) * 16


def test_render_rom_pair(reader):
    pair = reader.read_tileset_pair(PRIMARY_HEADER, SECONDARY_HEADER)
    assert isinstance(pair, TilesetPair)
    atlases = MetatileRenderer().render_atlases(pair)
    assert atlases.ground.get_pixel(4, 4) == (255, 0, 0, 255)
    assert atlases.ground.get_pixel(4, 80 * 16 + 4) == (0, 0, 255, 255)
    assert atlases.overlay.get_pixel(16 + 1, 1) == (255, 0, 0, 255)
    assert atlases.has_overlay


def test_pointer_past_end_of_rom():
    rom = bytearray(build_rom())
    _put(rom, PRIMARY_HEADER + 8, struct.pack("<I", BASE + 0x2000))
    with pytest.raises(ValueError):
        RomTilesetReader(bytes(rom)).read_tileset(PRIMARY_HEADER)


def test_convert_rom_tilesets(tmp_path):
    rom_path = tmp_path / "firered.gba"
    rom_path.write_bytes(build_rom())
    out = tmp_path / "out"

    atlases = convert_rom_tilesets(rom_path, PRIMARY_HEADER, SECONDARY_HEADER, out, name="test")
    assert atlases.total_positions == 641

    for path in ("tiles/test_ground.png", "tiles/test_overlay.png",
                 "tiles/collision_overlay.png", "tilesets/test_tileset.tres", "project.godot"):
        assert (out / path).is_file(), path

    with Image.open(out / "tiles" / "test_ground.png") as image:
        assert image.size == (128, 81 * 16)
        assert image.getpixel((4, 4)) == (255, 0, 0, 255)

    tres = (out / "tilesets" / "test_tileset.tres").read_text()
    assert 'path="../tiles/test_overlay.png"' in tres


def test_emerald_rom_reads_u16_attributes():
    rom = bytearray(0x1000)
    _put(rom, 0xAC, b"BPEE")
    # Emerald order: metatileAttributes before callback; table ends with the ROM
    _put(rom, PRIMARY_HEADER, struct.pack(
        "<BBxx5I", 0, 0, 0, 0, BASE + 0xFDC, BASE + 0xFFC, BASE + 0x1234))
    _put(rom, 0xFDC, pack_metatiles([[entry(0)] * 8] * 2))
    _put(rom, 0xFFC, pack_u16([0x1010, 0x2020]))

    reader = RomTilesetReader(bytes(rom), EMERALD)
    assert reader.layout.value == "ruby"
    tileset = reader.read_tileset(PRIMARY_HEADER)
    assert len(tileset.metatiles) == 2
    assert [a.behavior for a in tileset.attributes] == [0x10, 0x20]
    assert [a.layer_type for a in tileset.attributes] == [1, 2]
    assert tileset.anim_callback == "0x08001234"
