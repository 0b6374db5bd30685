from porygodot.constants import EMERALD, FIRERED, UNSET_COLOR
from porygodot.palette_loader import PaletteTable, load_palette, load_tileset_palettes

from builders import jasc_text


def test_load_jasc_palette(tmp_path):
    path = tmp_path / "00.pal"
    path.write_text(jasc_text([(255, 0, 0), (0, 128, 255)]))
    colors = load_palette(path)
    assert len(colors) == 16
    assert colors[0] == (255, 0, 0, 255)
    assert colors[1] == (0, 128, 255, 255)
    assert colors[2] == UNSET_COLOR


def test_missing_palette_is_unset(tmp_path):
    colors = load_palette(tmp_path / "nope.pal")
    assert colors == [UNSET_COLOR] * 16


def test_unparseable_lines_are_skipped(tmp_path):
    path = tmp_path / "01.pal"
    path.write_text("JASC-PAL\n0100\n16\n10 20 30\nnot a color\n1 2\n40 50 60\n")
    colors = load_palette(path)
    assert colors[:2] == [(10, 20, 30, 255), (40, 50, 60, 255)]
    assert colors[2:] == [UNSET_COLOR] * 14


def test_load_tileset_palettes_reads_all_slots(tmp_path):
    pal_dir = tmp_path / "palettes"
    pal_dir.mkdir()
    (pal_dir / "03.pal").write_text(jasc_text([(1, 2, 3)]))
    palettes = load_tileset_palettes(tmp_path)
    assert len(palettes) == 16
    assert palettes[3][0] == (1, 2, 3, 255)
    assert palettes[0][0] == UNSET_COLOR


def _tagged(tag):
    return [[(tag, slot, 0, 255)] * 16 for slot in range(16)]


def test_merge_slot_ranges():
    table = PaletteTable.merge(_tagged(1), _tagged(2), FIRERED)
    assert all(table.palette(slot)[0] == (1, slot, 0, 255) for slot in range(7))
    assert all(table.palette(slot)[0] == (2, slot, 0, 255) for slot in range(7, 13))
    assert all(table.palette(slot)[0] == UNSET_COLOR for slot in range(13, 16))


def test_merge_emerald_slot_ranges():
    table = PaletteTable.merge(_tagged(1), _tagged(2), EMERALD)
    assert table.palette(5)[0][0] == 1
    assert table.palette(6)[0][0] == 2


def test_out_of_range_palette_falls_back_to_slot_zero():
    table = PaletteTable.merge(_tagged(1), _tagged(2))
    assert table.palette(20) == table.palette(0)
    assert table.palette(-1) == table.palette(0)
    assert table.palette(8)[0] == (2, 8, 0, 255)
