"""
Shared fixtures: a small synthetic decomp project.

Tilesets:
- General (primary): tile 1 solid index 1, tile 2 split 2|3; palette 0 red/green/blue
- PalletTown (secondary): tile 1 solid index 1; palette 7 yellow
- Condominiums (secondary): tile 1 solid index 1; palette 7 cyan
- SilphCo (secondary): metatiles only, borrows tiles and palettes from Condominiums

Maps:
- PalletTown (2x2) and Route1 (2x1) share General/PalletTown
- SilphCo1F (1x1) uses General/SilphCo
- Broken references a tileset with no directory
- NullMap has no secondary tileset
"""

import pytest

from builders import (
    block,
    entry,
    header_decl,
    pack_u16,
    solid_tile,
    split_tile,
    write_json,
    write_tileset,
)

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
YELLOW = (255, 255, 0)
CYAN = (0, 255, 255)

GENERAL_ATTRIBUTES = [0x01, 0x02]
PALLET_TOWN_ATTRIBUTES = [0x0A]
SILPH_CO_ATTRIBUTES = [0x1FF | (1 << 29)]

PALLET_TOWN_BLOCKS = [
    block(0),
    block(1, collision=1, elevation=3),
    block(640),
    block(640, collision=3, elevation=15),
]


def _write_map(root, name, layout_id, **extra):
    data = {"id": "MAP_" + name.upper(), "name": name, "layout": layout_id}
    data.update(extra)
    write_json(root / "data" / "maps" / name / "map.json", data)


@pytest.fixture
def decomp_root(tmp_path):
    root = tmp_path / "pokefirered"
    tilesets = root / "data" / "tilesets"

    write_tileset(
        tilesets / "primary" / "general",
        tiles=[solid_tile(0), solid_tile(1), split_tile(2, 3)],
        palettes={0: {1: RED, 2: GREEN, 3: BLUE}},
        metatiles=[
            [entry(1)] * 4 + [entry(0)] * 4,
            [entry(1)] * 4 + [entry(2)] + [entry(0)] * 3,
        ],
        attributes=GENERAL_ATTRIBUTES,
    )
    write_tileset(
        tilesets / "secondary" / "pallet_town",
        tiles=[solid_tile(0), solid_tile(1)],
        palettes={7: {1: YELLOW}},
        metatiles=[[entry(641, palette=7)] * 4 + [entry(0)] * 4],
        attributes=PALLET_TOWN_ATTRIBUTES,
    )
    write_tileset(
        tilesets / "secondary" / "condominiums",
        tiles=[solid_tile(0), solid_tile(1)],
        palettes={7: {1: CYAN}},
        metatiles=[[entry(641, palette=7)] * 8],
        attributes=[0],
    )
    write_tileset(
        tilesets / "secondary" / "silph_co",
        metatiles=[[entry(641, palette=7)] * 4 + [entry(0)] * 4],
        attributes=SILPH_CO_ATTRIBUTES,
    )

    headers = root / "src" / "data" / "tilesets" / "headers.h"
    headers.parent.mkdir(parents=True)
    headers.write_text(
        header_decl("General", False, callback="InitTilesetAnim_General")
        + header_decl("PalletTown", True)
        + header_decl("Condominiums", True)
        + header_decl("SilphCo", True, tiles="Condominiums", palettes="Condominiums")
    )

    layouts = [
        {"id": "LAYOUT_PALLET_TOWN", "name": "PalletTown_Layout", "width": 2, "height": 2,
         "primary_tileset": "gTileset_General", "secondary_tileset": "gTileset_PalletTown",
         "blockdata_filepath": "data/layouts/PalletTown/map.bin"},
        {"id": "LAYOUT_ROUTE1", "name": "Route1_Layout", "width": 2, "height": 1,
         "primary_tileset": "gTileset_General", "secondary_tileset": "gTileset_PalletTown",
         "blockdata_filepath": "data/layouts/Route1/map.bin"},
        {"id": "LAYOUT_SILPH_CO_1F", "name": "SilphCo1F_Layout", "width": 1, "height": 1,
         "primary_tileset": "gTileset_General", "secondary_tileset": "gTileset_SilphCo",
         "blockdata_filepath": "data/layouts/SilphCo1F/map.bin"},
        {"id": "LAYOUT_BROKEN", "name": "Broken_Layout", "width": 1, "height": 1,
         "primary_tileset": "gTileset_General", "secondary_tileset": "gTileset_Missing",
         "blockdata_filepath": "data/layouts/Broken/map.bin"},
        {"id": "LAYOUT_NULL", "name": "Null_Layout", "width": 1, "height": 1,
         "primary_tileset": "gTileset_General",
         "blockdata_filepath": "data/layouts/Null/map.bin"},
    ]
    write_json(root / "data" / "layouts" / "layouts.json", {"layouts_table_label": "gMapLayouts",
                                                          "layouts": layouts})

    blockdata = {
        "PalletTown": PALLET_TOWN_BLOCKS,
        "Route1": [block(1), block(640)],
        "SilphCo1F": [block(640, elevation=4)],
        "Broken": [block(0)],
        "Null": [block(0)],
    }
    for name, blocks in blockdata.items():
        path = root / "data" / "layouts" / name / "map.bin"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(pack_u16(blocks))

    _write_map(
        root, "PalletTown", "LAYOUT_PALLET_TOWN",
        music="MUS_PALLET", weather="WEATHER_SUNNY", map_type="MAP_TYPE_TOWN",
        connections=[{"map": "MAP_ROUTE1", "offset": 0, "direction": "up"}],
        object_events=[{"graphics_id": "OBJ_EVENT_GFX_MOM", "x": 1, "y": 1}],
        warp_events=[{"x": 0, "y": 1, "elevation": 0, "dest_map": "MAP_ROUTE1", "dest_warp_id": "0"}],
    )
    _write_map(root, "Route1", "LAYOUT_ROUTE1", connections=None)
    _write_map(root, "SilphCo1F", "LAYOUT_SILPH_CO_1F")
    _write_map(root, "Broken", "LAYOUT_BROKEN")
    _write_map(root, "NullMap", "LAYOUT_NULL")

    write_json(root / "data" / "maps" / "map_groups.json", {
        "group_order": ["gMapGroup_Towns", "gMapGroup_Indoor"],
        "gMapGroup_Towns": ["PalletTown", "Route1", "Broken"],
        "gMapGroup_Indoor": ["SilphCo1F", "NullMap"],
    })

    return root


@pytest.fixture
def output_dir(tmp_path):
    """Output directory with no project.godot above it."""
    out = tmp_path / "out"
    out.mkdir()
    return out
