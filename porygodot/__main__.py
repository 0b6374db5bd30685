"""
Main entry point for porygodot converter.
"""

import argparse
import dataclasses
import sys
from pathlib import Path

from .constants import GAME_CONFIGS, GBA_ROM_BASE
from .converter import MapConverter
from .errors import PorygodotError
from .logging_config import setup_logging
from .rom_reader import convert_rom_tilesets
from .tileset_resolver import MappingTilesetResolver


def _rom_offset(value: str) -> int:
    """Accept decimal, 0x-prefixed hex or a 0x08xxxxxx ROM address."""
    try:
        offset = int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid offset: {value!r}")
    if offset >= GBA_ROM_BASE:
        offset -= GBA_ROM_BASE
    if offset < 0:
        raise argparse.ArgumentTypeError(f"invalid offset: {value!r}")
    return offset


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="porygodot",
        description="Convert Gen 3 decomp maps (or ROM tilesets) to Godot 4.3+ scenes and tilesets"
    )
    parser.add_argument(
        "--input",
        help="Input directory (decomp project root, e.g. pokefirered)"
    )
    parser.add_argument(
        "--output",
        required=True,
        help="Output directory (a Godot project folder or a subfolder of one)"
    )
    parser.add_argument(
        "--maps",
        default=None,
        help="Comma-separated map names to export (default: all maps)"
    )
    parser.add_argument(
        "--game",
        choices=sorted(GAME_CONFIGS),
        default="firered",
        help="Tile/metatile ID-space sizes to use (default: firered)"
    )
    parser.add_argument(
        "--atlas-columns",
        type=_positive_int,
        default=None,
        help="Metatiles per atlas row (default: 8)"
    )
    parser.add_argument(
        "--tileset-manifest",
        default=None,
        help="JSON table of tileset labels to directories, used instead of headers.h"
    )
    parser.add_argument(
        "--rom",
        default=None,
        help="Render a tileset pair from a GBA ROM instead of a decomp tree"
    )
    parser.add_argument(
        "--primary-offset",
        type=_rom_offset,
        default=None,
        help="ROM offset of the primary tileset header (with --rom)"
    )
    parser.add_argument(
        "--secondary-offset",
        type=_rom_offset,
        default=None,
        help="ROM offset of the secondary tileset header (with --rom)"
    )
    parser.add_argument(
        "--name",
        default="rom",
        help="Output file stem for ROM tilesets (with --rom, default: rom)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed progress information"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Show debug information (implies verbose)"
    )
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.rom is None and args.input is None:
        parser.error("--input is required unless --rom is given")
    if args.rom is not None and (args.primary_offset is None or args.secondary_offset is None):
        parser.error("--rom needs --primary-offset and --secondary-offset")

    # Setup logging
    logger = setup_logging(args.verbose, args.debug)

    config = GAME_CONFIGS[args.game]
    if args.atlas_columns is not None:
        config = dataclasses.replace(config, atlas_columns=args.atlas_columns)

    output_dir = Path(args.output).resolve()

    if args.rom is not None:
        rom_path = Path(args.rom).resolve()
        if not rom_path.is_file():
            logger.error(f"ROM not found: {rom_path}")
            return 1
        try:
            convert_rom_tilesets(
                rom_path, args.primary_offset, args.secondary_offset,
                output_dir, name=args.name, config=config,
            )
        except (PorygodotError, ValueError) as e:
            logger.error(f"Failed to read ROM tilesets: {e}")
            return 1
        return 0

    input_dir = Path(args.input).resolve()
    if not input_dir.exists():
        logger.error(f"Input directory does not exist: {input_dir}")
        return 1

    logger.info(f"Input directory: {input_dir}")
    logger.info(f"Output directory: {output_dir}")

    map_filter = None
    if args.maps:
        map_filter = [name.strip() for name in args.maps.split(",") if name.strip()]

    resolver = None
    if args.tileset_manifest:
        manifest_path = Path(args.tileset_manifest).resolve()
        try:
            resolver = MappingTilesetResolver.from_json(manifest_path)
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Failed to load tileset manifest {manifest_path}: {e}")
            return 1
        logger.info(f"Tileset manifest: {manifest_path}")

    converter = MapConverter(input_dir, output_dir, config=config,
                             map_filter=map_filter, resolver=resolver)
    stats = converter.run()

    print(f"Exported {stats.exported} maps ({stats.skipped} skipped, {stats.failed} failed) "
          f"-> {output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
