"""
Main converter - converts decomp maps to Godot scenes.

For every map: read map.json and its layout, render (or reuse) the atlases
of the layout's tileset pair, then write the map's TileSet resource, scene
and data JSON. A map that cannot be exported is skipped or counted as failed
and the run moves on to the next one.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from .atlas_cache import AtlasCache, AtlasCacheEntry, TilesetPairKey
from .collision_atlas import write_collision_atlas
from .constants import (
    COLLISION_ATLAS_FILENAME,
    DATA_DIR,
    SCENES_DIR,
    TILES_DIR,
    TILESETS_DIR,
    RenderConfig,
    FIRERED,
)
from .errors import PorygodotError, UnresolvedReference
from .godot_writer import (
    write_map_data_json,
    write_map_scene,
    write_project_godot,
    write_tileset_resource,
)
from .logging_config import get_logger
from .map_reader import LayoutInfo, MapReader
from .metatile_renderer import MetatileRenderer
from .png_writer import write_png
from .tileset import Tileset, TilesetPair, load_decomp_tileset
from .tileset_resolver import DecompHeaderResolver, TilesetReference, TilesetResolver
from .utils import PathLike, get_tileset_name, make_safe

logger = get_logger('converter')


@dataclass
class ConversionStats:
    """Outcome counts of one conversion run."""
    exported: int = 0
    skipped: int = 0
    failed: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.exported + self.skipped + self.failed


def atlas_combo_name(primary_label: str, secondary_label: str) -> str:
    """File stem shared by a pair's atlases, e.g. 'General_PalletTown'."""
    return (
        make_safe(get_tileset_name(primary_label))
        + "_"
        + make_safe(get_tileset_name(secondary_label))
    )


class MapConverter:
    """Converts decomp maps to Godot scenes, tilesets and data files."""

    def __init__(
        self,
        input_dir: PathLike,
        output_dir: PathLike,
        config: RenderConfig = FIRERED,
        map_filter: Optional[Iterable[str]] = None,
        resolver: Optional[TilesetResolver] = None,
        cache: Optional[AtlasCache] = None,
    ):
        """
        Initialize converter.

        Args:
            input_dir: Decomp project root
            output_dir: Output directory (a Godot project or a folder inside one)
            config: ID-space sizes and atlas layout
            map_filter: Map names to export (case-insensitive); None exports all
            resolver: Tileset resolver; defaults to parsing the decomp's headers.h
            cache: Atlas cache shared across runs; a fresh one by default
        """
        self.input_dir = Path(input_dir)
        self.output_dir = Path(output_dir)
        self.config = config
        self.map_filter: Optional[Set[str]] = (
            {name.strip().lower() for name in map_filter if name.strip()}
            if map_filter is not None else None
        )
        self.map_reader = MapReader(self.input_dir)
        self.resolver = resolver if resolver is not None else DecompHeaderResolver(self.input_dir)
        self.cache = cache if cache is not None else AtlasCache()
        self.renderer = MetatileRenderer(config)

        self.tiles_dir = self.output_dir / TILES_DIR
        self.tilesets_dir = self.output_dir / TILESETS_DIR
        self.scenes_dir = self.output_dir / SCENES_DIR
        self.data_dir = self.output_dir / DATA_DIR

    def run(self) -> ConversionStats:
        """Export every selected map."""
        logger.info(f"Decomp project: {self.input_dir}")
        logger.info(f"Output path: {self.output_dir}")

        for directory in (self.tiles_dir, self.tilesets_dir, self.scenes_dir, self.data_dir):
            directory.mkdir(parents=True, exist_ok=True)

        try:
            write_collision_atlas(self.tiles_dir / COLLISION_ATLAS_FILENAME)
        except PorygodotError as e:
            logger.warning(f"Failed to generate collision overlay: {e}")

        write_project_godot(self.output_dir)

        layouts = self.map_reader.load_layouts()
        map_names = self.map_reader.collect_map_names()
        logger.info(f"Found {len(map_names)} maps, {len(layouts)} layouts")

        if self.map_filter is not None:
            map_names = [name for name in map_names if name.lower() in self.map_filter]
            logger.info(f"Filter applied: {len(map_names)} maps selected")

        stats = ConversionStats()
        for map_name in map_names:
            try:
                if self.export_map(map_name, layouts):
                    stats.exported += 1
                else:
                    stats.skipped += 1
            except Exception as e:
                logger.warning(f"{map_name}: {e}")
                stats.failed += 1
                stats.failures.append(map_name)

        logger.info(
            f"Done! Exported {stats.exported} maps "
            f"({stats.skipped} skipped, {stats.failed} failed) -> {self.output_dir}"
        )
        return stats

    def export_map(self, map_name: str, layouts: Dict[str, LayoutInfo]) -> bool:
        """
        Export one map.

        Returns:
            True if the map was written, False if it was skipped
        """
        map_json = self.map_reader.load_map_json(map_name)
        if map_json is None:
            logger.info(f"SKIP: {map_name} - no map.json")
            return False

        layout_id = map_json.get("layout")
        layout = layouts.get(layout_id) if layout_id is not None else None
        if layout is None:
            logger.info(f"SKIP: {map_name} - layout '{layout_id}' not found")
            return False

        if not layout.has_tilesets:
            logger.info(f"SKIP: {map_name} - NULL tileset")
            return False

        blocks = self.map_reader.read_block_data(layout)
        if blocks is None:
            logger.info(f"SKIP: {map_name} - blockdata not found: {layout.blockdata_filepath}")
            return False

        if len(blocks) < layout.cell_count:
            logger.info(
                f"SKIP: {map_name} - blockdata too small ({len(blocks)} < {layout.cell_count})"
            )
            return False

        key = TilesetPairKey(layout.primary_tileset, layout.secondary_tileset)
        try:
            entry = self.cache.get_or_build(
                key, lambda: self.render_tileset_atlas(key.primary, key.secondary)
            )
        except UnresolvedReference as e:
            logger.warning(f"SKIP: {map_name} - {e}")
            return False

        self._write_map_files(map_name, map_json, layout, blocks, entry)
        logger.info(f"OK: {map_name} ({layout.width}x{layout.height})")
        return True

    def _write_map_files(self, map_name, map_json, layout, blocks, entry: AtlasCacheEntry) -> None:
        tres_file = f"{map_name}_tileset.tres"
        overlay_texture = f"../{TILES_DIR}/{entry.overlay_filename}" if entry.has_overlay else None

        write_tileset_resource(
            self.tilesets_dir / tres_file,
            f"../{TILES_DIR}/{entry.ground_filename}",
            overlay_texture,
            f"../{TILES_DIR}/{COLLISION_ATLAS_FILENAME}",
            entry.total_positions,
            entry.has_overlay,
            self.config.atlas_columns,
        )

        write_map_scene(
            self.scenes_dir / f"{map_name}.tscn",
            f"../{TILESETS_DIR}/{tres_file}",
            map_name,
            blocks,
            layout.width,
            layout.height,
            entry.has_overlay,
            self.config.atlas_columns,
        )

        write_map_data_json(
            self.data_dir / f"{map_name}.json",
            map_name,
            map_json,
            blocks,
            layout.width,
            layout.height,
            entry.pair,
        )

    def load_tileset(self, reference: TilesetReference) -> Tileset:
        """Load a resolved tileset, following its tiles/palettes cross-references."""
        tiles_ref = self.resolver.resolve_optional(reference.tiles_from)
        palettes_ref = self.resolver.resolve_optional(reference.palettes_from)
        if tiles_ref is not None:
            logger.info(f"Using tiles from {tiles_ref.label} -> {tiles_ref.path}")
        if palettes_ref is not None:
            logger.info(f"Using palettes from {palettes_ref.label} -> {palettes_ref.path}")

        return load_decomp_tileset(
            reference.label,
            reference.path,
            reference.is_secondary,
            tiles_dir=tiles_ref.path if tiles_ref else None,
            palettes_dir=palettes_ref.path if palettes_ref else None,
            anim_callback=reference.anim_callback,
            is_compressed=reference.is_compressed,
        )

    def render_tileset_atlas(self, primary_label: str, secondary_label: str) -> AtlasCacheEntry:
        """
        Render and write the ground/overlay atlases of a tileset pair.

        Raises:
            UnresolvedReference: If either tileset cannot be located
        """
        primary = self.load_tileset(self.resolver.resolve(primary_label))
        secondary = self.load_tileset(self.resolver.resolve(secondary_label))
        pair = TilesetPair(primary, secondary, self.config)

        combo = atlas_combo_name(primary_label, secondary_label)
        logger.info(f"Rendering tileset: {combo}")
        atlases = self.renderer.render_atlases(pair)

        ground_filename = f"{combo}_ground.png"
        overlay_filename = f"{combo}_overlay.png"
        ground = atlases.ground
        write_png(ground.to_bytes(), ground.width, ground.height, self.tiles_dir / ground_filename)

        has_overlay = atlases.has_overlay
        if has_overlay:
            overlay = atlases.overlay
            write_png(overlay.to_bytes(), overlay.width, overlay.height,
                      self.tiles_dir / overlay_filename)
        else:
            logger.debug(f"{combo} has no overlay pixels, omitting overlay atlas")

        return AtlasCacheEntry(
            ground_filename=ground_filename,
            overlay_filename=overlay_filename,
            total_positions=atlases.total_positions,
            has_overlay=has_overlay,
            pair=pair,
        )
