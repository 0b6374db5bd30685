"""
Tileset resolution - maps tileset labels to directories and cross-references.

Decomp projects declare every tileset in src/data/tilesets/headers.h:

    const struct Tileset gTileset_SilphCo =
    {
        .isCompressed = TRUE,
        .isSecondary = TRUE,
        .tiles = gTilesetTiles_Condominiums,
        .palettes = gTilesetPalettes_Condominiums,
        ...
        .callback = InitTilesetAnim_SilphCo,
    };

A `.tiles` or `.palettes` symbol naming another tileset means the graphics
or palettes are borrowed from that tileset's directory.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .constants import NULL_TILESET, TILESET_LABEL_PREFIX
from .errors import UnresolvedReference
from .logging_config import get_logger
from .utils import PathLike, camel_to_snake, get_tileset_name, load_json

logger = get_logger('tileset_resolver')

PRIMARY = "primary"
SECONDARY = "secondary"

_LABEL_RE = re.compile(r"const\s+struct\s+Tileset\s+(gTileset_(\w+))")
_SECONDARY_RE = re.compile(r"\.isSecondary\s*=\s*(TRUE|FALSE)")
_COMPRESSED_RE = re.compile(r"\.isCompressed\s*=\s*(TRUE|FALSE)")
_TILES_RE = re.compile(r"\.tiles\s*=\s*gTilesetTiles_(\w+)")
_PALETTES_RE = re.compile(r"\.palettes\s*=\s*gTilesetPalettes_(\w+)")
_CALLBACK_RE = re.compile(r"\.callback\s*=\s*(\w+)")


@dataclass(frozen=True)
class TilesetReference:
    """Where a tileset lives and which tilesets it borrows from."""
    label: str
    path: Path
    is_secondary: bool
    tiles_from: Optional[str] = None
    palettes_from: Optional[str] = None
    anim_callback: Optional[str] = None
    is_compressed: bool = False


@dataclass
class TilesetHeaderInfo:
    """Fields of one `struct Tileset` declaration in headers.h."""
    label: str
    is_secondary: Optional[bool] = None
    is_compressed: Optional[bool] = None
    tiles_from: Optional[str] = None
    palettes_from: Optional[str] = None
    callback: Optional[str] = None


def parse_tileset_headers(text: str) -> Dict[str, TilesetHeaderInfo]:
    """
    Parse the tileset declarations out of headers.h.

    A `.tiles`/`.palettes` symbol whose suffix matches the tileset's own name
    (case-insensitively) is not recorded as a cross-reference.
    """
    headers: Dict[str, TilesetHeaderInfo] = {}
    current: Optional[TilesetHeaderInfo] = None
    current_suffix = ""

    for raw_line in text.splitlines():
        line = raw_line.strip()

        match = _LABEL_RE.search(line)
        if match:
            current = TilesetHeaderInfo(label=match.group(1))
            current_suffix = match.group(2)
            headers[current.label] = current
            continue

        if current is None:
            continue

        match = _SECONDARY_RE.search(line)
        if match:
            current.is_secondary = match.group(1) == "TRUE"

        match = _COMPRESSED_RE.search(line)
        if match:
            current.is_compressed = match.group(1) == "TRUE"

        match = _TILES_RE.search(line)
        if match and match.group(1).lower() != current_suffix.lower():
            current.tiles_from = TILESET_LABEL_PREFIX + match.group(1)

        match = _PALETTES_RE.search(line)
        if match and match.group(1).lower() != current_suffix.lower():
            current.palettes_from = TILESET_LABEL_PREFIX + match.group(1)

        match = _CALLBACK_RE.search(line)
        if match and match.group(1) != "NULL":
            current.callback = match.group(1)

        if line.startswith("}"):
            current = None
            current_suffix = ""

    return headers


class TilesetResolver(ABC):
    """Maps a tileset label such as 'gTileset_PalletTown' to a TilesetReference."""

    @abstractmethod
    def resolve(self, label: str) -> TilesetReference:
        """
        Raises:
            UnresolvedReference: If the label has no tileset directory
        """

    def resolve_optional(self, label: Optional[str]) -> Optional[TilesetReference]:
        """Resolve a cross-reference, logging and returning None when it cannot be found."""
        if not label:
            return None
        try:
            return self.resolve(label)
        except UnresolvedReference as e:
            logger.warning(f"{e}; using the tileset's own directory")
            return None


class DecompHeaderResolver(TilesetResolver):
    """Resolves labels against a decomp tree using headers.h and data/tilesets/."""

    def __init__(self, input_dir: PathLike):
        """
        Initialize resolver.

        Args:
            input_dir: Path to the decomp project root
        """
        self.input_dir = Path(input_dir)
        self.tilesets_dir = self.input_dir / "data" / "tilesets"
        self.headers = self._load_headers()

    def _load_headers(self) -> Dict[str, TilesetHeaderInfo]:
        headers_path = self.input_dir / "src" / "data" / "tilesets" / "headers.h"
        if not headers_path.exists():
            logger.warning("headers.h not found, using directory scanning for tileset resolution")
            return {}

        with open(headers_path, 'r', encoding='utf-8', errors='replace') as f:
            headers = parse_tileset_headers(f.read())

        for info in headers.values():
            if info.tiles_from:
                logger.info(f"Tileset cross-ref: {info.label} borrows tiles from {info.tiles_from}")
            if info.palettes_from:
                logger.info(f"Tileset cross-ref: {info.label} borrows palettes from {info.palettes_from}")
        logger.debug(f"Parsed {len(headers)} tileset headers from {headers_path}")
        return headers

    def find_tileset_dir(self, label: str, is_secondary: bool = True) -> Optional[Path]:
        """
        Find the directory of a tileset.

        Tries the snake_case name in the expected category, then in the other
        category, then a case-insensitive match in both.
        """
        dir_name = camel_to_snake(get_tileset_name(label))
        expected = SECONDARY if is_secondary else PRIMARY
        other = PRIMARY if is_secondary else SECONDARY

        for category in (expected, other):
            path = self.tilesets_dir / category / dir_name
            if path.is_dir():
                return path

        for category in (PRIMARY, SECONDARY):
            search_dir = self.tilesets_dir / category
            if not search_dir.is_dir():
                continue
            for path in sorted(search_dir.iterdir()):
                if path.is_dir() and path.name.lower() == dir_name.lower():
                    return path

        return None

    def resolve(self, label: str) -> TilesetReference:
        if not label or label == NULL_TILESET:
            raise UnresolvedReference(label or "", "no tileset")

        info = self.headers.get(label)
        # Undeclared tilesets are assumed to be secondary
        is_secondary = info.is_secondary if info and info.is_secondary is not None else True

        path = self.find_tileset_dir(label, is_secondary)
        if path is None:
            raise UnresolvedReference(
                label, f"tried '{camel_to_snake(get_tileset_name(label))}' under {self.tilesets_dir}"
            )

        return TilesetReference(
            label=label,
            path=path,
            is_secondary=is_secondary,
            tiles_from=info.tiles_from if info else None,
            palettes_from=info.palettes_from if info else None,
            anim_callback=info.callback if info else None,
            is_compressed=bool(info and info.is_compressed),
        )


class MappingTilesetResolver(TilesetResolver):
    """Resolves labels from an explicit table, e.g. for trees without headers.h."""

    def __init__(self, references: Dict[str, TilesetReference]):
        self.references = dict(references)

    @classmethod
    def from_json(cls, manifest_path: PathLike) -> "MappingTilesetResolver":
        """
        Load a manifest of the form:

            {
              "gTileset_General": {"path": "tilesets/general", "is_secondary": false},
              "gTileset_SilphCo": {"path": "tilesets/silph_co", "is_secondary": true,
                                   "tiles_from": "gTileset_Condominiums"}
            }

        Relative paths are taken relative to the manifest's directory.
        """
        manifest_path = Path(manifest_path)
        base_dir = manifest_path.parent
        references = {}
        for label, entry in load_json(manifest_path).items():
            path = Path(entry["path"])
            if not path.is_absolute():
                path = base_dir / path
            references[label] = TilesetReference(
                label=label,
                path=path,
                is_secondary=bool(entry.get("is_secondary", True)),
                tiles_from=entry.get("tiles_from"),
                palettes_from=entry.get("palettes_from"),
                anim_callback=entry.get("callback"),
                is_compressed=bool(entry.get("is_compressed", False)),
            )
        logger.debug(f"Loaded {len(references)} tileset references from {manifest_path}")
        return cls(references)

    def resolve(self, label: str) -> TilesetReference:
        reference = self.references.get(label)
        if reference is None:
            raise UnresolvedReference(label, "not in tileset table")
        return reference
