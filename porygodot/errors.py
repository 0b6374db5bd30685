"""
Exception types raised by the porygodot pipeline.

Each type maps to one failure policy:
- TruncatedData: a binary record is shorter than its fixed layout (fatal to
  that decode only)
- UnresolvedReference: a tileset label or cross-reference has no directory
  (the map that needs it is skipped)
- UnsupportedRasterFormat: tile graphics are not indexed (the tile store
  falls back to an alpha approximation)
- IOFailure: an output file could not be written (fatal to that file)
"""


class PorygodotError(Exception):
    """Base class for porygodot errors."""


class TruncatedData(PorygodotError):
    """A byte buffer ended before a fixed-size record was complete."""

    def __init__(self, what: str, offset: int, needed: int, available: int):
        self.what = what
        self.offset = offset
        self.needed = needed
        self.available = available
        super().__init__(
            f"{what} at offset 0x{offset:X} needs {needed} bytes, "
            f"only {max(available, 0)} available"
        )


class UnresolvedReference(PorygodotError):
    """A tileset label or cross-reference could not be located."""

    def __init__(self, label: str, detail: str = ""):
        self.label = label
        message = f"Cannot resolve tileset '{label}'"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class UnsupportedRasterFormat(PorygodotError):
    """Tile graphics are not stored as an indexed raster."""

    def __init__(self, mode: str, source: str = ""):
        self.mode = mode
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Expected indexed ('P') image{where}, got mode '{mode}'")


class IOFailure(PorygodotError):
    """An output file could not be written."""

    def __init__(self, path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write {path}: {cause}")
