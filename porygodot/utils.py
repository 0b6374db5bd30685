"""
Utility functions for porygodot.
"""

import json
import os
import re
from pathlib import Path
from typing import Dict, Any, Union

from .constants import TILESET_LABEL_PREFIX
from .errors import IOFailure

PathLike = Union[str, Path]


def load_json(filepath: PathLike) -> Dict[str, Any]:
    """Load a JSON file."""
    with open(filepath, 'r', encoding='utf-8') as f:
        return json.load(f)


def save_json(data: Any, filepath: PathLike, indent: int = 2) -> None:
    """Save data to a JSON file (UTF-8, LF line endings)."""
    text = json.dumps(data, indent=indent, ensure_ascii=False) + "\n"
    write_text(filepath, text)


def write_text(filepath: PathLike, text: str) -> None:
    """
    Write a text file in one go as UTF-8 without BOM, keeping LF line endings.

    Raises:
        IOFailure: If the file cannot be written
    """
    try:
        os.makedirs(os.path.dirname(os.path.abspath(filepath)), exist_ok=True)
        with open(filepath, 'w', encoding='utf-8', newline='\n') as f:
            f.write(text)
    except OSError as e:
        raise IOFailure(filepath, e) from e


def write_bytes(filepath: PathLike, data: bytes) -> None:
    """
    Write a binary file in one go.

    Raises:
        IOFailure: If the file cannot be written
    """
    try:
        os.makedirs(os.path.dirname(os.path.abspath(filepath)), exist_ok=True)
        with open(filepath, 'wb') as f:
            f.write(data)
    except OSError as e:
        raise IOFailure(filepath, e) from e


def make_safe(name: str) -> str:
    """Keep only letters, digits and underscores (e.g. for atlas file names)."""
    safe = "".join(c for c in name if c.isalnum() or c == "_")
    return safe or "unknown"


def get_tileset_name(tileset_id: str) -> str:
    """Extract tileset name from ID like 'gTileset_General' -> 'General'."""
    if tileset_id.startswith(TILESET_LABEL_PREFIX):
        return tileset_id[len(TILESET_LABEL_PREFIX):]
    return tileset_id


def camel_to_snake(name: str) -> str:
    """
    Convert CamelCase to snake_case.

    Examples:
        'PalletTown' -> 'pallet_town'
        'GenericBuilding1' -> 'generic_building_1'
        'SSAnne' -> 'ss_anne'

    Args:
        name: CamelCase string to convert

    Returns:
        snake_case string
    """
    # Insert underscore before uppercase letters (except the first one)
    s1 = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', name)
    # Insert underscore before uppercase letters that follow lowercase
    s2 = re.sub('([a-z0-9])([A-Z])', r'\1_\2', s1)
    # Insert underscore before digits that follow letters
    s3 = re.sub('([A-Za-z])([0-9])', r'\1_\2', s2)
    return s3.lower()
