"""
porygodot - Gen 3 decomp map to Godot converter.

Renders tileset atlases and writes Godot 4.3+ TileSet resources, map scenes
and per-map data files from a pokefirered/pokeemerald style project.
"""

__version__ = "0.1.0"
