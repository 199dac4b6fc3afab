"""tilepalette - Tileset palette model for 2D map editors."""

__version__ = "0.1.0"
