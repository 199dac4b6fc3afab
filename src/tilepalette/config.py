"""Centralized configuration for tilepalette.

All tunable parameters are defined here with sensible defaults.
Values can be overridden via environment variables.

Environment Variables:
    TILEPALETTE_ROOT_PATH: Data root holding ``images/tilesets`` (default: .)
    TILEPALETTE_IMAGE_SCALE: Scale factor of the magnified tileset image (default: 2)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def _get_env_int(name: str, default: int) -> int:
    """Get an integer from environment variable with fallback."""
    value = os.environ.get(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(
                "Invalid integer for %s: %r, using default %d", name, value, default
            )
    return default


def _get_env_path(name: str, default: str) -> Path:
    """Get a Path from environment variable with fallback."""
    return Path(os.environ.get(name, default))


# =============================================================================
# Asset Locations
# =============================================================================

#: Root directory of the game data (images live below it)
TILESET_ROOT_PATH: Path = _get_env_path("TILEPALETTE_ROOT_PATH", ".")

#: Path components from the root to the tileset images directory
TILESET_IMAGE_SUBDIR: tuple[str, ...] = ("images", "tilesets")

#: File suffix of tileset images
TILESET_IMAGE_SUFFIX: str = ".png"

#: File suffix of persisted tileset files
TILESET_FILE_SUFFIX: str = ".tileset"


# =============================================================================
# Image Configuration
# =============================================================================

#: Scale factor of the magnified image used by zoomed editing views
DOUBLE_IMAGE_SCALE: int = _get_env_int("TILEPALETTE_IMAGE_SCALE", 2)


# =============================================================================
# Validation
# =============================================================================


def _validate_config() -> None:
    """Validate configuration values and log warnings for out-of-range settings."""
    global DOUBLE_IMAGE_SCALE

    if DOUBLE_IMAGE_SCALE < 1:
        logger.warning(
            "DOUBLE_IMAGE_SCALE=%d is too low, clamping to 1", DOUBLE_IMAGE_SCALE
        )
        DOUBLE_IMAGE_SCALE = 1


_validate_config()
