"""Font discovery for the card text roles."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

from PIL import ImageFont


logger = logging.getLogger(__name__)

_FONT_DIR_ENV = "CARDFORGE_FONT_DIR"

FONT_CANDIDATES: Dict[str, Tuple[str, ...]] = {
    "display": (
        "Oswald-Bold.ttf",
        "Oswald-VariableFont_wght.ttf",
        "DejaVuSansCondensed-Bold.ttf",
        "DejaVuSans-Bold.ttf",
        "LiberationSans-Bold.ttf",
    ),
    "condensed": (
        "BebasNeue-Regular.ttf",
        "Oswald-Medium.ttf",
        "DejaVuSansCondensed-Bold.ttf",
        "DejaVuSans-Bold.ttf",
        "LiberationSansNarrow-Bold.ttf",
        "LiberationSans-Bold.ttf",
    ),
    "body": (
        "Montserrat-SemiBold.ttf",
        "Montserrat-Bold.ttf",
        "DejaVuSans-Bold.ttf",
        "LiberationSans-Bold.ttf",
    ),
}

SYSTEM_FONT_DIRS: Tuple[str, ...] = (
    "~/.fonts",
    "~/.local/share/fonts",
    "/usr/share/fonts/truetype/dejavu",
    "/usr/share/fonts/truetype/liberation",
    "/usr/share/fonts/truetype/liberation2",
    "/usr/share/fonts/TTF",
    "/usr/share/fonts/dejavu",
    "/Library/Fonts",
    "~/Library/Fonts",
)


def _font_dirs(extra_dir: Optional[str]) -> list[Path]:
    dirs = [extra_dir] if extra_dir else []
    dirs.extend(SYSTEM_FONT_DIRS)
    return [Path(os.path.expanduser(d)) for d in dirs]


@lru_cache(maxsize=16)
def _resolve_font_path(role: str, extra_dir: Optional[str]) -> Optional[Path]:
    candidates = FONT_CANDIDATES.get(role)
    if candidates is None:
        raise KeyError(f"Unknown font role {role!r}")
    for filename in candidates:
        for directory in _font_dirs(extra_dir):
            path = directory / filename
            if path.is_file():
                logger.debug("Using %s for font role %s", path, role)
                return path
    logger.info("No font file found for role %s; using Pillow default font", role)
    return None


@lru_cache(maxsize=512)
def _load(role: str, size: int, extra_dir: Optional[str]) -> ImageFont.FreeTypeFont:
    path = _resolve_font_path(role, extra_dir)
    if path is not None:
        try:
            return ImageFont.truetype(str(path), size=size)
        except OSError as exc:
            logger.warning("Could not load font %s (%s); using Pillow default font", path, exc)
    return ImageFont.load_default(size=size)


def load_font(role: str, size: int) -> ImageFont.FreeTypeFont:
    """Return the font for ``role`` at ``size`` pixels, never failing."""

    return _load(role, max(1, int(size)), os.getenv(_FONT_DIR_ENV) or None)
