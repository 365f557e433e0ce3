"""Card layout configuration for the supported card designs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Tuple


RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class TextStyle:
    font_role: str
    size: int
    min_size: int
    max_width: float
    color: RGB


@dataclass(frozen=True)
class StatRow:
    label: str
    field_name: str


@dataclass(frozen=True)
class CardLayout:
    name: str
    width: int = 600
    height: int = 850

    # Shield silhouette, as fractions of the canvas.
    shield_top: float = 0.10
    shield_left: float = 0.10
    shield_right: float = 0.90
    shield_shoulder: float = 0.70
    shield_curve_control: float = 0.85
    shield_apex_x: float = 0.50
    shield_apex_y: float = 0.95
    curve_segments: int = 32

    gradient_stops: Tuple[Tuple[float, RGB], ...] = (
        (0.0, (0x3B, 0x14, 0x61)),
        (0.5, (0x2A, 0x0E, 0x45)),
        (1.0, (0x1A, 0x05, 0x25)),
    )
    background: RGB = (0x2A, 0x0E, 0x45)
    gold: RGB = (0xFF, 0xD7, 0x00)
    cornsilk: RGB = (0xFF, 0xF8, 0xDC)
    white: RGB = (0xFF, 0xFF, 0xFF)

    texture_lines: int = 5
    texture_opacity: float = 0.1
    texture_width: int = 2

    photo_size: int = 400
    photo_scale: float = 1.1
    photo_offset_x: int = 50
    photo_top: int = 180
    fade_span: int = 100
    fade_height: int = 120

    column_x: int = 115
    rating_y: int = 160
    rating: TextStyle = field(
        default_factory=lambda: TextStyle("display", 110, 40, 110, (0xFF, 0xD7, 0x00))
    )
    rating_shadow_blur: int = 10
    rating_shadow_opacity: float = 0.5
    role_gap: int = 40
    role_abbreviation: TextStyle = field(
        default_factory=lambda: TextStyle("condensed", 40, 20, 100, (0xFF, 0xFF, 0xFF))
    )
    divider_gap: int = 30
    divider_half_width: int = 40
    divider_opacity: float = 0.5
    icon_gap: int = 40
    icon_size: int = 70
    icon_border_width: int = 2
    logo_gap: int = 20

    name_y: int = 580
    name_text: TextStyle = field(
        default_factory=lambda: TextStyle("condensed", 80, 12, 480, (0xFF, 0xD7, 0x00))
    )
    name_shadow_blur: int = 4

    stats_start_y: int = 628
    stats_spacing: int = 56
    stat_rows: Tuple[StatRow, ...] = (
        StatRow("ROLE", "role"),
        StatRow("BATTING", "batting_style"),
        StatRow("BOWLING", "bowling_style"),
    )
    stat_divider_offset: int = 26
    stat_divider_left: float = 0.2
    stat_divider_right: float = 0.8
    stat_divider_opacity: float = 0.3
    stat_label_offset: int = 4
    stat_label: TextStyle = field(
        default_factory=lambda: TextStyle("condensed", 28, 16, 440, (0xFF, 0xD7, 0x00))
    )
    stat_value_offset: int = 24
    stat_value: TextStyle = field(
        default_factory=lambda: TextStyle("body", 32, 12, 440, (0xFF, 0xFF, 0xFF))
    )

    border_width: int = 15
    inner_border_width: int = 2

    fit_step: int = 2

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def photo_box(self) -> Tuple[int, int, int]:
        """Return (x, y, side) of the scaled player photo."""

        side = round(self.photo_size * self.photo_scale)
        x = round((self.width - side) / 2 + self.photo_offset_x)
        return x, self.photo_top, side


_LAYOUTS: Dict[str, CardLayout] = {
    "classic": CardLayout(name="classic"),
}

DEFAULT_LAYOUT = _LAYOUTS["classic"]


def iter_layouts() -> Iterable[CardLayout]:
    """Return an iterator of all configured layouts."""

    return _LAYOUTS.values()


def get_layout(name: str) -> CardLayout:
    """Fetch a layout by name, raising KeyError if missing."""

    key = name.strip().lower()
    if key not in _LAYOUTS:
        raise KeyError(f"No card layout configured for name={name!r}")
    return _LAYOUTS[key]
