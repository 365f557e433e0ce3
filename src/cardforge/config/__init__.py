"""Configuration helpers for card layouts."""

from .layout import DEFAULT_LAYOUT, CardLayout, StatRow, TextStyle, get_layout, iter_layouts

__all__ = [
    "CardLayout",
    "DEFAULT_LAYOUT",
    "StatRow",
    "TextStyle",
    "get_layout",
    "iter_layouts",
]
