"""Shrink-to-fit text placement."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple

from PIL import ImageDraw, ImageFont

from cardforge.config import TextStyle
from cardforge.render.fonts import load_font


Measure = Callable[[str, int], float]
FontLoader = Callable[[str, int], ImageFont.FreeTypeFont]


def fit_font_size(
    text: str,
    max_width: float,
    initial_size: int,
    *,
    min_size: int,
    step: int,
    measure: Measure,
) -> int:
    """Shrink ``initial_size`` by ``step`` until ``text`` fits or ``min_size`` is reached."""

    if step <= 0:
        raise ValueError("step must be positive")
    size = max(initial_size, min_size)
    while measure(text, size) > max_width and size > min_size:
        size = max(min_size, size - step)
    return size


def font_measure(role: str, loader: FontLoader = load_font) -> Measure:
    def measure(text: str, size: int) -> float:
        return loader(role, size).getlength(text)

    return measure


@dataclass(frozen=True)
class FittedText:
    text: str
    anchor: Tuple[float, float]
    size: int
    width: float
    font_role: str


def fit_text(
    text: str,
    anchor: Tuple[float, float],
    style: TextStyle,
    *,
    step: int,
    loader: FontLoader = load_font,
) -> FittedText:
    size = fit_font_size(
        text,
        style.max_width,
        style.size,
        min_size=style.min_size,
        step=step,
        measure=font_measure(style.font_role, loader),
    )
    width = loader(style.font_role, size).getlength(text)
    return FittedText(text=text, anchor=anchor, size=size, width=width, font_role=style.font_role)


def draw_fitted_text(
    draw: ImageDraw.ImageDraw,
    fitted: FittedText,
    fill,
    *,
    loader: FontLoader = load_font,
) -> None:
    """Draw centred on the anchor x, sitting on the anchor y baseline."""

    font = loader(fitted.font_role, fitted.size)
    draw.text(fitted.anchor, fitted.text, font=font, fill=fill, anchor="ms")
