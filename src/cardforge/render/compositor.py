"""Card composition: one player record plus three images in, one PNG out."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, replace
from io import BytesIO
from typing import List, Sequence, Tuple

from PIL import Image, ImageChops, ImageDraw, ImageFilter

from cardforge.config import DEFAULT_LAYOUT, CardLayout, TextStyle
from cardforge.models import PlayerRecord
from cardforge.render.assets import AssetResolver
from cardforge.render.errors import CompositionError
from cardforge.render.fonts import load_font
from cardforge.render.textfit import FittedText, FontLoader, draw_fitted_text, fit_text


logger = logging.getLogger(__name__)

Point = Tuple[float, float]
RGB = Tuple[int, int, int]


def format_rating(form_number: int) -> str:
    return str(form_number).rjust(2, "0")


def role_abbreviation(role: str) -> str:
    return role[:3].upper()


def _quadratic(p0: Point, p1: Point, p2: Point, segments: int) -> List[Point]:
    points = []
    for i in range(1, segments + 1):
        t = i / segments
        u = 1 - t
        x = u * u * p0[0] + 2 * u * t * p1[0] + t * t * p2[0]
        y = u * u * p0[1] + 2 * u * t * p1[1] + t * t * p2[1]
        points.append((x, y))
    return points


def shield_points(layout: CardLayout) -> List[Point]:
    """Flatten the shield outline into a closed polygon (first point not repeated)."""

    w, h = layout.width, layout.height
    top_left = (w * layout.shield_left, h * layout.shield_top)
    top_right = (w * layout.shield_right, h * layout.shield_top)
    right_shoulder = (w * layout.shield_right, h * layout.shield_shoulder)
    apex = (w * layout.shield_apex_x, h * layout.shield_apex_y)
    left_shoulder = (w * layout.shield_left, h * layout.shield_shoulder)

    points = [top_left, top_right, right_shoulder]
    points += _quadratic(
        right_shoulder,
        (w * layout.shield_right, h * layout.shield_curve_control),
        apex,
        layout.curve_segments,
    )
    points += _quadratic(
        apex,
        (w * layout.shield_left, h * layout.shield_curve_control),
        left_shoulder,
        layout.curve_segments,
    )
    return points


def shield_span(points: Sequence[Point], y: float) -> Tuple[float, float]:
    """Return the left and right x where the row at ``y`` crosses the outline."""

    xs = []
    for (x0, y0), (x1, y1) in zip(points, list(points[1:]) + [points[0]]):
        if y0 != y1 and min(y0, y1) <= y <= max(y0, y1):
            xs.append(x0 + (y - y0) * (x1 - x0) / (y1 - y0))
    if not xs:
        return (0.0, 0.0)
    return (min(xs), max(xs))


def _gradient_lut(stops: Sequence[Tuple[float, RGB]], channel: int) -> List[int]:
    lut = []
    for value in range(256):
        p = value / 255
        for (start, lo), (end, hi) in zip(stops, stops[1:]):
            if p <= end or end == stops[-1][0]:
                span = (end - start) or 1.0
                t = min(1.0, max(0.0, (p - start) / span))
                lut.append(round(lo[channel] + (hi[channel] - lo[channel]) * t))
                break
    return lut


def diagonal_gradient(layout: CardLayout) -> Image.Image:
    """Linear gradient from the top-left corner to the bottom-right corner."""

    w, h = layout.size
    denom = w * w + h * h
    row = bytes(round(255 * x * w / denom) for x in range(w))
    col = bytes(round(255 * y * h / denom) for y in range(h))
    horizontal = Image.frombytes("L", (w, 1), row).resize((w, h), Image.NEAREST)
    vertical = Image.frombytes("L", (1, h), col).resize((w, h), Image.NEAREST)
    ramp = ImageChops.add(horizontal, vertical)
    bands = [ramp.point(_gradient_lut(layout.gradient_stops, c)) for c in range(3)]
    return Image.merge("RGB", bands).convert("RGBA")


def _alpha(opacity: float) -> int:
    return round(255 * opacity)


@dataclass(frozen=True)
class StatLine:
    divider_y: int
    label: FittedText
    value: FittedText


@dataclass(frozen=True)
class CardTextPlan:
    rating: FittedText
    role: FittedText
    name: FittedText
    stats: Tuple[StatLine, ...]


class CardCompositor:
    """Render finished cards using a fixed :class:`CardLayout`."""

    def __init__(
        self,
        layout: CardLayout = DEFAULT_LAYOUT,
        *,
        resolver: AssetResolver | None = None,
        rng: random.Random | None = None,
        font_loader: FontLoader = load_font,
    ):
        self.layout = layout
        self.resolver = resolver or AssetResolver()
        self._rng = rng or random.SystemRandom()
        self._font_loader = font_loader
        self._shield = shield_points(layout)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _fit(self, text: str, anchor: Point, style) -> FittedText:
        return fit_text(text, anchor, style, step=self.layout.fit_step, loader=self._font_loader)

    def _stat_value_style(self, baseline: float) -> TextStyle:
        """Narrow the value column where the shield tapers toward its point."""

        layout = self.layout
        style = layout.stat_value
        left, right = shield_span(self._shield, baseline - style.size)
        room = right - left - 2 * layout.border_width
        if room < style.max_width:
            style = replace(style, max_width=max(room, 0.0))
        return style

    def plan_text(self, player: PlayerRecord) -> CardTextPlan:
        """Place every text element; y positions depend only on the layout."""

        layout = self.layout
        x = layout.column_x
        rating = self._fit(format_rating(player.form_number), (x, layout.rating_y), layout.rating)
        role_y = layout.rating_y + layout.role_gap
        role = self._fit(role_abbreviation(player.role), (x, role_y), layout.role_abbreviation)
        name = self._fit(player.name.upper(), (layout.width / 2, layout.name_y), layout.name_text)

        stats = []
        for index, row in enumerate(layout.stat_rows):
            y = layout.stats_start_y + index * layout.stats_spacing
            value = str(getattr(player, row.field_name)).upper()
            value_y = y + layout.stat_value_offset
            stats.append(
                StatLine(
                    divider_y=y - layout.stat_divider_offset,
                    label=self._fit(row.label, (layout.width / 2, y - layout.stat_label_offset), layout.stat_label),
                    value=self._fit(value, (layout.width / 2, value_y), self._stat_value_style(value_y)),
                )
            )
        return CardTextPlan(rating=rating, role=role, name=name, stats=tuple(stats))

    # ------------------------------------------------------------------
    # Drawing helpers
    # ------------------------------------------------------------------

    def _overlay_line(self, base: Image.Image, points: Sequence[Point], color: RGB, opacity: float, width: int) -> None:
        overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
        ImageDraw.Draw(overlay).line(list(points), fill=color + (_alpha(opacity),), width=width)
        base.alpha_composite(overlay)

    def _draw_text(
        self,
        base: Image.Image,
        fitted: FittedText,
        fill: RGB,
        *,
        shadow_blur: float = 0,
        shadow_opacity: float = 1.0,
    ) -> None:
        if shadow_blur:
            shadow = Image.new("RGBA", base.size, (0, 0, 0, 0))
            draw_fitted_text(
                ImageDraw.Draw(shadow),
                fitted,
                (0, 0, 0, _alpha(shadow_opacity)),
                loader=self._font_loader,
            )
            base.alpha_composite(shadow.filter(ImageFilter.GaussianBlur(shadow_blur / 2)))
        draw_fitted_text(ImageDraw.Draw(base), fitted, fill, loader=self._font_loader)

    def _draw_background(self, content: Image.Image, rng: random.Random) -> None:
        layout = self.layout
        content.paste(diagonal_gradient(layout), (0, 0))

        texture = Image.new("RGBA", content.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(texture)
        for _ in range(layout.texture_lines):
            start = (rng.random() * layout.width, 0)
            end = (rng.random() * layout.width, layout.height)
            draw.line([start, end], fill=layout.white + (_alpha(layout.texture_opacity),), width=layout.texture_width)
        content.alpha_composite(texture)

    def _draw_photo(self, content: Image.Image, photo: Image.Image) -> None:
        layout = self.layout
        x, y, side = layout.photo_box
        content.alpha_composite(photo.convert("RGBA").resize((side, side), Image.LANCZOS), dest=(x, y))

        fade_top = y + side - layout.fade_span
        fade = Image.new("RGBA", (layout.width, layout.fade_height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(fade)
        for row in range(layout.fade_height):
            alpha = round(255 * min(1.0, row / layout.fade_span))
            draw.line([(0, row), (layout.width, row)], fill=layout.background + (alpha,))
        content.alpha_composite(fade, dest=(0, fade_top))

    def _draw_column(self, content: Image.Image, plan: CardTextPlan, portrait: Image.Image, logo: Image.Image) -> None:
        layout = self.layout
        x = layout.column_x
        self._draw_text(
            content,
            plan.rating,
            layout.rating.color,
            shadow_blur=layout.rating_shadow_blur,
            shadow_opacity=layout.rating_shadow_opacity,
        )
        self._draw_text(content, plan.role, layout.role_abbreviation.color)

        divider_y = plan.role.anchor[1] + layout.divider_gap
        self._overlay_line(
            content,
            [(x - layout.divider_half_width, divider_y), (x + layout.divider_half_width, divider_y)],
            layout.white,
            layout.divider_opacity,
            2,
        )

        size = layout.icon_size
        left = round(x - size / 2)
        portrait_top = divider_y + layout.icon_gap
        icon = portrait.convert("RGBA").resize((size, size), Image.LANCZOS)
        circle = Image.new("L", (size, size), 0)
        ImageDraw.Draw(circle).ellipse((0, 0, size - 1, size - 1), fill=255)
        icon.putalpha(ImageChops.multiply(icon.getchannel("A"), circle))
        content.alpha_composite(icon, dest=(left, portrait_top))
        ImageDraw.Draw(content).ellipse(
            (left, portrait_top, left + size - 1, portrait_top + size - 1),
            outline=layout.gold,
            width=layout.icon_border_width,
        )

        logo_top = portrait_top + size + layout.logo_gap
        content.alpha_composite(logo.convert("RGBA").resize((size, size), Image.LANCZOS), dest=(left, logo_top))

    def _draw_stats(self, content: Image.Image, plan: CardTextPlan) -> None:
        layout = self.layout
        for line in plan.stats:
            self._overlay_line(
                content,
                [
                    (layout.width * layout.stat_divider_left, line.divider_y),
                    (layout.width * layout.stat_divider_right, line.divider_y),
                ],
                layout.gold,
                layout.stat_divider_opacity,
                1,
            )
            self._draw_text(content, line.label, layout.stat_label.color)
            self._draw_text(content, line.value, layout.stat_value.color)

    def _stroke_border(self, canvas: Image.Image) -> None:
        layout = self.layout
        outline = self._shield + [self._shield[0]]
        draw = ImageDraw.Draw(canvas)
        draw.line(outline, fill=layout.gold, width=layout.border_width, joint="curve")
        draw.line(outline, fill=layout.cornsilk, width=layout.inner_border_width, joint="curve")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render(
        self,
        player: PlayerRecord,
        photo: Image.Image,
        portrait: Image.Image,
        logo: Image.Image,
        *,
        rng: random.Random | None = None,
    ) -> Image.Image:
        """Draw the card from already-resolved images."""

        layout = self.layout
        try:
            canvas = Image.new("RGBA", layout.size, (0, 0, 0, 0))
            content = Image.new("RGBA", layout.size, (0, 0, 0, 0))
            mask = Image.new("L", layout.size, 0)
        except (MemoryError, ValueError) as exc:
            raise CompositionError(
                f"Could not allocate a {layout.width}x{layout.height} drawing surface: {exc}",
                player_id=player.player_id,
                stage="surface",
            ) from exc

        ImageDraw.Draw(mask).polygon(self._shield, fill=255)
        plan = self.plan_text(player)

        self._draw_background(content, rng or self._rng)
        self._draw_photo(content, photo)
        self._draw_column(content, plan, portrait, logo)
        self._draw_text(content, plan.name, layout.name_text.color, shadow_blur=layout.name_shadow_blur)
        self._draw_stats(content, plan)

        canvas.paste(content, (0, 0), mask)
        self._stroke_border(canvas)
        return canvas

    def encode(self, image: Image.Image, *, player_id: str) -> bytes:
        buffer = BytesIO()
        try:
            image.save(buffer, format="PNG")
        except (OSError, ValueError) as exc:
            raise CompositionError(
                f"Could not encode card for {player_id}: {exc}",
                player_id=player_id,
                stage="encode",
            ) from exc
        return buffer.getvalue()

    async def compose(
        self,
        player: PlayerRecord,
        org_portrait_ref: str,
        logo_ref: str,
        *,
        rng: random.Random | None = None,
    ) -> bytes:
        """Resolve the three images concurrently, draw the card and return PNG bytes."""

        photo, portrait, logo = await asyncio.gather(
            self.resolver.resolve_player(player),
            self.resolver.resolve(org_portrait_ref, label="org portrait"),
            self.resolver.resolve(logo_ref, label="logo"),
        )
        image = self.render(player, photo, portrait, logo, rng=rng)
        return self.encode(image, player_id=player.player_id)
