import pytest

from cardforge.config import TextStyle
from cardforge.render.textfit import fit_font_size, fit_text


def _measure(text: str, size: int) -> float:
    return len(text) * size * 0.5


def test_fit_keeps_initial_size_when_text_fits():
    assert fit_font_size("96", 110, 110, min_size=40, step=2, measure=_measure) == 110


def test_fit_shrinks_until_text_fits():
    # width is 5 * size, so 200 units allows size 40
    assert fit_font_size("ABCDEFGHIJ", 200, 80, min_size=10, step=2, measure=_measure) == 40


def test_fit_stops_at_floor():
    text = "X" * 200
    assert fit_font_size(text, 50, 80, min_size=12, step=2, measure=_measure) == 12


def test_fit_clamps_last_step_to_floor():
    assert fit_font_size("X" * 100, 1, 20, min_size=10, step=3, measure=_measure) == 10


def test_fit_rejects_non_positive_step():
    with pytest.raises(ValueError):
        fit_font_size("X", 10, 20, min_size=10, step=0, measure=_measure)


@pytest.mark.parametrize("length", [1, 5, 17, 40, 90])
@pytest.mark.parametrize("max_width", [30.0, 120.0, 480.0])
def test_fit_picks_largest_size_that_fits(length, max_width):
    text = "W" * length
    floor, initial = 12, 80
    chosen = fit_font_size(text, max_width, initial, min_size=floor, step=1, measure=_measure)

    fitting = [size for size in range(floor, initial + 1) if _measure(text, size) <= max_width]
    expected = max(fitting) if fitting else floor
    assert chosen == expected


def test_fit_text_with_real_font_stays_within_width():
    style = TextStyle("condensed", 80, 8, 120, (255, 255, 255))
    fitted = fit_text("SHRINK ME PLEASE", (300, 580), style, step=2)

    assert fitted.size < 80
    assert fitted.width <= 120
    assert fitted.anchor == (300, 580)
