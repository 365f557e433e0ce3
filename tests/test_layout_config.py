import pytest

from cardforge.config import DEFAULT_LAYOUT, CardLayout, TextStyle, get_layout, iter_layouts


def test_get_layout_is_case_insensitive():
    layout = get_layout("Classic")
    assert layout is DEFAULT_LAYOUT
    assert layout.size == (600, 850)


def test_classic_layout_constants():
    layout = get_layout("classic")

    assert layout.photo_box == (130, 180, 440)
    assert layout.name_text.max_width == layout.width - 120
    assert layout.stat_value.max_width == layout.width - 160
    assert [row.label for row in layout.stat_rows] == ["ROLE", "BATTING", "BOWLING"]


def test_iter_layouts_contains_default():
    assert DEFAULT_LAYOUT in list(iter_layouts())


def test_get_layout_missing_raises():
    with pytest.raises(KeyError):
        get_layout("holographic")


def test_layout_id_and_name_style_are_separate_fields():
    layout = CardLayout(name="custom")

    assert layout.name == "custom"
    assert isinstance(layout.name_text, TextStyle)
    assert layout.name_text.size == 80
    assert DEFAULT_LAYOUT.name == "classic"
