import base64
import logging
from io import BytesIO
from pathlib import Path

import httpx
import pytest
from PIL import Image, ImageChops

from cardforge.models import PlayerRecord
from cardforge.render.assets import (
    AssetResolver,
    Failed,
    Loaded,
    build_local_image_map,
    placeholder_image,
)


def _png_bytes(size=(12, 8), color=(200, 30, 30)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def _data_uri(data: bytes, media_type: str = "image/png") -> str:
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"


def _is_placeholder(image: Image.Image) -> bool:
    expected = placeholder_image()
    return image.size == expected.size and ImageChops.difference(image, expected).getbbox() is None


def _player(**kwargs) -> PlayerRecord:
    data = {"player_id": "player-0", "name": "Virat Kohli", "role": "Batsman"}
    data.update(kwargs)
    return PlayerRecord(**data)


def test_placeholder_image_shape_and_colors():
    image = placeholder_image()

    assert image.size == (400, 400)
    assert image.mode == "RGBA"
    assert image.getpixel((2, 2)) == (0x2A, 0x0E, 0x45, 255)
    assert image.getpixel((40, 40)) == (0x3B, 0x14, 0x61, 255)


def test_placeholder_returns_independent_copies():
    first = placeholder_image()
    first.putpixel((0, 0), (0, 0, 0, 0))
    assert placeholder_image().getpixel((0, 0)) != (0, 0, 0, 0)


@pytest.mark.anyio
@pytest.mark.parametrize(
    "source",
    [
        None,
        "",
        "   ",
        b"",
        "data:image/png;base64,!!!not-base64!!!",
        "data:image/png;base64," + base64.b64encode(b"definitely not an image").decode(),
        "data:image/png;base64",
        "missing-photo.jpg",
        "ftp://example.com/photo.png",
        b"garbage bytes",
    ],
)
async def test_resolve_falls_back_to_placeholder(source):
    resolver = AssetResolver()
    image = await resolver.resolve(source)
    assert _is_placeholder(image)


@pytest.mark.anyio
async def test_resolve_logs_failed_reference(caplog):
    resolver = AssetResolver()
    with caplog.at_level(logging.WARNING, logger="cardforge.render.assets"):
        await resolver.resolve("missing-photo.jpg", label="player photo")

    assert "missing-photo.jpg" in caplog.text
    assert "player photo" in caplog.text
    assert "likely causes" in caplog.text


@pytest.mark.anyio
async def test_load_returns_explicit_result_types(tmp_path: Path):
    resolver = AssetResolver()
    photo = tmp_path / "photo.png"
    photo.write_bytes(_png_bytes())

    loaded = await resolver.load(photo)
    failed = await resolver.load(tmp_path / "nope.png")

    assert isinstance(loaded, Loaded)
    assert loaded.image.size == (12, 8)
    assert loaded.image.mode == "RGBA"
    assert isinstance(failed, Failed)
    assert "nope.png" in failed.reason


@pytest.mark.anyio
async def test_resolve_data_uri_and_file_path(tmp_path: Path):
    resolver = AssetResolver()
    photo = tmp_path / "photo.png"
    photo.write_bytes(_png_bytes((5, 7)))

    from_uri = await resolver.resolve(_data_uri(_png_bytes((9, 4))))
    from_path = await resolver.resolve(str(photo))

    assert from_uri.size == (9, 4)
    assert from_path.size == (5, 7)


@pytest.mark.anyio
async def test_resolve_remote_url_with_client():
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        if request.url.path.endswith("ok.png"):
            return httpx.Response(200, content=_png_bytes((16, 16)))
        return httpx.Response(404)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        resolver = AssetResolver(client=client)
        ok = await resolver.resolve("https://images.example.com/ok.png")
        missing = await resolver.resolve("https://images.example.com/gone.png")

    assert ok.size == (16, 16)
    assert _is_placeholder(missing)
    assert requested == [
        "https://images.example.com/ok.png",
        "https://images.example.com/gone.png",
    ]


def test_build_local_image_map_keys_name_and_stem(tmp_path: Path):
    photo = tmp_path / "rohit.sharma.png"
    photo.write_bytes(_png_bytes())

    mapping = build_local_image_map([photo, ("kohli.jpg", b"jpeg-bytes"), ("noext", b"raw")])

    assert mapping["rohit.sharma.png"] == photo
    assert mapping["rohit.sharma"] == photo
    assert mapping["kohli.jpg"] == b"jpeg-bytes"
    assert mapping["kohli"] == b"jpeg-bytes"
    assert mapping["noext"] == b"raw"


def test_source_for_prefers_manual_then_local_then_url():
    kohli = _png_bytes()
    manual = _png_bytes((3, 3))
    resolver = AssetResolver(build_local_image_map([("kohli.jpg", kohli), ("manual.png", manual)]))

    assert resolver.source_for(_player(image_source="kohli.jpg")) == kohli
    assert resolver.source_for(_player(image_source="kohli")) == kohli
    assert resolver.source_for(_player(image_source="kohli.png")) == kohli
    assert resolver.source_for(_player(image_source="kohli.jpg", manual_image="manual.png")) == manual
    assert resolver.source_for(_player(manual_image="https://cdn.example.com/m.png")) == "https://cdn.example.com/m.png"
    assert resolver.source_for(_player(image_source="https://cdn.example.com/k.png")) == "https://cdn.example.com/k.png"
    assert resolver.source_for(_player(image_source="unknown.jpg")) is None
    assert resolver.source_for(_player(image_source="")) is None


def test_source_for_does_not_mutate_player():
    player = _player(image_source="kohli.jpg", manual_image="manual.png")
    AssetResolver(build_local_image_map([("manual.png", b"x")])).source_for(player)

    assert player.image_source == "kohli.jpg"
    assert player.manual_image == "manual.png"


@pytest.mark.anyio
@pytest.mark.parametrize("reference", ["kohli_missing.jpg", "ftp://example.com/photo.png"])
async def test_resolve_player_logs_unmatched_reference(reference, caplog):
    resolver = AssetResolver(build_local_image_map([("kohli.jpg", _png_bytes())]))

    with caplog.at_level(logging.WARNING, logger="cardforge.render.assets"):
        image = await resolver.resolve_player(_player(image_source=reference))

    assert _is_placeholder(image)
    assert reference in caplog.text
    assert "player photo for player-0" in caplog.text


@pytest.mark.anyio
async def test_resolve_player_without_photo_stays_quiet(caplog):
    with caplog.at_level(logging.WARNING, logger="cardforge.render.assets"):
        image = await AssetResolver().resolve_player(_player(image_source=""))

    assert _is_placeholder(image)
    assert caplog.records == []
