"""Image resolution with a procedural placeholder fallback.

Every reference handed to :meth:`AssetResolver.resolve` ends up as a decoded
RGBA image. Loading is split in two stages: :meth:`AssetResolver.load`
returns ``Loaded`` or ``Failed`` and :meth:`AssetResolver.resolve` collapses
``Failed`` into the placeholder, so callers never see a load error.
"""

from __future__ import annotations

import base64
import logging
import os
import urllib.parse
from dataclasses import dataclass
from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import Iterable, Mapping, Optional, Tuple, Union

import httpx
from PIL import Image, ImageDraw

from cardforge.models import PlayerRecord
from cardforge.render.fonts import load_font


logger = logging.getLogger(__name__)

_FETCH_TIMEOUT_ENV = "CARDFORGE_FETCH_TIMEOUT"
_FETCH_TIMEOUT_DEFAULT = 15.0

PLACEHOLDER_SIZE = 400
PLACEHOLDER_OUTER = (0x2A, 0x0E, 0x45)
PLACEHOLDER_INNER = (0x3B, 0x14, 0x61)
PLACEHOLDER_TEXT = (0xFF, 0xD7, 0x00)
PLACEHOLDER_INSET = 20
PLACEHOLDER_LABEL = "NO IMAGE"

LOAD_FAILURE_CAUSES = (
    "missing file, private or expired share link, malformed URL, "
    "unreachable host or data that is not an image"
)

LocalImage = Union[Path, bytes]
ImageSource = Union[str, Path, bytes]


@dataclass(frozen=True)
class Loaded:
    image: Image.Image


@dataclass(frozen=True)
class Failed:
    reason: str


LoadResult = Union[Loaded, Failed]


def _env_float(name: str, default: float, *, clamp_min: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid float for %s: %s; using default %.2f", name, raw, default)
        return default
    if clamp_min is not None:
        value = max(clamp_min, value)
    return value


def fetch_timeout() -> float:
    return _env_float(_FETCH_TIMEOUT_ENV, _FETCH_TIMEOUT_DEFAULT, clamp_min=0.1)


@lru_cache(maxsize=4)
def _placeholder(size: int) -> Image.Image:
    image = Image.new("RGBA", (size, size), PLACEHOLDER_OUTER + (255,))
    draw = ImageDraw.Draw(image)
    inset = round(size * PLACEHOLDER_INSET / PLACEHOLDER_SIZE)
    draw.rectangle(
        (inset, inset, size - inset - 1, size - inset - 1),
        fill=PLACEHOLDER_INNER + (255,),
    )
    font = load_font("condensed", max(8, size // 8))
    draw.text((size / 2, size / 2), PLACEHOLDER_LABEL, font=font, fill=PLACEHOLDER_TEXT, anchor="mm")
    return image


def placeholder_image(size: int = PLACEHOLDER_SIZE) -> Image.Image:
    """Return a fresh copy of the generated "NO IMAGE" square."""

    return _placeholder(size).copy()


def describe_source(source: ImageSource | None) -> str:
    if source is None:
        return "<empty>"
    if isinstance(source, bytes):
        return f"<{len(source)} bytes>"
    if isinstance(source, Path):
        return str(source)
    if source.startswith("data:"):
        return source[:48] + ("..." if len(source) > 48 else "")
    return source


def build_local_image_map(
    files: Iterable[Union[Path, Tuple[str, bytes]]],
) -> dict[str, LocalImage]:
    """Key each image by its filename and by the filename without its extension."""

    mapping: dict[str, LocalImage] = {}
    for entry in files:
        if isinstance(entry, Path):
            filename, handle = entry.name, entry
        else:
            filename, data = entry
            filename = Path(filename).name
            handle = data
        if not filename:
            continue
        mapping[filename] = handle
        stem = ".".join(filename.split(".")[:-1])
        if stem:
            mapping[stem] = handle
    return mapping


def _decode_data_uri(uri: str) -> bytes:
    header, sep, payload = uri.partition(",")
    if not sep:
        raise ValueError("data URI has no ',' separator")
    if header.endswith(";base64"):
        return base64.b64decode(payload, validate=True)
    return urllib.parse.unquote_to_bytes(payload)


def _decode_bytes(data: bytes) -> Image.Image:
    if not data:
        raise ValueError("image data is empty")
    with Image.open(BytesIO(data)) as img:
        img.load()
        return img.convert("RGBA")


def _decode_path(path: Path) -> Image.Image:
    if not path.is_file():
        raise FileNotFoundError(f"no such file: {path}")
    with Image.open(path) as img:
        img.load()
        return img.convert("RGBA")


def _is_remote(reference: str) -> bool:
    return reference.startswith("http://") or reference.startswith("https://")


class AssetResolver:
    """Turn image references into drawable images.

    ``local_images`` is read-only for the lifetime of the resolver; build a
    new resolver if the set of uploaded images changes.
    """

    def __init__(
        self,
        local_images: Mapping[str, LocalImage] | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        placeholder_size: int = PLACEHOLDER_SIZE,
    ):
        self._local_images: Mapping[str, LocalImage] = dict(local_images or {})
        self._client = client
        self._timeout = timeout if timeout is not None else fetch_timeout()
        self._placeholder_size = placeholder_size

    @property
    def local_images(self) -> Mapping[str, LocalImage]:
        return self._local_images

    def lookup_local(self, reference: str) -> Optional[LocalImage]:
        key = reference.strip()
        if not key:
            return None
        if key in self._local_images:
            return self._local_images[key]
        stem = key.split(".")[0]
        return self._local_images.get(stem)

    def source_for(self, player: PlayerRecord) -> Optional[ImageSource]:
        """Pick the image to render for ``player`` without touching the record."""

        if player.manual_image:
            return self.lookup_local(player.manual_image) or player.manual_image
        local = self.lookup_local(player.image_source)
        if local is not None:
            return local
        if _is_remote(player.image_source) or player.image_source.startswith("data:"):
            return player.image_source
        return None

    async def resolve_player(self, player: PlayerRecord) -> Image.Image:
        """Resolve the photo for ``player``, logging references nothing matches."""

        label = f"player photo for {player.player_id}"
        source = self.source_for(player)
        reference = (player.manual_image or player.image_source).strip()
        if source is None and reference:
            logger.warning(
                "Failed to load %s from %s (no uploaded image or URL matches); likely causes: %s. Using placeholder.",
                label,
                reference,
                LOAD_FAILURE_CAUSES,
            )
        return await self.resolve(source, label=label)

    async def _fetch(self, url: str) -> bytes:
        if self._client is not None:
            response = await self._client.get(url)
            response.raise_for_status()
            return response.content
        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content

    async def load(self, source: ImageSource) -> LoadResult:
        try:
            if isinstance(source, bytes):
                return Loaded(_decode_bytes(source))
            if isinstance(source, Path):
                return Loaded(_decode_path(source))
            reference = source.strip()
            if reference.startswith("data:"):
                return Loaded(_decode_bytes(_decode_data_uri(reference)))
            if _is_remote(reference):
                return Loaded(_decode_bytes(await self._fetch(reference)))
            local = self.lookup_local(reference)
            if isinstance(local, bytes):
                return Loaded(_decode_bytes(local))
            return Loaded(_decode_path(local or Path(reference).expanduser()))
        except httpx.HTTPError as exc:
            return Failed(f"{type(exc).__name__}: {exc}")
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            return Failed(f"{type(exc).__name__}: {exc}")
        except Exception as exc:  # pragma: no cover
            logger.exception("Unexpected error loading %s", describe_source(source))
            return Failed(f"{type(exc).__name__}: {exc}")

    async def resolve(self, source: ImageSource | None, *, label: str = "image") -> Image.Image:
        """Return the decoded image, or the placeholder if it cannot be loaded."""

        if source is None or (isinstance(source, (str, bytes)) and not source.strip()):
            return placeholder_image(self._placeholder_size)

        result = await self.load(source)
        if isinstance(result, Loaded):
            return result.image

        logger.warning(
            "Failed to load %s from %s (%s); likely causes: %s. Using placeholder.",
            label,
            describe_source(source),
            result.reason,
            LOAD_FAILURE_CAUSES,
        )
        return placeholder_image(self._placeholder_size)
