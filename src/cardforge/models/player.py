"""Canonical player and card models shared across ingestion and rendering."""

from __future__ import annotations

import base64

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


DEFAULT_STYLE = "N/A"
DEFAULT_FORM_NUMBER = 50


class PlayerRecord(BaseModel):
    """Normalized roster entry consumed by the card compositor."""

    player_id: str = Field(..., min_length=1)
    name: str
    role: str
    batting_style: str = DEFAULT_STYLE
    bowling_style: str = DEFAULT_STYLE
    # Advertised range is 1-90 but out-of-range values still render.
    form_number: int = DEFAULT_FORM_NUMBER
    image_source: str = ""
    manual_image: str | None = None

    model_config = ConfigDict(frozen=True)


class SharedAssets(BaseModel):
    """Batch-wide images drawn on every card."""

    org_portrait: str
    logo: str

    model_config = ConfigDict(frozen=True)


class RenderedCard(BaseModel):
    player_id: str
    image: bytes
    media_type: str = "image/png"
    scout_report: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.image).decode("ascii")
        return f"data:{self.media_type};base64,{encoded}"
