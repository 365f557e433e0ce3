from __future__ import annotations

from pydantic import BaseModel, Field

from cardforge.models import PlayerRecord


class RosterPreviewResponse(BaseModel):
    total_players: int
    players: list[PlayerRecord]
    players_missing_image: list[str] = Field(default_factory=list)
    players_with_default_form: list[str] = Field(default_factory=list)
