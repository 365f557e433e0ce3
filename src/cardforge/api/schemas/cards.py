from __future__ import annotations

from pydantic import BaseModel


class CardResponse(BaseModel):
    player_id: str
    name: str
    data_url: str | None = None
    error: str | None = None


class CardBatchResponse(BaseModel):
    total: int
    rendered: int
    failed: int
    cards: list[CardResponse]
    message: str | None = None


class ScoutReportResponse(BaseModel):
    player_id: str
    scout_report: str
