"""Pydantic models for API I/O."""

from .cards import CardBatchResponse, CardResponse, ScoutReportResponse
from .roster import RosterPreviewResponse

__all__ = [
    "CardBatchResponse",
    "CardResponse",
    "RosterPreviewResponse",
    "ScoutReportResponse",
]
