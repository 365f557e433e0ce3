"""Canonical models shared across ingestion, rendering and export."""

from .player import PlayerRecord, RenderedCard, SharedAssets

__all__ = ["PlayerRecord", "RenderedCard", "SharedAssets"]
