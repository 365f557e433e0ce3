"""Errors raised by the card rendering pipeline."""

from __future__ import annotations


class CompositionError(RuntimeError):
    """Raised when a card cannot be produced at all.

    ``stage`` is ``"surface"`` when no drawing surface could be allocated and
    ``"encode"`` when the finished surface could not be encoded.
    """

    def __init__(self, message: str, *, player_id: str, stage: str):
        super().__init__(message)
        self.player_id = player_id
        self.stage = stage


class MissingAssetError(ValueError):
    """Raised before composition when a required batch asset is empty."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            "Please upload the organization portrait and logo before generating "
            f"(missing: {', '.join(missing)})."
        )
