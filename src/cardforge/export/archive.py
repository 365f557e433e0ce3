"""ZIP packaging helpers for rendered cards."""

from __future__ import annotations

import re
import zipfile
from io import BytesIO
from typing import Mapping, Sequence

from cardforge.models import PlayerRecord, RenderedCard


DEFAULT_ARCHIVE_NAME = "player_cards.zip"


class ArchiveExportError(RuntimeError):
    """Raised when cards cannot be packaged into an archive."""


def card_filename(name: str | None) -> str:
    if not name:
        return "card.png"
    return re.sub(r"[^a-z0-9]", "_", name, flags=re.IGNORECASE) + ".png"


def _unique(filename: str, used: dict[str, int]) -> str:
    count = used.get(filename, 0) + 1
    used[filename] = count
    if count == 1:
        return filename
    stem, _, ext = filename.rpartition(".")
    return f"{stem}_{count}.{ext}"


def export_cards_to_zip(
    cards: Sequence[RenderedCard],
    players: Sequence[PlayerRecord] | Mapping[str, PlayerRecord],
) -> bytes:
    """Pack card PNGs into a ZIP named after each player's display name."""

    if isinstance(players, Mapping):
        lookup = dict(players)
    else:
        lookup = {player.player_id: player for player in players}

    buffer = BytesIO()
    used: dict[str, int] = {}
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for card in cards:
            if not card.image:
                raise ArchiveExportError(f"Card for {card.player_id} has no image data")
            player = lookup.get(card.player_id)
            filename = _unique(card_filename(player.name if player else None), used)
            archive.writestr(filename, card.image)
    return buffer.getvalue()


__all__ = [
    "ArchiveExportError",
    "DEFAULT_ARCHIVE_NAME",
    "card_filename",
    "export_cards_to_zip",
]
