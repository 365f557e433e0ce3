"""Sequential batch rendering with per-card progress."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import AsyncIterator, Callable, List, Optional, Sequence

from cardforge.models import PlayerRecord, RenderedCard, SharedAssets
from cardforge.render.compositor import CardCompositor
from cardforge.render.errors import CompositionError, MissingAssetError


logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class CardOutcome:
    index: int
    total: int
    player: PlayerRecord
    card: Optional[RenderedCard] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.card is not None


def check_assets(assets: SharedAssets) -> None:
    missing = []
    if not assets.org_portrait.strip():
        missing.append("org portrait")
    if not assets.logo.strip():
        missing.append("logo")
    if missing:
        raise MissingAssetError(missing)


class CardBatch:
    """Finite, restartable async sequence of rendered cards.

    Each ``async for`` composes the players again from the start, one at a
    time and in input order, so callers can report progress after every card.
    """

    def __init__(
        self,
        players: Sequence[PlayerRecord],
        assets: SharedAssets,
        *,
        compositor: CardCompositor | None = None,
        stop_on_error: bool = False,
        rng_factory: Callable[[PlayerRecord], random.Random] | None = None,
    ):
        check_assets(assets)
        self.players = tuple(players)
        self.assets = assets
        self.compositor = compositor or CardCompositor()
        self.stop_on_error = stop_on_error
        self._rng_factory = rng_factory

    def __len__(self) -> int:
        return len(self.players)

    def __aiter__(self) -> AsyncIterator[CardOutcome]:
        return self._run()

    async def _run(self) -> AsyncIterator[CardOutcome]:
        total = len(self.players)
        for index, player in enumerate(self.players):
            rng = self._rng_factory(player) if self._rng_factory else None
            try:
                image = await self.compositor.compose(
                    player,
                    self.assets.org_portrait,
                    self.assets.logo,
                    rng=rng,
                )
            except CompositionError as exc:
                logger.error(
                    "Card %d/%d for %s (%s) failed at %s: %s",
                    index + 1,
                    total,
                    player.name,
                    player.player_id,
                    exc.stage,
                    exc,
                )
                if self.stop_on_error:
                    raise
                yield CardOutcome(index=index, total=total, player=player, error=str(exc))
                continue
            logger.debug("Rendered card %d/%d for %s", index + 1, total, player.player_id)
            yield CardOutcome(
                index=index,
                total=total,
                player=player,
                card=RenderedCard(player_id=player.player_id, image=image),
            )


async def render_cards(
    players: Sequence[PlayerRecord],
    assets: SharedAssets,
    *,
    compositor: CardCompositor | None = None,
    stop_on_error: bool = False,
    on_progress: Callable[[CardOutcome], None] | None = None,
) -> List[CardOutcome]:
    outcomes: List[CardOutcome] = []
    async for outcome in CardBatch(players, assets, compositor=compositor, stop_on_error=stop_on_error):
        outcomes.append(outcome)
        if on_progress is not None:
            on_progress(outcome)
    return outcomes
