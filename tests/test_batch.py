import base64
import random
from io import BytesIO

import pytest
from PIL import Image

from cardforge.models import PlayerRecord, SharedAssets
from cardforge.render import CardBatch, CardCompositor, CompositionError, MissingAssetError, render_cards


def _data_uri(color) -> str:
    buffer = BytesIO()
    Image.new("RGB", (32, 32), color).save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


ASSETS = SharedAssets(org_portrait=_data_uri((200, 0, 0)), logo=_data_uri((0, 0, 200)))


def _players(count: int) -> list[PlayerRecord]:
    return [
        PlayerRecord(player_id=f"player-{i}", name=f"Player {i}", role="Bowler", form_number=60 + i)
        for i in range(count)
    ]


class FlakyCompositor(CardCompositor):
    """Fails for the configured player ids, renders a tiny stand-in otherwise."""

    def __init__(self, failing: set[str]):
        super().__init__()
        self.failing = failing
        self.calls: list[str] = []

    async def compose(self, player, org_portrait_ref, logo_ref, *, rng=None):
        self.calls.append(player.player_id)
        if player.player_id in self.failing:
            raise CompositionError("surface exhausted", player_id=player.player_id, stage="surface")
        return f"png:{player.player_id}".encode()


@pytest.mark.anyio
async def test_batch_yields_one_card_per_player_in_order():
    players = _players(3)
    outcomes = [outcome async for outcome in CardBatch(players, ASSETS)]

    assert [o.player.player_id for o in outcomes] == ["player-0", "player-1", "player-2"]
    assert [o.card.player_id for o in outcomes] == ["player-0", "player-1", "player-2"]
    assert [(o.index, o.total) for o in outcomes] == [(0, 3), (1, 3), (2, 3)]
    assert all(o.ok and o.card.image.startswith(b"\x89PNG") for o in outcomes)


@pytest.mark.parametrize(
    "assets, missing",
    [
        (SharedAssets(org_portrait="", logo="logo.png"), "org portrait"),
        (SharedAssets(org_portrait="portrait.png", logo="   "), "logo"),
    ],
)
def test_batch_requires_shared_assets(assets, missing):
    with pytest.raises(MissingAssetError) as excinfo:
        CardBatch(_players(1), assets)

    assert missing in str(excinfo.value)
    assert "upload" in str(excinfo.value)


@pytest.mark.anyio
async def test_missing_assets_render_nothing():
    compositor = FlakyCompositor(set())
    with pytest.raises(MissingAssetError):
        await render_cards(_players(2), SharedAssets(org_portrait="", logo=""), compositor=compositor)
    assert compositor.calls == []


@pytest.mark.anyio
async def test_empty_roster_yields_nothing():
    assert [o async for o in CardBatch([], ASSETS)] == []


@pytest.mark.anyio
async def test_batch_can_be_iterated_again():
    compositor = FlakyCompositor(set())
    batch = CardBatch(_players(2), ASSETS, compositor=compositor)

    first = [o.card.image async for o in batch]
    second = [o.card.image async for o in batch]

    assert first == second == [b"png:player-0", b"png:player-1"]
    assert compositor.calls == ["player-0", "player-1", "player-0", "player-1"]
    assert len(batch) == 2


@pytest.mark.anyio
async def test_failed_card_is_reported_and_batch_continues(caplog):
    compositor = FlakyCompositor({"player-1"})

    with caplog.at_level("ERROR", logger="uvicorn.error"):
        outcomes = await render_cards(_players(3), ASSETS, compositor=compositor)

    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[1].card is None
    assert "surface exhausted" in outcomes[1].error
    assert "player-1" in caplog.text


@pytest.mark.anyio
async def test_stop_on_error_aborts_the_batch():
    compositor = FlakyCompositor({"player-1"})
    seen = []

    with pytest.raises(CompositionError) as excinfo:
        async for outcome in CardBatch(_players(3), ASSETS, compositor=compositor, stop_on_error=True):
            seen.append(outcome.player.player_id)

    assert excinfo.value.stage == "surface"
    assert seen == ["player-0"]
    assert compositor.calls == ["player-0", "player-1"]


@pytest.mark.anyio
async def test_progress_callback_sees_every_outcome():
    progress = []
    await render_cards(
        _players(2),
        ASSETS,
        compositor=FlakyCompositor(set()),
        on_progress=lambda o: progress.append(f"{o.index + 1}/{o.total}"),
    )
    assert progress == ["1/2", "2/2"]


@pytest.mark.anyio
async def test_rng_factory_makes_cards_reproducible():
    def factory(player):
        return random.Random(f"7:{player.player_id}")

    players = _players(1)
    first = [o.card.image async for o in CardBatch(players, ASSETS, rng_factory=factory)]
    second = [o.card.image async for o in CardBatch(players, ASSETS, rng_factory=factory)]

    assert first == second
