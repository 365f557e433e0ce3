import json

import httpx
import pytest

from cardforge.models import PlayerRecord, RenderedCard
from cardforge.scout import attach_scout_report, build_prompt, generate_scout_report
from cardforge.scout.service import EMPTY_MESSAGE, MISSING_KEY_MESSAGE, UNAVAILABLE_MESSAGE


PLAYER = PlayerRecord(
    player_id="player-0",
    name="Virat Kohli",
    role="Batsman",
    batting_style="Right Handed Bat",
    bowling_style="Right-arm medium",
    form_number=96,
)


@pytest.fixture(autouse=True)
def _no_api_key(monkeypatch):
    for name in ("CARDFORGE_SCOUT_API_KEY", "GEMINI_API_KEY", "API_KEY", "CARDFORGE_SCOUT_MODEL"):
        monkeypatch.delenv(name, raising=False)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_prompt_mentions_player_stats():
    prompt = build_prompt(PLAYER)
    assert "max 30 words" in prompt
    assert "Name: Virat Kohli" in prompt
    assert "Bowling Style: Right-arm medium" in prompt
    assert "Form Rating (0-90): 96" in prompt


@pytest.mark.anyio
async def test_missing_key_returns_fixed_message():
    def handler(request):  # pragma: no cover - must not be called
        raise AssertionError("no request expected without a key")

    async with _client(handler) as client:
        assert await generate_scout_report(PLAYER, client=client) == MISSING_KEY_MESSAGE


@pytest.mark.anyio
async def test_report_text_is_extracted(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "secret")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers["x-goog-api-key"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": "  Run machine in peak form.  "}]}}]},
        )

    async with _client(handler) as client:
        report = await generate_scout_report(PLAYER, client=client, model="test-model")

    assert report == "Run machine in peak form."
    assert seen["key"] == "secret"
    assert seen["url"].endswith("/models/test-model:generateContent")
    assert "Virat Kohli" in seen["body"]["contents"][0]["parts"][0]["text"]


@pytest.mark.anyio
@pytest.mark.parametrize(
    "response, expected",
    [
        (httpx.Response(500, json={"error": "boom"}), UNAVAILABLE_MESSAGE),
        (httpx.Response(200, content=b"not json"), UNAVAILABLE_MESSAGE),
        (httpx.Response(200, json={"candidates": []}), EMPTY_MESSAGE),
    ],
)
async def test_report_failures_degrade_to_messages(response, expected):
    async with _client(lambda request: response) as client:
        assert await generate_scout_report(PLAYER, client=client, api_key="secret") == expected


@pytest.mark.anyio
async def test_network_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    async with _client(handler) as client:
        assert await generate_scout_report(PLAYER, client=client, api_key="secret") == UNAVAILABLE_MESSAGE


def test_attach_scout_report_returns_new_card():
    card = RenderedCard(player_id="player-0", image=b"png")
    updated = attach_scout_report(card, "Hits it long.")

    assert updated.scout_report == "Hits it long."
    assert card.scout_report is None
    assert updated.image == card.image
