"""Short narrative "scout reports" from a hosted text-generation model."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

import httpx

from cardforge.models import PlayerRecord, RenderedCard


logger = logging.getLogger("uvicorn.error")

_API_KEY_ENVS = ("CARDFORGE_SCOUT_API_KEY", "GEMINI_API_KEY", "API_KEY")
_MODEL_ENV = "CARDFORGE_SCOUT_MODEL"
_MODEL_DEFAULT = "gemini-2.5-flash"
_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
_TIMEOUT = 30.0

MISSING_KEY_MESSAGE = "API Key not configured. Unable to generate scout report."
UNAVAILABLE_MESSAGE = "Scouting report currently unavailable."
EMPTY_MESSAGE = "No report available."


def configured_api_key() -> Optional[str]:
    for name in _API_KEY_ENVS:
        value = os.getenv(name)
        if value:
            return value
    return None


def build_prompt(player: PlayerRecord) -> str:
    return (
        'Write a short, exciting, sports-commentator style "Scout Report" (max 30 words) '
        "for a cricket player with the following stats.\n"
        "Focus on their form and role. Make it sound like a trading card bio.\n\n"
        f"Name: {player.name}\n"
        f"Role: {player.role}\n"
        f"Batting Style: {player.batting_style}\n"
        f"Bowling Style: {player.bowling_style}\n"
        f"Form Rating (0-90): {player.form_number}\n"
    )


def _extract_text(payload: dict[str, Any]) -> str:
    parts = []
    for candidate in payload.get("candidates") or []:
        content = candidate.get("content") or {}
        for part in content.get("parts") or []:
            text = part.get("text")
            if text:
                parts.append(text)
        if parts:
            break
    return "".join(parts).strip()


async def generate_scout_report(
    player: PlayerRecord,
    *,
    client: httpx.AsyncClient | None = None,
    api_key: str | None = None,
    model: str | None = None,
) -> str:
    """Return a narrative for ``player``; failures degrade to a fixed message."""

    api_key = api_key or configured_api_key()
    if not api_key:
        return MISSING_KEY_MESSAGE

    url = _ENDPOINT.format(model=model or os.getenv(_MODEL_ENV) or _MODEL_DEFAULT)
    body = {"contents": [{"parts": [{"text": build_prompt(player)}]}]}
    headers = {"x-goog-api-key": api_key}

    try:
        if client is not None:
            response = await client.post(url, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=_TIMEOUT) as owned:
                response = await owned.post(url, json=body, headers=headers)
        response.raise_for_status()
        text = _extract_text(response.json())
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Scout report request for %s failed: %s", player.player_id, exc)
        return UNAVAILABLE_MESSAGE

    return text or EMPTY_MESSAGE


def attach_scout_report(card: RenderedCard, report: str) -> RenderedCard:
    return card.model_copy(update={"scout_report": report})
