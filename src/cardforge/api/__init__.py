"""REST API for the card generator."""

from __future__ import annotations

import base64
import json
import tempfile
from pathlib import Path

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from cardforge.api.schemas import (
    CardBatchResponse,
    CardResponse,
    RosterPreviewResponse,
    ScoutReportResponse,
)
from cardforge.export import DEFAULT_ARCHIVE_NAME, export_cards_to_zip
from cardforge.ingest import RosterError, apply_photo_overrides, load_records
from cardforge.models import PlayerRecord, SharedAssets
from cardforge.render import (
    AssetResolver,
    CardCompositor,
    CardOutcome,
    CompositionError,
    MissingAssetError,
    build_local_image_map,
    render_cards,
)
from cardforge.scout import generate_scout_report


def _parse_aliases(aliases_str: str | None) -> dict[str, list[str]]:
    if not aliases_str:
        return {}
    try:
        data = json.loads(aliases_str)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid column aliases JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="column aliases must be a JSON object")
    return {
        str(key): [value] if isinstance(value, str) else [str(v) for v in value]
        for key, value in data.items()
    }


def _parse_photo_overrides(overrides_str: str | None) -> dict[str, str]:
    if not overrides_str:
        return {}
    try:
        data = json.loads(overrides_str)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid photo overrides JSON: {exc}") from exc
    if not isinstance(data, dict) or not all(isinstance(value, str) for value in data.values()):
        raise HTTPException(status_code=400, detail="photo overrides must map player ids to image filenames")
    return {str(key): value for key, value in data.items()}


async def _write_temp(upload: UploadFile | None) -> Path | None:
    if upload is None:
        return None
    contents = await upload.read()
    if not contents:
        return None
    suffix = Path(upload.filename or "").suffix or ".csv"
    tmp = tempfile.NamedTemporaryFile(delete=False, suffix=suffix)
    try:
        tmp.write(contents)
        tmp.flush()
    finally:
        tmp.close()
    return Path(tmp.name)


async def _upload_to_data_url(upload: UploadFile | None) -> str:
    if upload is None:
        return ""
    contents = await upload.read()
    if not contents:
        return ""
    media_type = upload.content_type or "application/octet-stream"
    return f"data:{media_type};base64,{base64.b64encode(contents).decode('ascii')}"


async def _load_roster_upload(roster: UploadFile, column_aliases: str | None):
    roster_path = await _write_temp(roster)
    if roster_path is None:
        raise HTTPException(status_code=400, detail="roster file is empty")
    try:
        return load_records(roster_path, aliases=_parse_aliases(column_aliases) or None)
    except RosterError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    finally:
        roster_path.unlink(missing_ok=True)


def _outcome_to_response(outcome: CardOutcome) -> CardResponse:
    return CardResponse(
        player_id=outcome.player.player_id,
        name=outcome.player.name,
        data_url=outcome.card.data_url if outcome.card else None,
        error=outcome.error,
    )


def create_app() -> FastAPI:
    app = FastAPI(title="cardforge")

    async def _render(
        roster: UploadFile,
        portrait: UploadFile | None,
        logo: UploadFile | None,
        images: list[UploadFile] | None,
        column_aliases: str | None,
        photo_overrides: str | None,
        stop_on_error: bool,
    ) -> tuple[list[PlayerRecord], list[CardOutcome]]:
        records, _ = await _load_roster_upload(roster, column_aliases)
        try:
            records = apply_photo_overrides(records, _parse_photo_overrides(photo_overrides))
        except RosterError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        assets = SharedAssets(
            org_portrait=await _upload_to_data_url(portrait),
            logo=await _upload_to_data_url(logo),
        )
        uploads: list[tuple[str, bytes]] = []
        for upload in images or []:
            contents = await upload.read()
            if upload.filename and contents:
                uploads.append((upload.filename, contents))
        resolver = AssetResolver(build_local_image_map(uploads))
        compositor = CardCompositor(resolver=resolver)
        try:
            outcomes = await render_cards(
                records,
                assets,
                compositor=compositor,
                stop_on_error=stop_on_error,
            )
        except MissingAssetError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except CompositionError as exc:
            raise HTTPException(status_code=500, detail=f"Card generation stopped: {exc}") from exc
        return records, outcomes

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/roster/preview", response_model=RosterPreviewResponse)
    async def preview(
        roster: UploadFile = File(...),
        column_aliases: str | None = Form(None),
    ) -> RosterPreviewResponse:
        records, report = await _load_roster_upload(roster, column_aliases)
        return RosterPreviewResponse(
            total_players=report.total_players,
            players=records,
            players_missing_image=report.players_missing_image,
            players_with_default_form=report.players_with_default_form,
        )

    @app.post("/cards", response_model=CardBatchResponse)
    async def build_cards(
        roster: UploadFile = File(...),
        portrait: UploadFile | None = File(None),
        logo: UploadFile | None = File(None),
        images: list[UploadFile] | None = File(None),
        column_aliases: str | None = Form(None),
        photo_overrides: str | None = Form(None),
        stop_on_error: bool = Form(False),
    ) -> CardBatchResponse:
        _, outcomes = await _render(
            roster, portrait, logo, images, column_aliases, photo_overrides, stop_on_error
        )
        cards = [_outcome_to_response(outcome) for outcome in outcomes]
        failed = sum(1 for outcome in outcomes if not outcome.ok)
        message = f"{failed} card(s) could not be rendered" if failed else None
        return CardBatchResponse(
            total=len(outcomes),
            rendered=len(outcomes) - failed,
            failed=failed,
            cards=cards,
            message=message,
        )

    @app.post("/cards/archive")
    async def build_archive(
        roster: UploadFile = File(...),
        portrait: UploadFile | None = File(None),
        logo: UploadFile | None = File(None),
        images: list[UploadFile] | None = File(None),
        column_aliases: str | None = Form(None),
        photo_overrides: str | None = Form(None),
    ) -> Response:
        records, outcomes = await _render(
            roster, portrait, logo, images, column_aliases, photo_overrides, False
        )
        cards = [outcome.card for outcome in outcomes if outcome.card is not None]
        payload = export_cards_to_zip(cards, records)
        return Response(
            content=payload,
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{DEFAULT_ARCHIVE_NAME}"'},
        )

    @app.post("/scout-report", response_model=ScoutReportResponse)
    async def scout_report(player: PlayerRecord) -> ScoutReportResponse:
        report = await generate_scout_report(player)
        return ScoutReportResponse(player_id=player.player_id, scout_report=report)

    return app


__all__ = ["create_app"]
