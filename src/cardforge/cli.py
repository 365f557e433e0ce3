"""Command-line interface for generating player cards from a roster."""

from __future__ import annotations

import argparse
import asyncio
import json
import random
from pathlib import Path

from cardforge.config import get_layout
from cardforge.config_loader import ColumnProfile
from cardforge.export import DEFAULT_ARCHIVE_NAME, card_filename, export_cards_to_zip
from cardforge.ingest import RosterError, apply_photo_overrides, load_records, write_template
from cardforge.models import PlayerRecord, RenderedCard, SharedAssets
from cardforge.render import (
    AssetResolver,
    CardBatch,
    CardCompositor,
    CompositionError,
    MissingAssetError,
    build_local_image_map,
)
from cardforge.scout import attach_scout_report, generate_scout_report


IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp"}


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate player cards from a roster spreadsheet")
    parser.add_argument("roster", type=Path, nargs="?", help="Path to roster .xlsx or .csv")
    parser.add_argument("--portrait", default="", help="Organization portrait (path, URL or data URI)")
    parser.add_argument("--logo", default="", help="Logo image (path, URL or data URI)")
    parser.add_argument(
        "--images",
        type=Path,
        nargs="*",
        default=[],
        help="Player photos (files or directories) matched by filename against the roster",
    )
    parser.add_argument(
        "--photo",
        action="append",
        default=[],
        help="Per-player photo override (e.g., player-0=photos/kohli_new.png)",
    )
    parser.add_argument("--output", type=Path, default=Path(DEFAULT_ARCHIVE_NAME), help="Output ZIP path")
    parser.add_argument("--output-dir", type=Path, default=None, help="Also write each PNG into this directory")
    parser.add_argument("--layout", default="classic", help="Card layout name")
    parser.add_argument(
        "--column",
        action="append",
        default=[],
        help="Extra header alias for a roster field (e.g., name=Full Name)",
    )
    parser.add_argument("--load-profile", type=Path, help="Load column alias JSON", default=None)
    parser.add_argument("--save-profile", type=Path, help="Save column alias JSON", default=None)
    parser.add_argument("--stop-on-error", action="store_true", help="Abort the batch on the first failed card")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the background texture lines")
    parser.add_argument(
        "--scout-reports",
        type=Path,
        default=None,
        help="Fetch a scout report per card and write them to this JSON file",
    )
    parser.add_argument("--template", type=Path, default=None, help="Write an example roster to this path and exit")
    return parser.parse_args()


def _parse_columns(entries: list[str]) -> dict[str, list[str]]:
    mapping: dict[str, list[str]] = {}
    for entry in entries:
        if "=" not in entry:
            raise ValueError(f"Invalid column entry '{entry}', expected field=Header")
        key, value = entry.split("=", 1)
        mapping.setdefault(key.strip(), []).append(value.strip())
    return mapping


def _parse_photos(entries: list[str]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for entry in entries:
        if "=" not in entry:
            raise ValueError(f"Invalid photo entry '{entry}', expected player_id=path")
        player_id, reference = entry.split("=", 1)
        overrides[player_id.strip()] = reference.strip()
    return overrides


def _collect_images(entries: list[Path]) -> list[Path]:
    files: list[Path] = []
    for entry in entries:
        if entry.is_dir():
            files.extend(
                sorted(p for p in entry.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES)
            )
        elif entry.is_file():
            files.append(entry)
        else:
            print(f"Skipping missing image path {entry}")
    return files


async def _run(
    records: list[PlayerRecord],
    assets: SharedAssets,
    compositor: CardCompositor,
    *,
    stop_on_error: bool,
    seed: int | None,
) -> tuple[list[RenderedCard], list[str]]:
    rng_factory = None
    if seed is not None:
        rng_factory = lambda player: random.Random(f"{seed}:{player.player_id}")  # noqa: E731
    batch = CardBatch(
        records,
        assets,
        compositor=compositor,
        stop_on_error=stop_on_error,
        rng_factory=rng_factory,
    )
    cards: list[RenderedCard] = []
    failures: list[str] = []
    async for outcome in batch:
        prefix = f"[{outcome.index + 1}/{outcome.total}]"
        if outcome.card is not None:
            cards.append(outcome.card)
            print(f"{prefix} Rendered {outcome.player.name}")
        else:
            failures.append(outcome.player.name)
            print(f"{prefix} FAILED {outcome.player.name}: {outcome.error}")
    return cards, failures


async def _scout(cards: list[RenderedCard], records: list[PlayerRecord]) -> list[RenderedCard]:
    lookup = {record.player_id: record for record in records}
    updated: list[RenderedCard] = []
    for card in cards:
        report = await generate_scout_report(lookup[card.player_id])
        updated.append(attach_scout_report(card, report))
    return updated


def main() -> None:
    args = _parse_args()

    if args.template:
        write_template(args.template)
        print(f"Wrote roster template to {args.template}")
        return
    if args.roster is None:
        raise SystemExit("roster path is required")

    profile = ColumnProfile()
    if args.load_profile:
        profile = ColumnProfile.load(args.load_profile)
    profile = profile.merged(_parse_columns(args.column))
    if args.save_profile:
        profile.save(args.save_profile)
        print(f"Saved column profile to {args.save_profile}")

    try:
        records, report = load_records(args.roster, aliases=profile.aliases or None)
        records = apply_photo_overrides(records, _parse_photos(args.photo))
    except RosterError as exc:
        raise SystemExit(f"Could not read roster: {exc}") from exc
    print(f"Parsed {report.total_players} players from {args.roster}")
    if report.players_with_default_form:
        preview = ", ".join(report.players_with_default_form[:5])
        more = len(report.players_with_default_form) - 5
        suffix = f", +{more} more" if more > 0 else ""
        print(f"Form number defaulted to 50 for: {preview}{suffix}")

    image_files = _collect_images(args.images)
    if image_files:
        print(f"Loaded {len(image_files)} local player images")
    local_images = build_local_image_map(image_files)
    compositor = CardCompositor(
        get_layout(args.layout),
        resolver=AssetResolver(local_images),
    )
    assets = SharedAssets(org_portrait=args.portrait, logo=args.logo)

    try:
        cards, failures = asyncio.run(
            _run(records, assets, compositor, stop_on_error=args.stop_on_error, seed=args.seed)
        )
    except MissingAssetError as exc:
        raise SystemExit(str(exc)) from exc
    except CompositionError as exc:
        raise SystemExit(f"Card generation stopped: {exc}") from exc

    if args.scout_reports:
        cards = asyncio.run(_scout(cards, records))
        reports = {card.player_id: card.scout_report for card in cards}
        args.scout_reports.write_text(json.dumps(reports, indent=2), encoding="utf-8")
        print(f"Wrote scout reports to {args.scout_reports}")

    args.output.write_bytes(export_cards_to_zip(cards, records))
    print(f"Wrote {len(cards)} cards to {args.output}")

    if args.output_dir:
        args.output_dir.mkdir(parents=True, exist_ok=True)
        names = {record.player_id: record.name for record in records}
        for card in cards:
            (args.output_dir / card_filename(names.get(card.player_id))).write_bytes(card.image)
        print(f"Wrote PNG files to {args.output_dir}")

    if failures:
        print(f"{len(failures)} card(s) failed: {', '.join(failures)}")


if __name__ == "__main__":
    main()
