"""Lightweight REST client for the cardforge API."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import httpx


def _file_part(field: str, path: Path) -> tuple[str, tuple[str, bytes]]:
    return field, (path.name, path.read_bytes())


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the cardforge REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("roster", type=Path, help="Roster .xlsx or .csv")
    parser.add_argument("--portrait", type=Path, help="Organization portrait image")
    parser.add_argument("--logo", type=Path, help="Logo image")
    parser.add_argument("--images", type=Path, nargs="*", default=[], help="Player photos")
    parser.add_argument(
        "--photo",
        action="append",
        default=[],
        help="Per-player photo override, player_id=path (the file is uploaded with --images)",
    )
    parser.add_argument("--preview-only", action="store_true", help="Only parse the roster")
    parser.add_argument("--archive", type=Path, help="Download the ZIP archive to this path")
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url, timeout=120.0) as client:
        if args.preview_only:
            resp = client.post("/roster/preview", files=[_file_part("roster", args.roster)])
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return

        if args.portrait is None or args.logo is None:
            raise SystemExit("--portrait and --logo are required to generate cards")
        files = [
            _file_part("roster", args.roster),
            _file_part("portrait", args.portrait),
            _file_part("logo", args.logo),
        ]
        overrides: dict[str, str] = {}
        for entry in args.photo:
            player_id, _, raw_path = entry.partition("=")
            path = Path(raw_path.strip())
            overrides[player_id.strip()] = path.name
            files.append(_file_part("images", path))
        files.extend(_file_part("images", path) for path in args.images)
        data = {"photo_overrides": json.dumps(overrides)} if overrides else None

        if args.archive:
            resp = client.post("/cards/archive", files=files, data=data)
            resp.raise_for_status()
            args.archive.write_bytes(resp.content)
            print(f"Archive saved to {args.archive}")
            return

        resp = client.post("/cards", files=files, data=data)
        if resp.status_code == 400:
            raise SystemExit(resp.json().get("detail", "request rejected"))
        resp.raise_for_status()
        payload = resp.json()
        print(f"Rendered {payload['rendered']}/{payload['total']} cards")
        for card in payload["cards"]:
            status = "ok" if card["data_url"] else f"failed: {card['error']}"
            print(f"  {card['player_id']} {card['name']}: {status}")


if __name__ == "__main__":
    main()
