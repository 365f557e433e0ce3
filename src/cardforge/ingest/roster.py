"""Helpers to load roster spreadsheets and emit canonical player records."""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel

from cardforge.models import PlayerRecord
from cardforge.models.player import DEFAULT_FORM_NUMBER, DEFAULT_STYLE


logger = logging.getLogger(__name__)


class RosterError(ValueError):
    """Raised when a roster file cannot be turned into player rows."""


DEFAULT_COLUMN_ALIASES: dict[str, list[str]] = {
    "name": ["Player Name", "Name", "Player"],
    "role": ["Role", "Position"],
    "batting_style": ["Batting Style", "Batting"],
    "bowling_style": ["Bowling Style", "Bowling"],
    "form_number": ["Form Number", "Form", "Rating", "OVR"],
    "image_source": ["Image URL", "Image", "Photo", "Picture", "Url", "Link"],
}

DEFAULT_NAME = "Unknown"
DEFAULT_ROLE = "All Rounder"

TEMPLATE_ROWS: list[dict[str, Any]] = [
    {
        "Player Name": "Virat Kohli",
        "Role": "Batsman",
        "Batting Style": "Right Handed Bat",
        "Bowling Style": "Right-arm medium",
        "Form Number": 96,
        "Image URL": "kohli.jpg",
    },
    {
        "Player Name": "Sample Bowler",
        "Role": "Bowler",
        "Batting Style": "Left Handed Bat",
        "Bowling Style": "Left-arm fast",
        "Form Number": 88,
        "Image URL": "bowler_1",
    },
]

_DRIVE_ID_PATTERNS = (
    re.compile(r"/file/d/([a-zA-Z0-9_-]+)"),
    re.compile(r"id=([a-zA-Z0-9_-]+)"),
    re.compile(r"/d/([a-zA-Z0-9_-]+)"),
)
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _header_token(value: str) -> str:
    return re.sub(r"\s+", "", value).lower()


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _lookup(row: Mapping[str, Any], candidates: Sequence[str]) -> Optional[str]:
    for key in candidates:
        if key in row and row[key] is not None:
            return _cell_text(row[key])

    normalized = {_header_token(str(key)): key for key in row.keys() if key is not None}
    for key in candidates:
        found = normalized.get(_header_token(key))
        if found is not None and row[found] is not None:
            return _cell_text(row[found])
    return None


class RosterRow(BaseModel):
    raw_name: Optional[str] = None
    raw_role: Optional[str] = None
    raw_batting_style: Optional[str] = None
    raw_bowling_style: Optional[str] = None
    raw_form_number: Optional[str] = None
    raw_image_source: Optional[str] = None

    @classmethod
    def from_mapping(
        cls,
        row: Mapping[str, Any],
        aliases: Mapping[str, Sequence[str]] | None = None,
    ) -> "RosterRow":
        aliases = aliases or DEFAULT_COLUMN_ALIASES

        def extract(key: str) -> Optional[str]:
            candidates = list(aliases.get(key, ()))
            for default in DEFAULT_COLUMN_ALIASES.get(key, ()):
                if default not in candidates:
                    candidates.append(default)
            return _lookup(row, candidates)

        return cls(
            raw_name=extract("name"),
            raw_role=extract("role"),
            raw_batting_style=extract("batting_style"),
            raw_bowling_style=extract("bowling_style"),
            raw_form_number=extract("form_number"),
            raw_image_source=extract("image_source"),
        )


def transform_drive_url(url: str) -> str:
    """Rewrite Google Drive share links to the thumbnail endpoint.

    Bare filenames (with a .jpg/.png extension or no dot at all) are kept
    as-is so they can be matched against locally supplied images.
    """

    clean = (url or "").strip()
    if not clean:
        return ""
    if not clean.startswith("http") and (
        clean.endswith(".jpg") or clean.endswith(".png") or "." not in clean
    ):
        return clean
    if "drive.google.com/thumbnail" in clean:
        return clean
    for pattern in _DRIVE_ID_PATTERNS:
        match = pattern.search(clean)
        if match:
            return f"https://drive.google.com/thumbnail?id={match.group(1)}&sz=w1000"
    return clean


def parse_form_number(raw: Optional[str]) -> int:
    """Parse a leading integer; missing, unparsable and zero fall back to 50."""

    if raw is None:
        return DEFAULT_FORM_NUMBER
    match = _LEADING_INT.match(raw)
    if not match:
        return DEFAULT_FORM_NUMBER
    value = int(match.group(1))
    return value or DEFAULT_FORM_NUMBER


def _read_csv(path: Path) -> List[dict[str, Any]]:
    with path.open(newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        return [dict(row) for row in reader]


def _read_xlsx(path: Path) -> List[dict[str, Any]]:
    from openpyxl import load_workbook

    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        if not workbook.sheetnames:
            raise RosterError("Excel file appears to be empty (no sheets found).")
        sheet = workbook[workbook.sheetnames[0]]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        columns = [_cell_text(cell) for cell in header]
        records: List[dict[str, Any]] = []
        for values in rows:
            if values is None or all(cell in (None, "") for cell in values):
                continue
            records.append(
                {col: value for col, value in zip(columns, values) if col}
            )
        return records
    finally:
        workbook.close()


def read_roster_table(path: Path) -> List[dict[str, Any]]:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return _read_csv(path)
    if suffix in {".xlsx", ".xlsm"}:
        return _read_xlsx(path)
    raise RosterError(f"Unsupported roster file type {suffix or path.name!r}; use .xlsx or .csv")


def load_roster(
    path: Path,
    *,
    aliases: Mapping[str, Sequence[str]] | None = None,
) -> List[RosterRow]:
    table = read_roster_table(path)
    if not table:
        raise RosterError("No data found in the first sheet. Please check the file content.")
    rows = [RosterRow.from_mapping(row, aliases) for row in table]
    logger.debug("Parsed %d roster rows from %s", len(rows), path)
    return rows


def rows_to_records(rows: Sequence[RosterRow]) -> List[PlayerRecord]:
    records: List[PlayerRecord] = []
    for index, row in enumerate(rows):
        records.append(
            PlayerRecord(
                player_id=f"player-{index}",
                name=row.raw_name or DEFAULT_NAME,
                role=row.raw_role or DEFAULT_ROLE,
                batting_style=row.raw_batting_style or DEFAULT_STYLE,
                bowling_style=row.raw_bowling_style or DEFAULT_STYLE,
                form_number=parse_form_number(row.raw_form_number),
                image_source=transform_drive_url(row.raw_image_source or ""),
            )
        )
    if not records:
        raise RosterError("Could not parse any players. Please ensure headers match the template.")
    return records


@dataclass(frozen=True)
class RosterReport:
    total_players: int
    players_missing_image: List[str]
    players_with_default_form: List[str]


def summarize_rows(rows: Sequence[RosterRow], records: Sequence[PlayerRecord]) -> RosterReport:
    missing_image = [record.name for record in records if not record.image_source]
    default_form = [
        record.name
        for row, record in zip(rows, records)
        if parse_form_number(row.raw_form_number) == DEFAULT_FORM_NUMBER
        and (row.raw_form_number or "").strip() != str(DEFAULT_FORM_NUMBER)
    ]
    return RosterReport(
        total_players=len(records),
        players_missing_image=missing_image,
        players_with_default_form=default_form,
    )


def load_records(
    path: Path,
    *,
    aliases: Mapping[str, Sequence[str]] | None = None,
) -> Tuple[List[PlayerRecord], RosterReport]:
    rows = load_roster(path, aliases=aliases)
    records = rows_to_records(rows)
    return records, summarize_rows(rows, records)


def write_template(path: Path, rows: Iterable[Mapping[str, Any]] = TEMPLATE_ROWS) -> None:
    """Write an example roster that the loader accepts."""

    rows = list(rows)
    headers = list(rows[0].keys())
    if path.suffix.lower() == ".csv":
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=headers)
            writer.writeheader()
            writer.writerows(rows)
        return

    from openpyxl import Workbook

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Template"
    sheet.append(headers)
    for row in rows:
        sheet.append([row.get(header) for header in headers])
    workbook.save(path)


def apply_photo_overrides(
    records: Sequence[PlayerRecord],
    overrides: Mapping[str, str],
) -> List[PlayerRecord]:
    """Return copies of ``records`` with ``manual_image`` set from ``overrides``.

    ``overrides`` maps player ids to an image reference. The roster's own
    ``image_source`` is left untouched.
    """

    known = {record.player_id for record in records}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise RosterError(f"Photo override for unknown player id(s): {', '.join(unknown)}")
    updated: List[PlayerRecord] = []
    for record in records:
        reference = (overrides.get(record.player_id) or "").strip()
        if reference:
            record = record.model_copy(update={"manual_image": reference})
        updated.append(record)
    return updated
