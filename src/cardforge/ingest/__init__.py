"""Input adapters that normalize raw roster spreadsheets."""

from .roster import (
    DEFAULT_COLUMN_ALIASES,
    RosterError,
    RosterReport,
    RosterRow,
    apply_photo_overrides,
    load_records,
    load_roster,
    parse_form_number,
    rows_to_records,
    transform_drive_url,
    write_template,
)

__all__ = [
    "DEFAULT_COLUMN_ALIASES",
    "RosterError",
    "RosterReport",
    "RosterRow",
    "apply_photo_overrides",
    "load_records",
    "load_roster",
    "parse_form_number",
    "rows_to_records",
    "transform_drive_url",
    "write_template",
]
