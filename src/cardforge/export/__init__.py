"""Output packaging (ZIP archives, etc.)."""

from .archive import DEFAULT_ARCHIVE_NAME, ArchiveExportError, card_filename, export_cards_to_zip

__all__ = [
    "ArchiveExportError",
    "DEFAULT_ARCHIVE_NAME",
    "card_filename",
    "export_cards_to_zip",
]
