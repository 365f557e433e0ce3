"""Persist and load CLI roster column profiles."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List


@dataclass
class ColumnProfile:
    """Extra header aliases per roster field, tried before the defaults."""

    aliases: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> "ColumnProfile":
        data = json.loads(path.read_text(encoding="utf-8"))
        raw = data.get("aliases", {})
        aliases = {
            key: [value] if isinstance(value, str) else list(value)
            for key, value in raw.items()
        }
        return cls(aliases=aliases)

    def save(self, path: Path) -> None:
        payload = {"aliases": self.aliases}
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def merged(self, other: Dict[str, List[str]]) -> "ColumnProfile":
        combined = {key: list(values) for key, values in self.aliases.items()}
        for key, values in other.items():
            existing = combined.setdefault(key, [])
            existing[:0] = [value for value in values if value not in existing]
        return ColumnProfile(aliases=combined)
