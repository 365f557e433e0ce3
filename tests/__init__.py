"""Test package for cardforge."""

from __future__ import annotations

import sys
from pathlib import Path


# cardforge lives under src/, which is not on sys.path for a plain ``pytest``
# run from a checkout; add it so the suite works without ``pip install -e .``.
SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if SRC_ROOT.exists():
    src_str = str(SRC_ROOT)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)
