"""Make the checkout importable when pytest runs without an install.

Tests import ``shaur`` from the repository root rather than site-packages,
so the root is put at the front of ``sys.path`` once per session.
"""

from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = str(Path(__file__).resolve().parents[1])

if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)
