"""Root-level conftest.py: make the checkout importable without installing.

Tests import both ``nodegrid`` and ``tests.helpers``, so the repo root goes
first on sys.path and the working tree wins over any installed copy.
"""

import sys
from pathlib import Path

_root = str(Path(__file__).parent)
if _root not in sys.path:
    sys.path.insert(0, _root)
