"""Pytest configuration for remote-term tests."""

import sys
from pathlib import Path

# Allow running the suite without installing the package
src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src))
