"""Pytest configuration for share-plane tests."""
import sys
from pathlib import Path

# Allow running from a checkout without `pip install -e .`.
_SRC = Path(__file__).parent.parent / 'src'
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))
