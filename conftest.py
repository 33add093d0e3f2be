"""
Root conftest: makes the src/ layout importable without an editable install.
"""

import sys
from pathlib import Path

# Ensure src on path
sys.path.insert(0, str(Path(__file__).parent / "src"))
