"""
Root pytest configuration.

Puts the repository root on sys.path so the infra, pipeline, web and cli
packages import without installation, and so test modules can share
helpers through `from tests.conftest import ...`.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))
