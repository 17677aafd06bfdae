import os
import sys

import pytest

# Ensure repository root is on sys.path so tests can import "services", "domain", "api".
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)


@pytest.fixture
def export_dir(tmp_path, monkeypatch):
    """Redirect annotated PNG exports into a temp directory."""
    monkeypatch.setenv("RAILSCAN_EXPORT_DIR", str(tmp_path))
    return tmp_path
