import importlib
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Ensure the package under test is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


class StubGateway:
    """In-memory catalog gateway; records every search it serves."""

    def __init__(self, movies=None, tv=None, details=None, fail=False):
        self.results = {"movie": list(movies or []), "tv": list(tv or [])}
        self.details = details or {}
        self.fail = fail
        self.searches = []

    def search_titles(self, query, media_type="movie", page=1):
        from morelike.catalog import CatalogError, SearchPage

        self.searches.append((query, media_type))
        if self.fail:
            raise CatalogError("catalog unavailable")
        return SearchPage(results=self.results[media_type], total_pages=1)

    def get_details(self, item_id, media_type="movie"):
        from morelike.catalog import CatalogDetails, CatalogError

        if self.fail:
            raise CatalogError("catalog unavailable")
        return self.details.get((media_type, item_id), CatalogDetails())


@pytest.fixture
def stub_gateway():
    return StubGateway


@pytest.fixture
def now():
    return datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "learning_state.json"


@pytest.fixture
def fresh_config(monkeypatch, tmp_path):
    """
    Reload config with a temporary state path; restores the defaults afterwards.
    """
    monkeypatch.setenv("MORELIKE_STATE", str(tmp_path / "state.json"))
    import morelike.config as config

    importlib.reload(config)
    yield config
    monkeypatch.undo()
    importlib.reload(config)
