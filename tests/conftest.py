import pytest

from revalx import clear_all, clear_tags


@pytest.fixture(autouse=True)
def _fresh_cache():
    """Every test starts with an empty registry and tag bus."""
    clear_all()
    clear_tags()
    yield
    clear_all()
    clear_tags()
