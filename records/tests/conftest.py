import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters and the integrity payload live in the cache
    cache.clear()
    yield
    cache.clear()
