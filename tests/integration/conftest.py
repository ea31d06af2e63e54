"""
Redis fixtures for integration tests.

The commit path is exercised through the real Lua script. When REDIS_URL is
set the tests run against that server; otherwise they fall back to fakeredis
(with lupa providing the Lua runtime) and are skipped if neither is present
or the fake runtime has no cjson.

Usage:
    REDIS_URL=redis://localhost:6379/15 pytest tests/integration -v
"""

from __future__ import annotations

import os
import uuid

import pytest

try:
    import fakeredis
except ImportError:
    fakeredis = None

try:
    import lupa
except ImportError:
    lupa = None

REDIS_URL_ENV = "REDIS_URL"


def _redis_available() -> tuple[bool, str]:
    if os.environ.get(REDIS_URL_ENV):
        return True, ""
    if fakeredis is None:
        return False, "REDIS_URL not set and fakeredis not installed"
    if lupa is None:
        return False, "REDIS_URL not set and lupa not installed (required for Lua)"
    return True, ""


@pytest.fixture
async def redis_factory():
    """
    Build RedisBackend instances that share one store.

    Every backend made by one factory uses the same namespace, so two
    services built from it see each other's writes.
    """
    available, reason = _redis_available()
    if not available:
        pytest.skip(reason)
    pytest.importorskip("redis")
    from parking_reservations.backends.redis import RedisBackend

    namespace = f"it-{uuid.uuid4().hex[:8]}"
    url = os.environ.get(REDIS_URL_ENV)
    server = None if url else fakeredis.FakeServer()
    created: list[RedisBackend] = []

    def build(**kwargs) -> RedisBackend:
        if url:
            backend = RedisBackend(redis_url=url, namespace=namespace, **kwargs)
        else:
            client = fakeredis.FakeAsyncRedis(server=server, decode_responses=True)
            backend = RedisBackend(redis_client=client, namespace=namespace, **kwargs)
        created.append(backend)
        return backend

    if server is not None:
        probe = fakeredis.FakeAsyncRedis(server=server, decode_responses=True)
        try:
            await probe.eval("return cjson.encode({1})", 0)
        except Exception as e:
            pytest.skip(f"fakeredis Lua runtime lacks cjson: {e}")
        finally:
            await probe.aclose()

    yield build

    if created:
        await created[0].clear()
    for backend in created:
        await backend.close()


@pytest.fixture
def redis_backend(redis_factory):
    return redis_factory()
