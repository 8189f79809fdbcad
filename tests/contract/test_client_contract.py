"""
Resilience guarantees of the client stack, exercised over a respx-mocked API.

Covers:
1. A 401 triggers exactly one refresh and exactly one retry
2. A 429 carrying Retry-After waits that long, then retries once
3. Resolve results are served from cache until their TTL elapses
"""

import time

import httpx
import pytest

from scclient.client import SoundCloudClient
from scclient.resolve_cache import InMemoryCacheBackend, ResolveCache

HOST = "api.soundcloud.com"


class ManualClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
async def client(sc_config):
    async with SoundCloudClient(sc_config) as sc:
        yield sc


async def test_unauthorized_refreshes_once_and_retries_once(router, client, credential):
    me = router.route(method="GET", host=HOST, path="/me").mock(
        side_effect=[httpx.Response(401), httpx.Response(200, json={"id": 1})]
    )
    token = router.route(method="POST", host="secure.soundcloud.com", path="/oauth/token").mock(
        return_value=httpx.Response(200, json={"access_token": "fresh", "refresh_token": "next"})
    )

    assert await client.request("/me", credential) == {"id": 1}
    assert token.call_count == 1
    assert me.call_count == 2


async def test_rate_limit_hint_is_honoured_once(router, client, credential, no_sleep):
    me = router.route(method="GET", host=HOST, path="/me").mock(
        side_effect=[
            httpx.Response(429, headers={"Retry-After": "1"}),
            httpx.Response(200, json={"id": 1}),
        ]
    )

    assert await client.request("/me", credential) == {"id": 1}
    assert me.call_count == 2
    no_sleep.assert_awaited_once_with(1.0, None)


@pytest.mark.slow
async def test_rate_limit_hint_waits_in_real_time(router, client, credential):
    router.route(method="GET", host=HOST, path="/me").mock(
        side_effect=[
            httpx.Response(429, headers={"Retry-After": "1"}),
            httpx.Response(200, json={"id": 1}),
        ]
    )

    started = time.monotonic()
    await client.request("/me", credential)

    assert time.monotonic() - started >= 0.99


async def test_resolve_cache_expires_after_ttl(router, client, credential):
    resolve = router.route(method="GET", host=HOST, path="/resolve").mock(
        return_value=httpx.Response(200, json={"kind": "track", "id": 42})
    )
    clock = ManualClock()
    cache = ResolveCache(client, backend=InMemoryCacheBackend(clock=clock), ttl=300)

    first = await cache.resolve("https://soundcloud.com/a/b", credential)
    clock.now = 299.0
    second = await cache.resolve("https://www.soundcloud.com/a/b/", credential)

    assert first == second == {"kind": "track", "id": 42}
    assert resolve.call_count == 1

    clock.now = 301.0
    await cache.resolve("https://soundcloud.com/a/b", credential)

    assert resolve.call_count == 2
    assert resolve.calls.last.request.url.params["url"] == "https://soundcloud.com/a/b"
