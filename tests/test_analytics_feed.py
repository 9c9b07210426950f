import asyncio

import pytest

from mktdash.services.analytics_feed import FeedCache, FeedUnavailableError, extract_rows

from conftest import FakeFeedClient

ROWS = [
    {"Tên": "X", "Email": "x@acme.io", "Team": "T1", "Ngày": "2024-05-01", "Doanh số": 1000},
    {"Tên": "", "Team": "T1"},
    {"Tên": "Y", "Email": "y@acme.io", "Team": "T2", "Ngày": "2024-05-01", "Doanh số": 800},
]


def test_extract_rows_shapes():
    assert extract_rows({"data": [{"a": 1}]}) == [{"a": 1}]
    assert extract_rows([{"a": 1}]) == [{"a": 1}]
    with pytest.raises(FeedUnavailableError):
        extract_rows({"rows": []})
    with pytest.raises(FeedUnavailableError):
        extract_rows("oops")


def test_cache_fetches_once_and_normalises():
    client = FakeFeedClient(ROWS)
    cache = FeedCache(client=client)
    assert not cache.loaded
    records = asyncio.run(cache.get_records())
    assert [r.person_name for r in records] == ["X", "Y"]
    assert cache.snapshot.raw_count == 3
    asyncio.run(cache.get_records())
    assert client.calls == 1
    asyncio.run(cache.get_records(force_refresh=True))
    assert client.calls == 2


def test_failed_refresh_keeps_previous_snapshot():
    client = FakeFeedClient(ROWS)
    cache = FeedCache(client=client)
    asyncio.run(cache.refresh())
    client.error = "upstream 502"
    with pytest.raises(FeedUnavailableError):
        asyncio.run(cache.refresh())
    assert cache.last_error == "upstream 502"
    assert len(cache.snapshot.records) == 2
    # Cached data is still served without another fetch
    assert len(asyncio.run(cache.get_records())) == 2


def test_unloaded_cache_propagates_failure():
    client = FakeFeedClient()
    client.error = "dns failure"
    cache = FeedCache(client=client)
    with pytest.raises(FeedUnavailableError):
        asyncio.run(cache.get_records())
    assert not cache.loaded
