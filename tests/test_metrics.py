from photo_gallery.image_engine.metrics import metrics


def test_counters_and_timings_snapshot():
    metrics.inc("fetcher.network_requests")
    metrics.inc("fetcher.network_requests", 2)
    with metrics.timed("catalog.fetch_page_duration"):
        pass
    with metrics.timed("catalog.fetch_page_duration"):
        pass

    snap = metrics.snapshot()
    assert snap["counters"]["fetcher.network_requests"] == 3
    timing = snap["timings"]["catalog.fetch_page_duration"]
    assert timing["count"] == 2
    assert timing["total"] >= timing["max"] >= 0.0
    assert metrics.count("missing") == 0

    metrics.reset()
    assert metrics.snapshot() == {"counters": {}, "timings": {}}


def test_timed_records_even_when_body_raises():
    try:
        with metrics.timed("fetcher.request_duration"):
            raise ValueError("boom")
    except ValueError:
        pass
    assert metrics.snapshot()["timings"]["fetcher.request_duration"]["count"] == 1


def test_counters_filter_by_prefix():
    metrics.inc("cache.memory_hit")
    metrics.inc("cache.miss", 2)
    metrics.inc("fetcher.network_requests")
    assert metrics.counters("cache.") == {"cache.memory_hit": 1, "cache.miss": 2}
