# File: tests/test_stats.py
from site_mapper.crawler.stats import CrawlObserver, StatsCollector


def test_accumulators():
    stats = StatsCollector(crawl_id="abc")
    stats.on_queued("https://example.com/")
    stats.on_queued("https://example.com/a")
    stats.on_filtered("https://other.com/")
    stats.on_persisted("https://example.com/")
    stats.on_failed("https://example.com/a", "HTTP 500")

    assert stats.queued == ["https://example.com/", "https://example.com/a"]
    assert stats.filtered == ["https://other.com/"]
    assert stats.persisted == ["https://example.com/"]
    assert stats.failed == {"https://example.com/a": "HTTP 500"}
    assert stats.counts() == {"enqueued": 2, "skipped": 1, "failed": 1, "persisted": 1}


def test_accessors_return_copies():
    stats = StatsCollector()
    stats.on_queued("https://example.com/")
    stats.queued.append("tampered")
    stats.failed["x"] = "y"
    assert stats.queued == ["https://example.com/"]
    assert stats.failed == {}


def test_summary_mentions_id_and_counts():
    stats = StatsCollector(crawl_id="crawl-42")
    stats.on_queued("u1")
    stats.on_filtered("u2")
    stats.on_filtered("u3")
    text = stats.summary()
    assert "crawl-42" in text
    assert "ENQUEUED:  1" in text
    assert "SKIPPED:   2" in text
    assert "FAILED:    0" in text
    assert "PERSISTED: 0" in text
    assert str(stats) == text


def test_unique_ids_and_protocol():
    assert StatsCollector().crawl_id != StatsCollector().crawl_id
    assert isinstance(StatsCollector(), CrawlObserver)
