import unittest

from src.modsync.observability.metrics import (
    LoggerBackend,
    MetricsCollector,
    TimingStats,
    get_global_collector,
    metric_key,
)


class TestLoggerBackend(unittest.TestCase):
    def test_increment_counter(self):
        backend = LoggerBackend()
        backend.increment("test_counter", 1)
        backend.increment("test_counter", 2, tags={"status": "ok"})

        counters = backend.get_summary()["counters"]

        self.assertEqual(counters["test_counter"], 1)
        self.assertEqual(counters["test_counter[status=ok]"], 2)

    def test_tags_sorted_in_key(self):
        backend = LoggerBackend()
        backend.increment("c", tags={"status": "failed", "phase": "add"})

        self.assertIn("c[phase=add,status=failed]", backend.get_summary()["counters"])

    def test_timing(self):
        backend = LoggerBackend()
        backend.timing("test_timer", 100)
        backend.timing("test_timer", 200)

        timings = backend.get_summary()["timings"]

        self.assertEqual(timings["test_timer"]["count"], 2)
        self.assertEqual(timings["test_timer"]["avg"], 150.0)
        self.assertEqual(timings["test_timer"]["min"], 100)
        self.assertEqual(timings["test_timer"]["max"], 200)

    def test_reset(self):
        backend = LoggerBackend()
        backend.increment("c")
        backend.timing("t", 1.0)
        backend.reset()

        self.assertEqual(backend.get_summary(), {"counters": {}, "timings": {}})


class TestMetricsCollector(unittest.TestCase):
    def test_singleton(self):
        self.assertIs(get_global_collector(), get_global_collector())

    def test_count_entry(self):
        collector = MetricsCollector(backend="logger")
        collector.count_entry("disable", "failed")
        collector.count_entry("disable", "failed")
        collector.count_entry("add", "succeeded")

        counters = collector.get_summary()["counters"]

        self.assertEqual(counters["reconcile_entry_total[phase=disable,status=failed]"], 2)
        self.assertEqual(counters["reconcile_entry_total[phase=add,status=succeeded]"], 1)

    def test_record_latency(self):
        collector = MetricsCollector()
        collector.record_latency("overrides", 12.5)

        timings = collector.get_summary()["timings"]

        self.assertEqual(timings["reconcile_entry_duration_ms[phase=overrides]"]["count"], 1)

    def test_unknown_backend_falls_back(self):
        collector = MetricsCollector(backend="statsd")
        self.assertIsInstance(collector.backend, LoggerBackend)

    def test_empty_timing_stats(self):
        self.assertEqual(TimingStats().as_dict(), {"count": 0, "avg": 0.0, "min": 0.0, "max": 0.0})

    def test_metric_key_without_tags(self):
        self.assertEqual(metric_key("fetch_requests_total"), "fetch_requests_total")
        self.assertEqual(metric_key("fetch_requests_total", {}), "fetch_requests_total")
