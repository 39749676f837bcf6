"""
MetricsStore 단위 테스트

검증 조건:
- 카운터 증가, 알 수 없는 카운터 → KeyError
- 여러 스레드 동시 증가 시 누락 없음
- stage_timer는 예외가 나도 소요시간 기록
- 콘텐츠 손실이 있으면 WARNING 로그
"""

from __future__ import annotations

import logging
import threading
import time

import pytest

from src.metrics import FrameCounts, RunStats
from src.metrics.metrics_store import MetricsStore


@pytest.fixture
def store():
    return MetricsStore(session_id="metrics-test")


class TestCounters:
    def test_increment_default_amount(self, store):
        store.increment("frames_decoded")
        store.increment("frames_decoded")
        assert store.get_counts().frames_decoded == 2

    def test_increment_by_amount(self, store):
        store.increment("samples_requested", 30)
        assert store.get_counts().samples_requested == 30

    def test_unknown_counter_raises(self, store):
        with pytest.raises(KeyError):
            store.increment("frames_teleported")

    def test_get_counts_returns_copy(self, store):
        counts = store.get_counts()
        counts.frames_appended = 99
        assert store.get_counts().frames_appended == 0

    def test_concurrent_increments(self, store):
        def worker():
            for _ in range(1000):
                store.increment("frames_decoded")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get_counts().frames_decoded == 8000


class TestStageTimer:
    def test_records_duration(self, store):
        with store.stage_timer("extraction"):
            time.sleep(0.01)
        assert store.snapshot().stage_durations_ms["extraction"] >= 5.0

    def test_records_duration_on_exception(self, store):
        with pytest.raises(RuntimeError):
            with store.stage_timer("encoding"):
                raise RuntimeError("실패")
        assert "encoding" in store.snapshot().stage_durations_ms


class TestSnapshot:
    def test_snapshot_contents(self, store):
        store.increment("samples_requested", 10)
        store.increment("frames_appended", 8)
        stats = store.snapshot()

        assert isinstance(stats, RunStats)
        assert stats.session_id == "metrics-test"
        assert stats.content_loss == 2

    def test_no_loss_when_everything_appended(self):
        stats = RunStats(session_id="s", counts=FrameCounts(samples_requested=5, frames_appended=5))
        assert stats.content_loss == 0

    def test_log_summary_warns_on_content_loss(self, store, caplog):
        store.increment("samples_requested", 10)
        store.increment("frames_appended", 7)
        store.increment("frames_dropped", 3)

        with caplog.at_level(logging.INFO, logger="src.metrics.metrics_store"):
            stats = store.log_summary()

        assert stats.content_loss == 3
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "dropped=3" in warnings[0].getMessage()

    def test_log_summary_no_warning_without_loss(self, store, caplog):
        store.increment("samples_requested", 4)
        store.increment("frames_appended", 4)

        with caplog.at_level(logging.INFO, logger="src.metrics.metrics_store"):
            store.log_summary()

        assert not [r for r in caplog.records if r.levelno == logging.WARNING]
