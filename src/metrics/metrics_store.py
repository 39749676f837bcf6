"""
실행 메트릭 저장소 모듈입니다.

역할:
- 파이프라인 각 단계가 공유하는 thread-safe 카운터 저장소
- 샘플/디코딩/마스크/인코딩 단계별 프레임 처리 건수 집계
- 단계별 소요시간 측정 (stage_timer 컨텍스트 매니저)
- 실행 종료 시 스냅샷(RunStats) 반환 및 콘텐츠 손실 경고

사용 예시:
    >>> store = MetricsStore(session_id="abc")
    >>> store.increment("frames_decoded", 10)
    >>> with store.stage_timer("extraction"):
    ...     ...
    >>> stats = store.snapshot()
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import fields, replace
from typing import Iterator

from src.metrics import FrameCounts, RunStats

logger = logging.getLogger(__name__)

_COUNTER_NAMES = frozenset(f.name for f in fields(FrameCounts))


class MetricsStore:
    """
    1회 실행 동안의 메트릭을 관리하는 thread-safe 저장소입니다.

    모든 공개 메서드는 RLock으로 보호되어 디코딩 워커 스레드와
    인코딩 스레드에서 동시에 호출해도 안전합니다.
    """

    def __init__(self, session_id: str = "") -> None:
        self._lock = threading.RLock()
        self._session_id = session_id
        self._counts = FrameCounts()
        # 단계 이름 → 소요시간(ms)
        self._stage_durations_ms: dict[str, float] = {}

    # =========================================================================
    # 프레임 카운터
    # =========================================================================

    def increment(self, counter: str, amount: int = 1) -> None:
        """
        지정한 카운터를 amount만큼 증가시킵니다.

        에러:
            KeyError: 알 수 없는 카운터 이름
        """
        if counter not in _COUNTER_NAMES:
            raise KeyError(f"알 수 없는 카운터: {counter}")
        with self._lock:
            setattr(self._counts, counter, getattr(self._counts, counter) + amount)

    def get_counts(self) -> FrameCounts:
        """현재 카운터 값의 복사본을 반환합니다."""
        with self._lock:
            return replace(self._counts)

    # =========================================================================
    # 단계별 소요시간
    # =========================================================================

    @contextmanager
    def stage_timer(self, stage: str) -> Iterator[None]:
        """블록 실행 시간을 stage 이름으로 기록합니다 (예외 발생 시에도 기록)."""
        start_ns = time.perf_counter_ns()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            with self._lock:
                self._stage_durations_ms[stage] = elapsed_ms
            logger.debug(f"단계 소요시간: {stage}={elapsed_ms:.1f}ms")

    # =========================================================================
    # 스냅샷
    # =========================================================================

    def snapshot(self) -> RunStats:
        """현재까지의 실행 통계 스냅샷을 반환합니다."""
        with self._lock:
            return RunStats(
                session_id=self._session_id,
                counts=replace(self._counts),
                stage_durations_ms=dict(self._stage_durations_ms),
            )

    def log_summary(self) -> RunStats:
        """
        실행 통계를 로그로 출력하고 스냅샷을 반환합니다.

        샘플링한 프레임 중 최종 영상에서 빠진 프레임이 있으면 WARNING으로 남깁니다.
        """
        stats = self.snapshot()
        counts = stats.counts
        durations = ", ".join(
            f"{stage}={ms:.0f}ms" for stage, ms in stats.stage_durations_ms.items()
        )
        logger.info(
            f"실행 통계: samples={counts.samples_requested}, "
            f"decoded={counts.frames_decoded}, "
            f"masks_absent={counts.masks_absent}, "
            f"appended={counts.frames_appended}, "
            f"durations=[{durations}]"
        )
        if stats.content_loss > 0:
            logger.warning(
                f"콘텐츠 손실: 샘플 {counts.samples_requested}개 중 "
                f"{stats.content_loss}개 프레임이 결과 영상에 포함되지 않음 "
                f"(decode_failures={counts.decode_failures}, "
                f"removal_failures={counts.removal_failures}, "
                f"dropped={counts.frames_dropped})"
            )
        return stats
