"""
샘플 시각 생성 / 배치 계획 단위 테스트

검증 조건:
- D>0, R>=1 이면 floor(D*R)개 샘플이 1/R 간격으로 [0, D) 구간에 생성
- R > 600 이어도 시각 중복 없음
- R=0 → InvalidFrameRateError, D=0.5/R=1 → NoFramesGeneratedError
- 1920x1080/R=30 → 배치 15, 640x480/R=10 → 배치 20
- 배치 분할 시 순서와 시작 인덱스 보존
"""

from __future__ import annotations

from fractions import Fraction

import pytest

from src.extraction import SAMPLE_TIMESCALE, SampleTime
from src.extraction.batch_planner import adaptive_batch_size, plan_batches
from src.extraction.time_sampler import generate_sample_times, sample_count
from src.pipeline.errors import InvalidFrameRateError, NoFramesGeneratedError


# =========================================================================
# generate_sample_times
# =========================================================================

class TestGenerateSampleTimes:
    @pytest.mark.parametrize(
        "duration, rate, expected",
        [
            (2.0, 5, 10),
            (1.0, 30, 30),
            (0.7, 10, 7),      # 0.7 * 10 = 7.000000000000001
            (3.25, 4, 13),
            (10.0, 1, 10),
            (1.99, 1, 1),
        ],
    )
    def test_count_is_floor_of_duration_times_rate(self, duration, rate, expected):
        times = generate_sample_times(duration, rate)
        assert len(times) == expected
        assert sample_count(duration, rate) == expected

    def test_spacing_is_one_over_rate(self):
        """연속 샘플 간격이 정확히 1/R 초여야 한다."""
        times = generate_sample_times(2.0, 5)
        seconds = [t.seconds for t in times]
        assert seconds[0] == 0
        assert all(b - a == Fraction(1, 5) for a, b in zip(seconds, seconds[1:]))

    def test_all_samples_inside_duration(self):
        duration = 1.5
        times = generate_sample_times(duration, 7)
        assert all(0 <= t.seconds < Fraction(duration) for t in times)

    def test_samples_strictly_increasing(self):
        times = generate_sample_times(4.0, 24)
        assert times == sorted(times)
        assert len(set(times)) == len(times)

    def test_default_timescale_is_600(self):
        times = generate_sample_times(1.0, 2)
        assert all(t.timescale == SAMPLE_TIMESCALE == 600 for t in times)
        assert [t.value for t in times] == [0, 300]

    def test_rate_above_timescale_keeps_exact_spacing(self):
        """R이 600을 넘어도 샘플 시각이 중복되지 않고 정확히 1/R 간격을 유지."""
        times = generate_sample_times(0.01, 1000)
        assert len(times) == 10
        assert len({t.seconds for t in times}) == 10
        assert [t.seconds for t in times] == [Fraction(i, 1000) for i in range(10)]

    def test_zero_rate_raises_invalid_frame_rate(self):
        with pytest.raises(InvalidFrameRateError):
            generate_sample_times(5.0, 0)

    def test_negative_rate_raises_invalid_frame_rate(self):
        with pytest.raises(InvalidFrameRateError):
            generate_sample_times(5.0, -3)

    def test_half_second_at_one_fps_generates_nothing(self):
        """0.5초 영상을 R=1로 샘플링하면 floor(0.5)=0개 → NoFramesGeneratedError."""
        with pytest.raises(NoFramesGeneratedError):
            generate_sample_times(0.5, 1)

    def test_zero_duration_generates_nothing(self):
        with pytest.raises(NoFramesGeneratedError):
            generate_sample_times(0.0, 10)


class TestSampleTime:
    def test_seconds_is_rational(self):
        assert SampleTime(150).seconds == Fraction(1, 4)

    def test_str_shows_seconds(self):
        assert str(SampleTime(300)) == "0.500s"

    def test_ordering(self):
        assert SampleTime(10) < SampleTime(20)


# =========================================================================
# adaptive_batch_size / plan_batches
# =========================================================================

class TestAdaptiveBatchSize:
    def test_1080p_at_30fps(self):
        assert adaptive_batch_size(1920, 1080, 30) == 15

    def test_480p_at_10fps(self):
        assert adaptive_batch_size(640, 480, 10) == 20

    def test_1080p_low_rate_has_floor_of_5(self):
        assert adaptive_batch_size(1920, 1080, 4) == 5

    def test_4k_uses_1080p_bucket(self):
        assert adaptive_batch_size(3840, 2160, 60) == 30

    def test_720p_bucket(self):
        assert adaptive_batch_size(1280, 720, 5) == 10
        assert adaptive_batch_size(1280, 720, 24) == 24

    def test_small_resolution_bucket(self):
        assert adaptive_batch_size(320, 240, 5) == 15
        assert adaptive_batch_size(320, 240, 30) == 60


class TestPlanBatches:
    def test_splits_into_contiguous_batches(self):
        times = generate_sample_times(2.0, 5)   # 10개
        batches = plan_batches(times, 4)
        assert [len(b) for b in batches] == [4, 4, 2]
        assert [b.start_index for b in batches] == [0, 4, 8]

    def test_concatenation_preserves_order(self):
        times = generate_sample_times(3.0, 7)
        batches = plan_batches(times, 5)
        flattened = [t for batch in batches for t in batch.times]
        assert flattened == times

    def test_batch_larger_than_input(self):
        times = generate_sample_times(1.0, 3)
        batches = plan_batches(times, 100)
        assert len(batches) == 1
        assert len(batches[0]) == 3

    def test_invalid_batch_size_raises(self):
        with pytest.raises(ValueError):
            plan_batches(generate_sample_times(1.0, 3), 0)
