"""
샘플 시각 생성 모듈입니다.

영상 길이 D와 샘플링 레이트 R로부터 [0, D) 구간을 1/R 간격으로
나눈 샘플 시각 floor(D*R)개를 생성합니다. 순수 함수입니다.
"""

from __future__ import annotations

import math

from src.extraction import SAMPLE_TIMESCALE, SampleTime
from src.pipeline.errors import InvalidFrameRateError, NoFramesGeneratedError

# floor(D*R) 계산 시 부동소수점 오차 보정용 자릿수
_COUNT_ROUND_DIGITS = 9


def sample_count(duration_sec: float, rate: int) -> int:
    """[0, duration) 구간에 1/rate 간격으로 들어가는 샘플 수를 반환합니다."""
    if duration_sec <= 0 or rate <= 0:
        return 0
    # 0.7 * 10 = 7.000000000000001 같은 오차 때문에 반올림 후 floor
    return math.floor(round(duration_sec * rate, _COUNT_ROUND_DIGITS))


def generate_sample_times(
    duration_sec: float,
    rate: int,
    timescale: int = SAMPLE_TIMESCALE,
) -> list[SampleTime]:
    """
    샘플 시각 목록을 생성합니다.

    i번째 샘플 시각은 round(i * timescale / rate) tick입니다.
    rate가 timescale보다 크면 tick이 겹치지 않도록 timescale을 rate로 올립니다.

    파라미터:
        duration_sec: 영상 길이 (초, > 0)
        rate: 초당 샘플 수 (>= 1)
        timescale: 초당 tick 수

    반환값:
        list[SampleTime]: 오름차순 샘플 시각 목록

    에러:
        InvalidFrameRateError: rate <= 0
        NoFramesGeneratedError: 생성된 샘플이 없을 때
    """
    if rate <= 0:
        raise InvalidFrameRateError()

    # tick 간격이 1 미만이면 반올림 후 같은 시각이 중복됨
    timescale = max(timescale, rate)
    count = sample_count(duration_sec, rate)
    times = [SampleTime(round(i * timescale / rate), timescale) for i in range(count)]

    if not times:
        raise NoFramesGeneratedError()
    return times
