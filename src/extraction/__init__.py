"""
프레임 추출 모듈 패키지

공통 데이터 타입 정의:
- SampleTime: 고정 timescale 기반 유리수 샘플 시각
- FrameBatch: 함께 디코딩할 샘플 시각 묶음
- DecodedFrame: 디코딩된 프레임 컨테이너
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction

import numpy as np

# 샘플 시각 timescale (초당 tick 수)
SAMPLE_TIMESCALE = 600


@dataclass(frozen=True, order=True)
class SampleTime:
    """
    고정 timescale 기반 샘플 시각입니다.

    필드:
        value: tick 수
        timescale: 초당 tick 수 (기본 600)
    """
    value: int
    timescale: int = SAMPLE_TIMESCALE

    @property
    def seconds(self) -> Fraction:
        """초 단위 유리수 값입니다."""
        return Fraction(self.value, self.timescale)

    def __str__(self) -> str:
        return f"{float(self.seconds):.3f}s"


@dataclass(frozen=True)
class FrameBatch:
    """
    함께 디코딩할 샘플 시각 묶음입니다.

    필드:
        start_index: 첫 샘플의 전체 시퀀스 내 인덱스
        times: 샘플 시각 목록 (순서 유지)
    """
    start_index: int
    times: tuple[SampleTime, ...]

    def __len__(self) -> int:
        return len(self.times)


@dataclass
class DecodedFrame:
    """
    디코딩된 프레임 컨테이너입니다.

    필드:
        index: 전체 샘플 시퀀스 내 인덱스 (순서 복원 기준)
        time: 요청한 샘플 시각
        image: BGR 포맷 numpy 배열 (height, width, 3)
    """
    index: int
    time: SampleTime
    image: np.ndarray
