"""
컴포지터 모듈 패키지

공통 데이터 타입:
- CompositedFrame: 배경 제거가 적용된 프레임
"""

from dataclasses import dataclass

import numpy as np


@dataclass
class CompositedFrame:
    """
    배경 제거가 적용된 프레임입니다.

    필드:
        index: 전체 샘플 시퀀스 내 인덱스
        image: 마스크 적용 시 BGRA (height, width, 4),
               마스크가 없으면 원본 BGR (height, width, 3) 그대로
        mask_applied: 마스크가 적용되었는지 여부
    """
    index: int
    image: np.ndarray
    mask_applied: bool
