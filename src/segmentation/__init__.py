"""
전경 세그멘테이션 모듈 패키지

공통 데이터 타입 정의:
- MaskPresent / MaskAbsent: 마스크 생성 결과 합 타입 (Mask)
- MaskGenerator: 이미지 1장 → Mask 인터페이스
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

import numpy as np


@dataclass(frozen=True)
class MaskPresent:
    """
    전경이 검출된 경우의 마스크입니다.

    필드:
        alpha: uint8 (height, width) 배열. 0 = 배경, 255 = 전경.
               검출된 모든 전경 인스턴스의 합집합이며 이미지 크기와 같습니다.
    """
    alpha: np.ndarray


@dataclass(frozen=True)
class MaskAbsent:
    """전경이 검출되지 않은 경우입니다. 에러가 아니며 원본 이미지를 그대로 사용합니다."""
    pass


Mask = Union[MaskPresent, MaskAbsent]


class MaskGenerator(Protocol):
    """이미지 1장에서 전경 마스크를 생성하는 외부 기능 인터페이스입니다."""

    def segment(self, image: np.ndarray) -> Mask:
        ...
