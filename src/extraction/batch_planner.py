"""
적응형 배치 크기 계산 모듈입니다.

해상도가 클수록 배치를 작게 잡아 동시에 메모리에 올라가는 디코딩 프레임 양을
해상도와 무관하게 비슷한 수준으로 유지합니다.
"""

from __future__ import annotations

from src.extraction import FrameBatch, SampleTime

# 해상도 구간 경계 (픽셀 수)
_AREA_1080P = 1920 * 1080
_AREA_720P = 1280 * 720


def adaptive_batch_size(width: int, height: int, rate: int) -> int:
    """
    해상도와 샘플링 레이트로 배치 크기를 계산합니다.

    - 1080p 이상: max(5, rate // 2)
    - 720p 이상: max(10, rate)
    - 그 외: max(15, rate * 2)

    예: 1920x1080, rate=30 → 15 / 640x480, rate=10 → 20
    """
    area = width * height
    if area >= _AREA_1080P:
        return max(5, rate // 2)
    if area >= _AREA_720P:
        return max(10, rate)
    return max(15, rate * 2)


def plan_batches(times: list[SampleTime], batch_size: int) -> list[FrameBatch]:
    """샘플 시각 목록을 batch_size 단위의 연속 배치로 나눕니다."""
    if batch_size < 1:
        raise ValueError(f"batch_size는 1 이상이어야 합니다: {batch_size}")
    return [
        FrameBatch(start_index=start, times=tuple(times[start:start + batch_size]))
        for start in range(0, len(times), batch_size)
    ]
