"""
원본 영상 모듈 패키지

공통 데이터 타입 정의:
- VideoMetadata: 원본 영상 메타데이터 컨테이너
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class VideoMetadata:
    """
    원본 영상 메타데이터 컨테이너입니다.

    필드:
        duration_sec: 영상 길이 (초)
        nominal_fps: 비디오 트랙의 nominal 프레임레이트 (0.0이면 알 수 없음)
        width: 프레임 가로 픽셀 수 (natural size)
        height: 프레임 세로 픽셀 수 (natural size)
        frame_count: 컨테이너가 보고한 총 프레임 수 (0이면 알 수 없음)
    """
    duration_sec: float
    nominal_fps: float
    width: int
    height: int
    frame_count: int = 0

    @property
    def natural_size(self) -> tuple[int, int]:
        """(width, height) 튜플을 반환합니다."""
        return (self.width, self.height)
