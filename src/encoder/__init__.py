"""
인코더 모듈 패키지

공통 데이터 타입:
- EncoderState: VideoEncoder 상태 머신 상태
- WriterStatus: 프레임 라이터 최종 상태
- OUTPUT_FPS / FRAME_DURATION: 출력 영상 고정 프레임 간격 (1/30초)
"""

from enum import Enum
from fractions import Fraction

# 출력 영상 고정 프레임레이트 (원본 샘플링 레이트와 무관)
OUTPUT_FPS = 30
FRAME_DURATION = Fraction(1, OUTPUT_FPS)


class EncoderState(str, Enum):
    """
    VideoEncoder 상태입니다.

    IDLE → WRITING → FINALIZING → COMPLETED | FAILED
    """
    IDLE = "idle"
    WRITING = "writing"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


class WriterStatus(str, Enum):
    """프레임 라이터 상태입니다."""
    UNKNOWN = "unknown"
    WRITING = "writing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
