"""
메트릭 모듈 패키지

공통 데이터 타입:
- FrameCounts: 단계별 프레임 처리 건수
- RunStats: 1회 실행의 프레임 처리 건수 및 단계별 소요시간 스냅샷
"""

from dataclasses import dataclass, field


@dataclass
class FrameCounts:
    """
    단계별 프레임 처리 건수입니다.

    필드:
        samples_requested: 샘플링된 타임스탬프 수
        frames_decoded: 디코딩 성공 프레임 수
        decode_failures: 디코딩 실패 타임스탬프 수
        masks_absent: 전경이 검출되지 않아 원본을 그대로 사용한 프레임 수
        removal_failures: 배경 제거 중 예외로 건너뛴 프레임 수
        frames_dropped: 픽셀 버퍼 변환 실패로 인코딩에서 제외된 프레임 수
        frames_appended: 라이터에 기록된 프레임 수
    """
    samples_requested: int = 0
    frames_decoded: int = 0
    decode_failures: int = 0
    masks_absent: int = 0
    removal_failures: int = 0
    frames_dropped: int = 0
    frames_appended: int = 0


@dataclass
class RunStats:
    """
    1회 파이프라인 실행 통계 스냅샷입니다.

    필드:
        session_id: 세션 식별자
        counts: 단계별 프레임 처리 건수
        stage_durations_ms: 단계 이름 → 소요시간 (밀리초)
    """
    session_id: str
    counts: FrameCounts = field(default_factory=FrameCounts)
    stage_durations_ms: dict[str, float] = field(default_factory=dict)

    @property
    def content_loss(self) -> int:
        """샘플링했지만 최종 영상에 포함되지 못한 프레임 수입니다."""
        return max(0, self.counts.samples_requested - self.counts.frames_appended)
