"""
파이프라인 에러 정의 모듈입니다.

역할:
- 단계(stage) 단위 실패를 표현하는 예외 계층 정의
- 모든 예외는 PipelineError를 상속하여 오케스트레이터가 한 번에 포착
- 개별 항목(타임스탬프 1개, 마스크 1개) 실패는 예외로 전파하지 않고
  각 단계에서 흡수합니다. 단계 전체가 실패한 경우에만 아래 예외를 발생시킵니다.
"""

from __future__ import annotations

from typing import Optional, Sequence


class PipelineError(Exception):
    """파이프라인 단계 실패의 기본 클래스입니다."""

    default_message = "파이프라인 처리 중 오류가 발생했습니다."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


# =============================================================================
# 프레임 추출 단계
# =============================================================================

class InvalidFrameRateError(PipelineError):
    """샘플링 프레임레이트가 0 이하일 때 발생합니다."""
    default_message = "Frame rate must be greater than 0."


class AssetLoadingFailedError(PipelineError):
    """원본 영상의 메타데이터(길이, 해상도)를 읽지 못했을 때 발생합니다."""
    default_message = "Could not load video asset."


class InvalidDurationError(PipelineError):
    """원본 영상 길이가 0 이하일 때 발생합니다."""
    default_message = "Invalid video duration."


class NoFramesGeneratedError(PipelineError):
    """샘플링 결과 타임스탬프가 하나도 없을 때 발생합니다."""
    default_message = "No frames were generated."


class FrameExtractionFailedError(PipelineError):
    """
    디코딩 요청이 모두 실패했을 때 발생합니다.

    필드:
        causes: 개별 타임스탬프 디코딩 실패 원인 목록
    """

    def __init__(self, causes: Sequence[BaseException]) -> None:
        self.causes: list[BaseException] = list(causes)
        joined = ", ".join(str(cause) for cause in self.causes)
        super().__init__(f"Frame extraction failed: {joined}")


# =============================================================================
# 배경 제거 단계
# =============================================================================

class SegmentationModelLoadError(PipelineError):
    """세그멘테이션 모델(세션)을 생성하지 못했을 때 발생합니다."""
    default_message = "Could not load segmentation model."


# =============================================================================
# 인코딩 / 보관 단계
# =============================================================================

class NoFramesError(PipelineError):
    """인코더에 전달된 프레임이 없을 때 발생합니다."""
    default_message = "No frames"


class ExportFailedError(PipelineError):
    """
    라이터의 최종 상태가 성공이 아닐 때 발생합니다.

    필드:
        cause: 라이터가 보고한 원인 (없으면 None)
    """

    def __init__(self, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Export failed{detail}")


class PersistenceFailedError(PipelineError):
    """결과 영상 보관 호출 자체가 예외로 실패했을 때 발생합니다."""
    default_message = "Failed to save video to library."


class PipelineCancelledError(PipelineError):
    """실행 중 취소 요청이 감지되었을 때 발생합니다."""
    default_message = "Pipeline run was cancelled."
