"""
파이프라인 모듈 패키지

공통 데이터 타입 정의:
- RunContext: 오케스트레이터가 소유하는 1회 실행 컨텍스트
- PipelineSuccess / PipelineFailure: 실행 최종 결과
- ProgressCallback: 진행률 관찰자 타입
"""

from __future__ import annotations

import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

from src.config.schema import AppConfig
from src.metrics.metrics_store import MetricsStore
from src.pipeline.errors import PipelineCancelledError, PipelineError

# 진행률 관찰자: 0.0~1.0 사이 값을 받습니다.
ProgressCallback = Callable[[float], None]

# 출력 경로가 설정되지 않았을 때 사용하는 고정 파일명
DEFAULT_OUTPUT_FILENAME = "output.mp4"


def resolve_output_path(config: AppConfig) -> Path:
    """설정된 출력 경로를 반환합니다. 비어있으면 <tempdir>/output.mp4를 사용합니다."""
    if config.encoder.output_path:
        return Path(config.encoder.output_path)
    return Path(tempfile.gettempdir()) / DEFAULT_OUTPUT_FILENAME


@dataclass
class RunContext:
    """
    1회 파이프라인 실행 컨텍스트입니다.

    전역 싱글턴 대신 오케스트레이터가 실행마다 생성하여 각 단계에 전달합니다.

    필드:
        config: 전체 애플리케이션 설정
        session_id: 세션 식별자 (로그/보관 파일명에 사용)
        output_path: 인코딩 결과물 경로
        metrics: 실행 메트릭 저장소
        cancel_event: 취소 요청 플래그 (배치 경계, append 직전에 확인)
        target_size: 출력 프레임 크기 (width, height), 원본 메타데이터 로드 후 설정
    """
    config: AppConfig
    session_id: str
    output_path: Path
    metrics: MetricsStore
    cancel_event: threading.Event = field(default_factory=threading.Event)
    target_size: Optional[tuple[int, int]] = None

    @classmethod
    def create(cls, config: AppConfig, session_id: str) -> "RunContext":
        """설정으로부터 새 실행 컨텍스트를 생성합니다."""
        return cls(
            config=config,
            session_id=session_id,
            output_path=resolve_output_path(config),
            metrics=MetricsStore(session_id=session_id),
        )

    def raise_if_cancelled(self, where: str) -> None:
        """
        취소 요청이 있으면 PipelineCancelledError를 발생시킵니다.

        파라미터:
            where: 취소가 감지된 위치 (로그/메시지용)
        """
        if self.cancel_event.is_set():
            raise PipelineCancelledError(f"Pipeline run was cancelled ({where}).")


@dataclass(frozen=True)
class PipelineSuccess:
    """
    파이프라인 성공 결과입니다.

    필드:
        path: 인코딩된 결과물 경로
        saved: 보관(라이브러리 저장) 성공 여부
    """
    path: Path
    saved: bool


@dataclass(frozen=True)
class PipelineFailure:
    """
    파이프라인 실패 결과입니다. 처음 실패한 단계의 에러만 담습니다.
    """
    error: PipelineError


PipelineResult = Union[PipelineSuccess, PipelineFailure]
