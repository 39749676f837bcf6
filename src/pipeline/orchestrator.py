"""
배경 제거 파이프라인 오케스트레이터 모듈입니다.

역할:
- 실행마다 RunContext(설정, 세션, 메트릭, 취소 토큰)를 생성하여 각 단계에 전달
- 단계를 선형으로 연결하고 첫 번째 실패에서 즉시 중단
- 인코딩이 COMPLETED에 도달한 결과물만 보관 협력자에게 전달

처리 흐름:
    nominal fps 조회 (실패 시 조용히 중단, None 반환)
        ──▶ FrameExtractionPipeline
        ──▶ BackgroundRemovalStage
        ──▶ VideoEncoder
        ──▶ LibrarySaver.save
        ──▶ PipelineSuccess(path, saved) | PipelineFailure(error)

사용 예시:
    >>> pipeline = BackgroundRemovalPipeline(config)
    >>> result = await pipeline.run("input.mp4", progress=lambda p: print(f"{p:.0%}"))
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

from src.compositor.background_removal import BackgroundRemovalStage
from src.config.schema import AppConfig
from src.encoder.video_encoder import VideoEncoder, WriterFactory
from src.extraction.frame_decoder import FrameDecoder
from src.extraction.frame_extractor import FrameExtractionPipeline
from src.logging import StructuredLogger
from src.metrics.metrics_store import MetricsStore
from src.persistence.library_saver import LibrarySaver, PersistenceCollaborator
from src.pipeline import (
    PipelineFailure,
    PipelineResult,
    PipelineSuccess,
    ProgressCallback,
    RunContext,
)
from src.pipeline.errors import PersistenceFailedError, PipelineError, SegmentationModelLoadError
from src.segmentation import MaskGenerator
from src.source import VideoMetadata
from src.source.video_source import SourceVideo, probe_video

logger = logging.getLogger(__name__)


class BackgroundRemovalPipeline:
    """
    영상 배경 제거 파이프라인 전체를 실행하는 클래스입니다.

    협력자(마스크 생성기, 디코더, 라이터, 보관)는 생성자에서 주입할 수 있으며,
    생략하면 설정에 따라 기본 구현(rembg, OpenCV, 로컬 라이브러리)을 사용합니다.
    """

    def __init__(
        self,
        config: AppConfig,
        mask_generator: Optional[MaskGenerator] = None,
        decoder: Optional[FrameDecoder] = None,
        writer_factory: Optional[WriterFactory] = None,
        saver: Optional[PersistenceCollaborator] = None,
        probe: Callable[[Path], VideoMetadata] = probe_video,
        session_id: Optional[str] = None,
    ) -> None:
        self._config = config
        self._mask_generator = mask_generator
        self._decoder = decoder or FrameDecoder(max_workers=config.extraction.decode_workers)
        self._writer_factory = writer_factory
        self._probe = probe
        self._session_id = session_id or config.system.session_id or str(uuid.uuid4())
        self._saver = saver or LibrarySaver(config.persistence, session_id=self._session_id)

        self._cancel_event = threading.Event()
        self._context: Optional[RunContext] = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def context(self) -> Optional[RunContext]:
        """마지막(또는 현재) 실행의 컨텍스트입니다."""
        return self._context

    def cancel(self) -> None:
        """진행 중인 실행에 취소를 요청합니다. 다음 배치 경계 또는 append 직전에 반영됩니다."""
        logger.info("파이프라인 취소 요청")
        self._cancel_event.set()

    async def run(
        self,
        video_path: str | os.PathLike,
        progress: Optional[ProgressCallback] = None,
    ) -> Optional[PipelineResult]:
        """
        파이프라인을 1회 실행합니다.

        파라미터:
            video_path: 원본 영상 경로
            progress: 인코딩 진행률 관찰자 (0.0~1.0, 선택)

        반환값:
            Optional[PipelineResult]: 성공/실패 결과.
                원본 fps를 조회할 수 없으면 아무 단계도 실행하지 않고 None
        """
        self._cancel_event.clear()
        context = RunContext.create(self._config, self._session_id)
        context.cancel_event = self._cancel_event
        self._context = context

        source = SourceVideo(video_path, probe=self._probe)
        logger.info(f"파이프라인 시작: {source.path}, session={self._session_id}")

        nominal_fps = await source.load_nominal_frame_rate()
        if nominal_fps is None:
            logger.info(f"원본 fps를 조회할 수 없어 실행을 중단합니다: {source.path}")
            return None

        try:
            result: PipelineResult = await self._run_stages(source, nominal_fps, context, progress)
        except PipelineError as exc:
            logger.error(f"파이프라인 실패: {type(exc).__name__}: {exc}")
            result = PipelineFailure(error=exc)
        finally:
            context.metrics.log_summary()

        if isinstance(result, PipelineSuccess):
            logger.info(f"파이프라인 성공: {result.path}, saved={result.saved}")
        return result

    async def _run_stages(
        self,
        source: SourceVideo,
        nominal_fps: float,
        context: RunContext,
        progress: Optional[ProgressCallback],
    ) -> PipelineSuccess:
        """단계를 순서대로 실행합니다. 단계 실패는 PipelineError로 전파됩니다."""
        rate = self._resolve_rate(nominal_fps)
        metrics = context.metrics

        with _run_stage(metrics, "extraction"):
            frames = await FrameExtractionPipeline(self._decoder).extract(source, rate, context)

        metadata = await asyncio.to_thread(source.load_metadata)
        context.target_size = metadata.natural_size

        with _run_stage(metrics, "background_removal"):
            mask_generator = await self._get_mask_generator()
            composited = await BackgroundRemovalStage(mask_generator).run(frames, context)
        # 추출 단계의 프레임 버퍼는 여기서 더 이상 필요하지 않음
        del frames

        with _run_stage(metrics, "encoding"):
            encoder = VideoEncoder.from_config(self._config.encoder, self._writer_factory)
            output_path = await encoder.encode(
                composited,
                context.output_path,
                context.target_size,
                progress=progress,
                context=context,
            )

        with _run_stage(metrics, "persistence"):
            saved = await self._persist(output_path)

        return PipelineSuccess(path=output_path, saved=saved)

    def _resolve_rate(self, nominal_fps: float) -> int:
        """설정된 샘플링 레이트가 있으면 사용하고, 없으면 원본 fps를 반올림합니다."""
        configured = self._config.extraction.frame_rate
        if configured > 0:
            return configured
        return int(round(nominal_fps))

    async def _get_mask_generator(self) -> MaskGenerator:
        if self._mask_generator is None:
            from src.segmentation.mask_generator import RembgMaskGenerator

            # 모델 로드는 수 초가 걸리므로 이벤트 루프 밖에서 실행
            try:
                self._mask_generator = await asyncio.to_thread(
                    RembgMaskGenerator.from_config, self._config.segmentation
                )
            except Exception as exc:
                raise SegmentationModelLoadError(
                    f"Could not load segmentation model '{self._config.segmentation.model}': {exc}"
                ) from exc
        return self._mask_generator

    async def _persist(self, output_path: Path) -> bool:
        try:
            saved = await self._saver.save(output_path)
        except Exception as exc:
            raise PersistenceFailedError(f"Failed to save video to library: {exc}") from exc
        if not saved:
            logger.warning(f"라이브러리 저장 실패: {output_path}")
        return bool(saved)


@contextmanager
def _run_stage(metrics: MetricsStore, stage: str) -> Iterator[None]:
    """단계 소요시간을 기록하고 stage 필드가 붙은 시작/종료 로그를 남깁니다."""
    stage_log = StructuredLogger.for_stage(__name__, stage)
    stage_log.debug("단계 시작")
    with metrics.stage_timer(stage):
        yield
    stage_log.debug("단계 완료")
