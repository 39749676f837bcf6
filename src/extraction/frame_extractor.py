"""
프레임 추출 파이프라인 모듈입니다.

역할:
- 원본 영상 길이 확인 → 샘플 시각 생성 → 적응형 배치 크기 계산
- 배치를 엄격히 순차적으로 FrameDecoder에 전달 (이전 배치 합류 후 다음 배치 시작)
- 성공 프레임을 배치 순서 → 배치 내 순서로 이어붙이고, 실패 원인은 누적
- 전체에서 한 장이라도 성공하면 성공, 하나도 없으면 FrameExtractionFailedError

처리 흐름:
    SourceVideo ──▶ generate_sample_times ──▶ plan_batches
                         │
                         ▼
        [batch 0] ─▶ FrameDecoder ─▶ join ─▶ [batch 1] ─▶ ... ─▶ list[DecodedFrame]
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from src.extraction import DecodedFrame
from src.extraction.batch_planner import adaptive_batch_size, plan_batches
from src.extraction.frame_decoder import FrameDecoder
from src.extraction.time_sampler import generate_sample_times
from src.pipeline import RunContext
from src.pipeline.errors import (
    FrameExtractionFailedError,
    InvalidDurationError,
    InvalidFrameRateError,
)
from src.source.video_source import SourceVideo

logger = logging.getLogger(__name__)


class FrameExtractionPipeline:
    """
    샘플링부터 배치 디코딩까지 프레임 추출 전체를 담당하는 클래스입니다.
    """

    def __init__(self, decoder: Optional[FrameDecoder] = None) -> None:
        self._decoder = decoder or FrameDecoder()

    async def extract(
        self,
        source: SourceVideo,
        rate: int,
        context: Optional[RunContext] = None,
    ) -> list[DecodedFrame]:
        """
        원본 영상에서 rate(초당 샘플 수) 간격으로 프레임을 추출합니다.

        파라미터:
            source: 원본 영상 핸들
            rate: 초당 샘플 수 (>= 1)
            context: 실행 컨텍스트 (취소 확인, 메트릭 기록용, 선택)

        반환값:
            list[DecodedFrame]: 인덱스 오름차순 디코딩 프레임

        에러:
            InvalidFrameRateError: rate <= 0
            AssetLoadingFailedError: 메타데이터 조회 실패
            InvalidDurationError: 영상 길이 <= 0
            NoFramesGeneratedError: 샘플 시각이 없을 때
            FrameExtractionFailedError: 모든 프레임 디코딩 실패
            PipelineCancelledError: 배치 경계에서 취소 감지
        """
        if rate <= 0:
            raise InvalidFrameRateError()

        metadata = await asyncio.to_thread(source.load_metadata)
        if metadata.duration_sec <= 0:
            raise InvalidDurationError()

        times = generate_sample_times(metadata.duration_sec, rate)
        batch_size = adaptive_batch_size(metadata.width, metadata.height, rate)
        batches = plan_batches(times, batch_size)

        logger.info(
            f"프레임 추출 시작: duration={metadata.duration_sec:.2f}s, "
            f"rate={rate}, samples={len(times)}, "
            f"size={metadata.width}x{metadata.height}, "
            f"batch_size={batch_size}, batches={len(batches)}"
        )
        if context is not None:
            context.metrics.increment("samples_requested", len(times))

        all_frames: list[DecodedFrame] = []
        all_errors: list[BaseException] = []

        for batch_number, batch in enumerate(batches):
            if context is not None:
                context.raise_if_cancelled(f"before batch {batch_number}")

            try:
                result = await self._decoder.decode_batch(source, batch)
            except FrameExtractionFailedError as batch_error:
                logger.warning(
                    f"배치 {batch_number + 1}/{len(batches)} 전체 실패: "
                    f"{len(batch_error.causes)}개 타임스탬프"
                )
                all_errors.extend(batch_error.causes)
                continue

            all_frames.extend(result.frames)
            all_errors.extend(result.errors)
            logger.debug(
                f"배치 {batch_number + 1}/{len(batches)} 완료: "
                f"frames={len(result.frames)}, errors={len(result.errors)}"
            )

        if context is not None:
            context.metrics.increment("frames_decoded", len(all_frames))
            context.metrics.increment("decode_failures", len(all_errors))

        if not all_frames:
            raise FrameExtractionFailedError(all_errors)

        logger.info(f"프레임 추출 완료: 성공={len(all_frames)}, 실패={len(all_errors)}")
        return all_frames
