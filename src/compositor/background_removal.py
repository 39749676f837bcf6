"""
배경 제거 단계 모듈입니다.

역할:
- DecodedFrame 목록을 순서대로 MaskGenerator → composite에 통과시켜 CompositedFrame 생성
- 단일 워커 스레드에서 순차 처리 (프레임별 태스크를 만들지 않아 동시 메모리 사용 제한)
- 프레임 1장의 실패는 로그를 남기고 건너뜀 (단계 전체 실패 아님)
- 빈 입력은 빈 출력 (에러 아님)

사용 예시:
    >>> stage = BackgroundRemovalStage(mask_generator)
    >>> composited = await stage.run(decoded_frames, context)
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from src.compositor import CompositedFrame
from src.compositor.alpha_compositor import composite
from src.extraction import DecodedFrame
from src.pipeline import RunContext
from src.segmentation import MaskAbsent, MaskGenerator

logger = logging.getLogger(__name__)


class BackgroundRemovalStage:
    """
    디코딩된 프레임의 배경을 제거하는 단계 클래스입니다.

    MaskGenerator 구현(rembg 등)은 스레드 안전을 보장하지 않으므로
    모든 프레임을 하나의 워커 스레드에서 순차 처리합니다.
    """

    def __init__(self, mask_generator: MaskGenerator) -> None:
        self._mask_generator = mask_generator

    async def run(
        self,
        frames: Sequence[DecodedFrame],
        context: Optional[RunContext] = None,
    ) -> list[CompositedFrame]:
        """
        모든 프레임에 배경 제거를 적용합니다.

        파라미터:
            frames: 인덱스 순서의 디코딩 프레임
            context: 실행 컨텍스트 (메트릭 기록용, 선택)

        반환값:
            list[CompositedFrame]: 입력 순서를 유지한 합성 프레임 (실패 프레임 제외)
        """
        if not frames:
            logger.info("배경 제거 입력이 비어있습니다")
            return []

        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="background_removal") as executor:
            output = await loop.run_in_executor(executor, self._process_all, frames, context)

        logger.info(f"배경 제거 완료: 입력={len(frames)}, 출력={len(output)}")
        return output

    def _process_all(
        self,
        frames: Sequence[DecodedFrame],
        context: Optional[RunContext],
    ) -> list[CompositedFrame]:
        """워커 스레드에서 실행: 프레임을 순서대로 처리합니다."""
        output: list[CompositedFrame] = []

        for frame in frames:
            try:
                mask = self._mask_generator.segment(frame.image)
                image = composite(frame.image, mask)
            except Exception as exc:
                logger.warning(f"프레임 {frame.index} 배경 제거 실패, 건너뜀: {exc}")
                if context is not None:
                    context.metrics.increment("removal_failures")
                continue

            mask_applied = not isinstance(mask, MaskAbsent)
            if not mask_applied:
                logger.debug(f"프레임 {frame.index}: 전경 미검출, 원본 사용")
                if context is not None:
                    context.metrics.increment("masks_absent")

            output.append(CompositedFrame(index=frame.index, image=image, mask_applied=mask_applied))

        return output
