"""
비디오 인코더 모듈입니다.

역할:
- 합성된 프레임을 고정 간격(1/30초)으로 출력 영상에 기록
- 매 프레임 append 전에 라이터 ready 상태를 대기 (backpressure 준수)
- 진행률(처리 프레임 / 전체 프레임)을 이벤트 루프에서 관찰자에게 전달
- 라이터 최종 상태가 성공이 아니면 ExportFailedError

상태 흐름:
    IDLE ──start──▶ WRITING ──mark_as_finished──▶ FINALIZING ──finish──▶ COMPLETED | FAILED

사용 예시:
    >>> encoder = VideoEncoder.from_config(config.encoder)
    >>> path = await encoder.encode(frames, Path("/tmp/output.mp4"), (1280, 720), progress=print)
"""

from __future__ import annotations

import asyncio
import logging
import threading
from fractions import Fraction
from pathlib import Path
from typing import Callable, Optional, Sequence

import cv2

from src.compositor import CompositedFrame
from src.config.schema import EncoderConfig
from src.encoder import FRAME_DURATION, OUTPUT_FPS, EncoderState, WriterStatus
from src.encoder.frame_writer import FrameWriter, OpenCVFrameWriter
from src.encoder.pixel_buffer import to_pixel_buffer
from src.pipeline import ProgressCallback, RunContext
from src.pipeline.errors import ExportFailedError, NoFramesError, PipelineError

logger = logging.getLogger(__name__)

# 실행마다 새 라이터를 생성하는 팩토리
WriterFactory = Callable[[], FrameWriter]


class VideoEncoder:
    """
    backpressure를 지원하는 라이터로 프레임을 인코딩하는 클래스입니다.

    append 루프는 asyncio.to_thread로 워커 스레드 1개에서 순차 실행되며,
    진행률은 loop.call_soon_threadsafe로 이벤트 루프에 전달됩니다.
    """

    def __init__(
        self,
        writer_factory: Optional[WriterFactory] = None,
        ready_timeout_sec: Optional[float] = 30.0,
    ) -> None:
        self._writer_factory = writer_factory or OpenCVFrameWriter
        self._ready_timeout_sec = ready_timeout_sec
        self._state = EncoderState.IDLE
        self._state_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: EncoderConfig,
        writer_factory: Optional[WriterFactory] = None,
    ) -> "VideoEncoder":
        """설정으로부터 인코더를 생성합니다. writer_factory가 없으면 OpenCV 라이터를 사용합니다."""
        if writer_factory is None:
            def writer_factory() -> FrameWriter:
                return OpenCVFrameWriter(
                    fourcc=config.fourcc,
                    fps=OUTPUT_FPS,
                    queue_size=config.writer_queue_size,
                )
        return cls(writer_factory=writer_factory, ready_timeout_sec=config.ready_timeout_sec)

    @property
    def state(self) -> EncoderState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: EncoderState) -> None:
        with self._state_lock:
            previous = self._state
            self._state = state
        logger.debug(f"인코더 상태 변경: {previous.value} → {state.value}")

    async def encode(
        self,
        frames: Sequence[CompositedFrame],
        output_path: Path,
        size: tuple[int, int],
        progress: Optional[ProgressCallback] = None,
        context: Optional[RunContext] = None,
    ) -> Path:
        """
        프레임을 output_path에 인코딩합니다.

        파라미터:
            frames: 입력 순서대로 기록할 합성 프레임
            output_path: 출력 파일 경로 (기존 파일은 먼저 삭제)
            size: 출력 크기 (width, height)
            progress: 진행률 관찰자 (0.0~1.0, 선택)
            context: 실행 컨텍스트 (취소 확인, 메트릭 기록용, 선택)

        반환값:
            Path: 완성된 출력 파일 경로

        에러:
            NoFramesError: frames가 비어있을 때 (WRITING에 진입하지 않음)
            ExportFailedError: 라이터 최종 상태가 성공이 아닐 때
            PipelineCancelledError: append 직전 취소 감지
        """
        self._set_state(EncoderState.IDLE)
        if not frames:
            raise NoFramesError()

        loop = asyncio.get_running_loop()

        def emit(value: float) -> None:
            if progress is not None:
                loop.call_soon_threadsafe(progress, value)

        return await asyncio.to_thread(self._encode_blocking, frames, output_path, size, emit, context)

    def _encode_blocking(
        self,
        frames: Sequence[CompositedFrame],
        output_path: Path,
        size: tuple[int, int],
        emit: Callable[[float], None],
        context: Optional[RunContext],
    ) -> Path:
        """워커 스레드에서 실행: 라이터를 열고 프레임을 순서대로 기록합니다."""
        # 같은 경로에 남은 이전 결과물은 덮어쓰기 전에 제거
        output_path.unlink(missing_ok=True)

        writer = self._writer_factory()
        try:
            writer.start(output_path, size)
        except (RuntimeError, OSError, cv2.error) as exc:
            self._set_state(EncoderState.FAILED)
            raise ExportFailedError(exc) from exc

        self._set_state(EncoderState.WRITING)
        logger.info(f"인코딩 시작: {output_path}, {size[0]}x{size[1]}, frames={len(frames)}")

        total = len(frames)
        processed = 0
        appended = 0
        dropped = 0

        try:
            for frame in frames:
                if context is not None:
                    context.raise_if_cancelled(f"before appending frame {frame.index}")

                buffer = to_pixel_buffer(frame.image, size)
                if buffer is None:
                    dropped += 1
                    logger.warning(f"프레임 {frame.index} 픽셀 버퍼 변환 실패, 제외")
                else:
                    if not writer.wait_until_ready(self._ready_timeout_sec):
                        cause = writer.error or TimeoutError(
                            f"라이터가 {self._ready_timeout_sec}초 동안 ready 상태가 되지 않았습니다"
                        )
                        raise ExportFailedError(cause)
                    writer.append(buffer, appended * FRAME_DURATION)
                    appended += 1

                processed += 1
                emit(processed / total)

        except PipelineError:
            self._abort(writer)
            raise
        except (RuntimeError, ValueError, cv2.error) as exc:
            # 기록 스레드가 먼저 실패했다면 그 원인을 보고
            cause = writer.error or exc
            self._abort(writer)
            raise ExportFailedError(cause) from exc
        finally:
            if context is not None:
                context.metrics.increment("frames_dropped", dropped)
                context.metrics.increment("frames_appended", appended)

        self._set_state(EncoderState.FINALIZING)
        writer.mark_as_finished()
        status = writer.finish()

        if status != WriterStatus.COMPLETED or appended == 0:
            error = writer.error
            logger.error(f"인코딩 실패: status={status.value}, appended={appended}, error={error}")
            self._abort(writer)
            raise ExportFailedError(error)

        self._set_state(EncoderState.COMPLETED)
        duration = Fraction(appended) * FRAME_DURATION
        logger.info(
            f"인코딩 완료: {output_path}, appended={appended}, dropped={dropped}, "
            f"duration={float(duration):.2f}s"
        )
        return output_path

    def _abort(self, writer: FrameWriter) -> None:
        self._set_state(EncoderState.FAILED)
        writer.cancel()
