"""
backpressure를 지원하는 프레임 라이터 모듈입니다.

역할:
- cv2.VideoWriter 앞에 크기가 제한된 대기열을 두고 전용 스레드가 순서대로 기록
- 대기열에 여유가 있을 때만 ready 상태 (가득 차면 not-ready = backpressure)
- ready 대기는 threading.Condition으로 구현 (busy-wait 없음)
- 표시 시각(presentation time)이 엄격히 증가하는지 검증
- mark_as_finished() → finish()로 남은 프레임을 모두 기록한 뒤 최종 상태 반환

상태 흐름:
    UNKNOWN ──start()──▶ WRITING ──finish()──▶ COMPLETED | FAILED
                            └──────cancel()──▶ CANCELLED

사용 예시:
    >>> writer = OpenCVFrameWriter(fourcc="mp4v", fps=30, queue_size=8)
    >>> writer.start(Path("/tmp/output.mp4"), (640, 480))
    >>> if writer.wait_until_ready(timeout=5.0):
    ...     writer.append(buffer, Fraction(0))
    >>> writer.mark_as_finished()
    >>> status = writer.finish()
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from fractions import Fraction
from pathlib import Path
from typing import Optional, Protocol

import cv2
import numpy as np

from src.encoder import OUTPUT_FPS, WriterStatus

logger = logging.getLogger(__name__)


class FrameWriter(Protocol):
    """VideoEncoder가 사용하는 라이터 인터페이스입니다."""

    @property
    def status(self) -> WriterStatus:
        ...

    @property
    def error(self) -> Optional[BaseException]:
        ...

    @property
    def is_ready_for_more_media_data(self) -> bool:
        ...

    def start(self, path: Path, size: tuple[int, int]) -> None:
        ...

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        ...

    def append(self, buffer: np.ndarray, presentation_time: Fraction) -> None:
        ...

    def mark_as_finished(self) -> None:
        ...

    def finish(self) -> WriterStatus:
        ...

    def cancel(self) -> None:
        ...


class OpenCVFrameWriter:
    """
    cv2.VideoWriter 기반 backpressure 라이터입니다.

    append()는 대기열에 버퍼를 넣고 즉시 반환하며, 실제 인코딩은
    "frame_writer" 스레드가 수행합니다. 대기열이 queue_size에 도달하면
    is_ready_for_more_media_data가 False가 되고, 이 상태에서 append()를
    호출하면 RuntimeError가 발생합니다.
    """

    def __init__(self, fourcc: str = "mp4v", fps: int = OUTPUT_FPS, queue_size: int = 8) -> None:
        self._fourcc = fourcc
        self._fps = fps
        self._queue_size = queue_size

        self._condition = threading.Condition()
        self._pending: deque[np.ndarray] = deque()
        self._input_finished: bool = False
        self._cancelled: bool = False
        self._status: WriterStatus = WriterStatus.UNKNOWN
        self._error: Optional[BaseException] = None

        self._path: Optional[Path] = None
        self._size: Optional[tuple[int, int]] = None
        self._writer: Optional[cv2.VideoWriter] = None
        self._thread: Optional[threading.Thread] = None
        self._last_presentation_time: Optional[Fraction] = None
        self._written_count: int = 0

    # =========================================================================
    # 상태 조회
    # =========================================================================

    @property
    def status(self) -> WriterStatus:
        with self._condition:
            return self._status

    @property
    def error(self) -> Optional[BaseException]:
        with self._condition:
            return self._error

    @property
    def written_count(self) -> int:
        with self._condition:
            return self._written_count

    @property
    def is_ready_for_more_media_data(self) -> bool:
        with self._condition:
            return self._is_ready_locked()

    def _is_ready_locked(self) -> bool:
        return (
            self._status == WriterStatus.WRITING
            and not self._input_finished
            and len(self._pending) < self._queue_size
        )

    # =========================================================================
    # 공개 인터페이스
    # =========================================================================

    def start(self, path: Path, size: tuple[int, int]) -> None:
        """
        출력 파일을 열고 기록 스레드를 시작합니다.

        에러:
            RuntimeError: 이미 시작되었거나 cv2.VideoWriter를 열 수 없을 때
        """
        with self._condition:
            if self._status != WriterStatus.UNKNOWN:
                raise RuntimeError(f"라이터를 다시 시작할 수 없습니다 (status={self._status.value})")

        width, height = size
        path.parent.mkdir(parents=True, exist_ok=True)
        writer = cv2.VideoWriter(
            str(path),
            cv2.VideoWriter_fourcc(*self._fourcc),
            float(self._fps),
            (int(width), int(height)),
        )
        if not writer.isOpened():
            writer.release()
            raise RuntimeError(f"VideoWriter를 열 수 없습니다: {path} ({self._fourcc}, {width}x{height})")

        with self._condition:
            self._writer = writer
            self._path = path
            self._size = (int(width), int(height))
            self._status = WriterStatus.WRITING

        self._thread = threading.Thread(target=self._drain, name="frame_writer", daemon=True)
        self._thread.start()
        logger.info(f"프레임 라이터 시작: {path}, {width}x{height}, {self._fourcc}@{self._fps}fps")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        라이터가 다음 프레임을 받을 수 있을 때까지 대기합니다.

        반환값:
            bool: ready면 True, 타임아웃이거나 더 이상 받을 수 없는 상태면 False
        """
        with self._condition:
            self._condition.wait_for(
                lambda: self._is_ready_locked() or self._status != WriterStatus.WRITING,
                timeout=timeout,
            )
            return self._is_ready_locked()

    def append(self, buffer: np.ndarray, presentation_time: Fraction) -> None:
        """
        버퍼를 기록 대기열에 추가합니다.

        에러:
            RuntimeError: not-ready 상태에서 호출한 경우
            ValueError: 버퍼 크기가 맞지 않거나 표시 시각이 증가하지 않는 경우
        """
        with self._condition:
            if not self._is_ready_locked():
                raise RuntimeError("라이터가 not-ready 상태에서 append가 호출되었습니다")

            width, height = self._size
            if buffer.shape != (height, width, 3) or buffer.dtype != np.uint8:
                raise ValueError(
                    f"버퍼 형식 불일치: shape={buffer.shape}, dtype={buffer.dtype}, "
                    f"expected=({height}, {width}, 3) uint8"
                )
            if (
                self._last_presentation_time is not None
                and presentation_time <= self._last_presentation_time
            ):
                raise ValueError(
                    f"표시 시각이 증가하지 않습니다: {presentation_time} <= {self._last_presentation_time}"
                )

            self._last_presentation_time = presentation_time
            self._pending.append(buffer)
            self._condition.notify_all()

    def mark_as_finished(self) -> None:
        """더 이상 프레임을 추가하지 않음을 표시합니다."""
        with self._condition:
            self._input_finished = True
            self._condition.notify_all()

    def finish(self) -> WriterStatus:
        """
        남은 프레임을 모두 기록하고 파일을 닫은 뒤 최종 상태를 반환합니다.
        """
        self.mark_as_finished()
        self._join_and_release()

        with self._condition:
            if self._status == WriterStatus.WRITING:
                if self._error is not None:
                    self._status = WriterStatus.FAILED
                elif self._written_count == 0:
                    self._error = RuntimeError("기록된 프레임이 없습니다")
                    self._status = WriterStatus.FAILED
                else:
                    self._status = WriterStatus.COMPLETED
            status = self._status

        logger.info(f"프레임 라이터 종료: status={status.value}, frames={self.written_count}")
        return status

    def cancel(self) -> None:
        """
        기록을 중단하고 리소스를 해제한 뒤 불완전한 출력 파일을 삭제합니다.

        FAILED 상태에서도 cv2.VideoWriter 해제와 파일 삭제는 수행하며,
        상태는 FAILED로 유지합니다.
        """
        with self._condition:
            if self._status in (WriterStatus.COMPLETED, WriterStatus.CANCELLED):
                return
            self._cancelled = True
            self._pending.clear()
            self._input_finished = True
            if self._status != WriterStatus.FAILED:
                self._status = WriterStatus.CANCELLED
            self._condition.notify_all()

        self._join_and_release()
        if self._path is not None:
            self._path.unlink(missing_ok=True)
        logger.info("프레임 라이터 취소 완료")

    # =========================================================================
    # 기록 스레드
    # =========================================================================

    def _drain(self) -> None:
        """대기열의 버퍼를 순서대로 cv2.VideoWriter에 기록합니다."""
        while True:
            with self._condition:
                self._condition.wait_for(lambda: self._pending or self._input_finished)
                if self._cancelled or (not self._pending and self._input_finished):
                    return
                buffer = self._pending[0]

            try:
                self._writer.write(buffer)
            except cv2.error as exc:
                logger.error(f"프레임 기록 실패: {exc}")
                with self._condition:
                    self._error = exc
                    self._status = WriterStatus.FAILED
                    self._pending.clear()
                    self._condition.notify_all()
                return

            with self._condition:
                # 기록이 끝난 뒤에 대기열에서 제거해야 queue_size가 실제 적재량을 반영함
                if self._pending:
                    self._pending.popleft()
                self._written_count += 1
                self._condition.notify_all()

    def _join_and_release(self) -> None:
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._writer is not None:
            self._writer.release()
            self._writer = None
