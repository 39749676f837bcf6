"""
배치 단위 동시 프레임 디코딩 모듈입니다.

역할:
- 배치 내 타임스탬프마다 정확 시각 디코딩 요청을 동시에 발행 (fan-out)
- 모든 요청 완료를 기다린 뒤 요청 순서대로 결과 복원 (fan-in)
- 타임스탬프 단위 실패는 수집만 하고 배치 전체를 실패시키지 않음
- 배치가 끝나면 디코더 리소스(cv2.VideoCapture)를 모두 해제

사용 예시:
    >>> decoder = FrameDecoder(max_workers=4)
    >>> result = await decoder.decode_batch(source, batch)
    >>> len(result.frames), len(result.errors)
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable

from src.extraction import DecodedFrame, FrameBatch, SampleTime
from src.pipeline.errors import FrameExtractionFailedError
from src.source.video_source import FrameReader, OpenCVFrameReader, SourceVideo

logger = logging.getLogger(__name__)

# SourceVideo → FrameReader 생성 함수 타입
ReaderFactory = Callable[[SourceVideo], FrameReader]


def open_opencv_reader(source: SourceVideo) -> FrameReader:
    """기본 리더 팩토리: 원본 영상에 대한 OpenCVFrameReader를 엽니다."""
    return OpenCVFrameReader(source.path, source.load_metadata())


@dataclass
class BatchDecodeResult:
    """
    배치 디코딩 결과입니다.

    필드:
        frames: 디코딩 성공 프레임 (요청 순서)
        errors: 실패한 타임스탬프의 원인 목록
    """
    frames: list[DecodedFrame] = field(default_factory=list)
    errors: list[BaseException] = field(default_factory=list)


class FrameReaderPool:
    """
    배치 범위에서만 유효한 리더 풀입니다.

    cv2.VideoCapture는 스레드 간 공유가 안전하지 않으므로 워커 스레드마다
    리더를 하나씩 열고, 배치가 끝나면(with 블록 종료) 전부 해제합니다.
    """

    def __init__(self, source: SourceVideo, factory: ReaderFactory) -> None:
        self._source = source
        self._factory = factory
        self._local = threading.local()
        self._readers: list[FrameReader] = []
        self._lock = threading.Lock()

    def reader(self) -> FrameReader:
        """현재 스레드 전용 리더를 반환합니다 (없으면 생성)."""
        reader = getattr(self._local, "reader", None)
        if reader is None:
            reader = self._factory(self._source)
            self._local.reader = reader
            with self._lock:
                self._readers.append(reader)
        return reader

    def close(self) -> None:
        with self._lock:
            readers, self._readers = self._readers, []
        for reader in readers:
            reader.release()
        logger.debug(f"리더 {len(readers)}개 해제 완료")

    def __enter__(self) -> "FrameReaderPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FrameDecoder:
    """
    FrameBatch 하나를 동시에 디코딩하는 클래스입니다.

    배치 내 요청은 배치 전용 스레드 풀에서 동시에 실행되고
    asyncio.gather로 합류합니다. gather는 완료 순서와 무관하게 요청 순서대로
    결과를 돌려주므로 프레임 순서가 보존됩니다.
    """

    def __init__(
        self,
        max_workers: int = 4,
        reader_factory: ReaderFactory = open_opencv_reader,
    ) -> None:
        self._max_workers = max_workers
        self._reader_factory = reader_factory

    async def decode_batch(self, source: SourceVideo, batch: FrameBatch) -> BatchDecodeResult:
        """
        배치의 모든 타임스탬프를 동시에 디코딩합니다.

        반환값:
            BatchDecodeResult: 요청 순서대로 정렬된 성공 프레임과 실패 원인

        에러:
            FrameExtractionFailedError: 배치의 모든 타임스탬프가 실패한 경우
        """
        if len(batch) == 0:
            return BatchDecodeResult()

        loop = asyncio.get_running_loop()
        workers = min(self._max_workers, len(batch))

        with FrameReaderPool(source, self._reader_factory) as pool:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="frame_decoder") as executor:
                outcomes = await asyncio.gather(
                    *(
                        loop.run_in_executor(executor, _decode_one, pool, sample_time)
                        for sample_time in batch.times
                    ),
                    return_exceptions=True,
                )

        result = BatchDecodeResult()
        for offset, (sample_time, outcome) in enumerate(zip(batch.times, outcomes)):
            if isinstance(outcome, BaseException):
                logger.debug(f"타임스탬프 디코딩 실패: t={sample_time}, 원인={outcome}")
                result.errors.append(outcome)
            else:
                result.frames.append(
                    DecodedFrame(index=batch.start_index + offset, time=sample_time, image=outcome)
                )

        if not result.frames:
            raise FrameExtractionFailedError(result.errors)

        if result.errors:
            logger.warning(
                f"배치 부분 실패: start_index={batch.start_index}, "
                f"성공={len(result.frames)}, 실패={len(result.errors)}"
            )
        return result


def _decode_one(pool: FrameReaderPool, sample_time: SampleTime):
    """워커 스레드에서 실행: 스레드 전용 리더로 프레임 1장을 디코딩합니다."""
    return pool.reader().read_at(sample_time.seconds)
