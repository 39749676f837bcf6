"""
원본 영상 핸들 및 OpenCV 기반 프레임 리더 모듈입니다.

역할:
- cv2.VideoCapture로 영상 길이/해상도/nominal fps 조회 (1회 로드 후 캐시)
- nominal fps 비동기 조회 (실패 시 None)
- 지정한 시각의 프레임을 정확히(허용 오차 0) 디코딩하는 FrameReader 제공

사용 예시:
    >>> source = SourceVideo("input.mp4")
    >>> metadata = source.load_metadata()
    >>> reader = OpenCVFrameReader(source.path, metadata)
    >>> image = reader.read_at(Fraction(1, 2))
    >>> reader.release()
"""

from __future__ import annotations

import asyncio
import logging
import math
import os
import threading
from fractions import Fraction
from pathlib import Path
from typing import Callable, Optional, Protocol

import cv2
import numpy as np

from src.pipeline.errors import AssetLoadingFailedError
from src.source import VideoMetadata

logger = logging.getLogger(__name__)

# 29.97fps(30000/1001) 같은 NTSC 계열 프레임레이트를 정확히 표현하기 위한 분모 상한
_FPS_MAX_DENOMINATOR = 1001


class FrameDecodeError(Exception):
    """단일 타임스탬프 디코딩 실패를 나타냅니다 (항목 단위, 치명적이지 않음)."""
    pass


class FrameReader(Protocol):
    """지정 시각의 프레임 1장을 디코딩하는 리더 인터페이스입니다."""

    def read_at(self, seconds: Fraction) -> np.ndarray:
        ...

    def release(self) -> None:
        ...


def probe_video(path: str | os.PathLike) -> VideoMetadata:
    """
    cv2.VideoCapture로 영상 메타데이터를 읽습니다.

    영상 길이는 frame_count / fps로 계산합니다. 둘 중 하나라도 알 수 없으면
    길이는 0.0이 되며, 이 경우 호출자가 InvalidDurationError로 처리합니다.

    에러:
        AssetLoadingFailedError: 파일을 열 수 없을 때
    """
    capture = cv2.VideoCapture(str(path))
    try:
        if not capture.isOpened():
            raise AssetLoadingFailedError(f"Could not load video asset: {path}")

        fps = float(capture.get(cv2.CAP_PROP_FPS) or 0.0)
        frame_count = int(capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
        height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
    finally:
        capture.release()

    duration_sec = frame_count / fps if fps > 0 and frame_count > 0 else 0.0
    return VideoMetadata(
        duration_sec=duration_sec,
        nominal_fps=fps,
        width=width,
        height=height,
        frame_count=frame_count,
    )


class SourceVideo:
    """
    원본 영상 핸들입니다.

    메타데이터는 처음 조회할 때 한 번만 probe하고 이후 캐시합니다.
    probe 함수는 테스트에서 주입할 수 있습니다.
    """

    def __init__(
        self,
        path: str | os.PathLike,
        probe: Callable[[Path], VideoMetadata] = probe_video,
    ) -> None:
        self._path = Path(path)
        self._probe = probe
        self._metadata: Optional[VideoMetadata] = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load_metadata(self) -> VideoMetadata:
        """
        영상 메타데이터를 반환합니다 (최초 1회 probe).

        에러:
            AssetLoadingFailedError: probe 실패 시
        """
        with self._lock:
            if self._metadata is None:
                try:
                    self._metadata = self._probe(self._path)
                except AssetLoadingFailedError:
                    raise
                except (OSError, cv2.error) as exc:
                    raise AssetLoadingFailedError(
                        f"Could not load video asset: {self._path} ({exc})"
                    ) from exc
                logger.debug(f"영상 메타데이터 로드: {self._path}, {self._metadata}")
            return self._metadata

    async def load_nominal_frame_rate(self) -> Optional[float]:
        """
        비디오 트랙의 nominal fps를 비동기로 조회합니다.

        반환값:
            Optional[float]: fps, 조회 실패 또는 0 이하이면 None
        """
        try:
            metadata = await asyncio.to_thread(self.load_metadata)
        except AssetLoadingFailedError as exc:
            logger.warning(f"nominal fps 조회 실패: {exc}")
            return None

        if metadata.nominal_fps <= 0:
            return None
        return metadata.nominal_fps


class OpenCVFrameReader:
    """
    cv2.VideoCapture 기반 정확 시각(exact-match) 프레임 리더입니다.

    요청 시각 t에 화면에 표시되는 프레임, 즉 floor(t * fps)번째 프레임을
    디코딩합니다. 가까운 키프레임으로 대체하지 않습니다.
    하나의 리더는 하나의 스레드에서만 사용해야 합니다.
    """

    def __init__(self, path: str | os.PathLike, metadata: VideoMetadata) -> None:
        self._path = Path(path)
        self._frame_count = metadata.frame_count
        self._fps = Fraction(metadata.nominal_fps).limit_denominator(_FPS_MAX_DENOMINATOR)
        self._capture = cv2.VideoCapture(str(self._path))
        if not self._capture.isOpened():
            self._capture.release()
            raise FrameDecodeError(f"영상 파일을 열 수 없습니다: {self._path}")

    def frame_index_at(self, seconds: Fraction) -> int:
        """요청 시각에 표시되는 프레임 인덱스를 계산합니다."""
        return math.floor(Fraction(seconds) * self._fps)

    def read_at(self, seconds: Fraction) -> np.ndarray:
        """
        요청 시각의 프레임을 BGR 배열로 디코딩합니다.

        에러:
            FrameDecodeError: 범위를 벗어나거나 디코딩에 실패한 경우
        """
        if self._fps <= 0:
            raise FrameDecodeError(f"fps를 알 수 없어 디코딩할 수 없습니다: {self._path}")

        frame_index = self.frame_index_at(seconds)
        if self._frame_count and frame_index >= self._frame_count:
            raise FrameDecodeError(
                f"요청 시각 {float(seconds):.3f}s가 영상 범위를 벗어났습니다 "
                f"(frame {frame_index}/{self._frame_count})"
            )

        self._capture.set(cv2.CAP_PROP_POS_FRAMES, frame_index)
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise FrameDecodeError(
                f"프레임 디코딩 실패: t={float(seconds):.3f}s, frame={frame_index}"
            )
        return frame

    def release(self) -> None:
        self._capture.release()
