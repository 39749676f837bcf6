"""
픽셀 버퍼 변환 모듈입니다.

합성된 프레임(BGR/BGRA/Gray)을 인코더 입력 포맷인 BGR24 연속 버퍼로 변환합니다.
투명 픽셀은 검정으로 지운 버퍼 위에 그려지므로 검정이 됩니다.
변환 실패 시 None을 반환하며, 호출자는 해당 프레임만 제외합니다.
"""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def to_pixel_buffer(image: np.ndarray, size: tuple[int, int]) -> Optional[np.ndarray]:
    """
    이미지를 목표 크기의 BGR24 버퍼로 변환합니다.

    파라미터:
        image: BGR (H, W, 3), BGRA (H, W, 4) 또는 Gray (H, W) uint8 배열
        size: 목표 크기 (width, height)

    반환값:
        Optional[np.ndarray]: C-contiguous uint8 (height, width, 3), 실패 시 None
    """
    width, height = size
    try:
        if width <= 0 or height <= 0:
            raise ValueError(f"잘못된 버퍼 크기: {width}x{height}")

        bgr = _to_bgr(image)
        if bgr.shape[:2] != (height, width):
            bgr = cv2.resize(bgr, (width, height), interpolation=cv2.INTER_AREA)
        return np.ascontiguousarray(bgr, dtype=np.uint8)

    except (MemoryError, cv2.error, ValueError) as exc:
        logger.warning(f"픽셀 버퍼 변환 실패: {exc}")
        return None


def _to_bgr(image: np.ndarray) -> np.ndarray:
    """채널 수에 따라 BGR로 변환합니다. BGRA는 검정 배경 위에 알파 합성합니다."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)

    if image.ndim != 3:
        raise ValueError(f"지원하지 않는 이미지 차원: {image.shape}")

    channels = image.shape[2]
    if channels == 3:
        return image.astype(np.uint8, copy=False)
    if channels == 4:
        alpha = image[..., 3:4].astype(np.uint16)
        color = image[..., :3].astype(np.uint16)
        return ((color * alpha + 127) // 255).astype(np.uint8)

    raise ValueError(f"지원하지 않는 채널 수: {channels}")
