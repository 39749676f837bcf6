"""
마스크 기반 알파 합성 모듈입니다.

역할:
- MaskPresent: 마스크 안쪽 픽셀은 원본 색 유지, 바깥쪽은 완전 투명(0,0,0,0)
- MaskAbsent: 원본 이미지를 그대로 반환 (실패 아님)

호출마다 프레임 크기의 배열만 새로 할당하고 상태를 남기지 않으므로
프레임 수가 늘어도 메모리 사용량이 누적되지 않습니다.
"""

from __future__ import annotations

import numpy as np

from src.segmentation import Mask, MaskAbsent, MaskPresent


def composite(image: np.ndarray, mask: Mask) -> np.ndarray:
    """
    이미지에 마스크를 적용합니다.

    파라미터:
        image: BGR uint8 배열 (height, width, 3)
        mask: MaskPresent 또는 MaskAbsent

    반환값:
        np.ndarray: MaskPresent면 BGRA (height, width, 4), MaskAbsent면 입력 그대로

    에러:
        ValueError: 마스크 크기가 이미지와 다를 때
        TypeError: 알 수 없는 마스크 타입
    """
    if isinstance(mask, MaskAbsent):
        return image

    if isinstance(mask, MaskPresent):
        return _blend_with_mask(image, mask.alpha)

    raise TypeError(f"지원하지 않는 마스크 타입: {type(mask).__name__}")


def _blend_with_mask(image: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    """빈(투명) 배경 위에 마스크로 원본을 합성합니다."""
    height, width = image.shape[:2]
    if alpha.shape[:2] != (height, width):
        raise ValueError(
            f"마스크 크기 {alpha.shape[1]}x{alpha.shape[0]}가 "
            f"이미지 크기 {width}x{height}와 다릅니다"
        )

    bgra = np.zeros((height, width, 4), dtype=np.uint8)
    inside = alpha > 0
    bgra[inside, :3] = image[inside, :3]
    bgra[..., 3] = alpha
    return bgra
