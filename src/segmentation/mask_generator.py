"""
rembg 기반 전경 마스크 생성 모듈입니다.

역할:
- rembg 세션(모델)을 실행당 1회만 생성하여 프레임마다 재사용
- BGR 프레임 → RGB PIL Image → rembg(only_mask=True) → uint8 마스크
- 마스크를 이미지 크기에 맞추고 임계값 미만은 배경(0)으로 정리
- 전경이 하나도 없으면 MaskAbsent 반환 (에러 아님)

사용 예시:
    >>> generator = RembgMaskGenerator(model_name="u2net", threshold=0.5)
    >>> mask = generator.segment(frame_bgr)
"""

from __future__ import annotations

import logging

import cv2
import numpy as np
from PIL import Image

from src.config.schema import SegmentationConfig
from src.segmentation import Mask, MaskAbsent, MaskPresent

logger = logging.getLogger(__name__)


class RembgMaskGenerator:
    """
    rembg 세그멘테이션 모델로 전경 마스크를 생성하는 클래스입니다.

    rembg는 onnxruntime 모델 로드 비용이 크므로 생성자에서 한 번만 import/로드합니다.
    """

    def __init__(self, model_name: str = "u2net", threshold: float = 0.5) -> None:
        from rembg import new_session, remove

        self._remove = remove
        self._session = new_session(model_name)
        self._model_name = model_name
        # 0.0~1.0 임계값 → uint8 단위
        self._threshold_u8 = int(round(threshold * 255))

        logger.info(f"RembgMaskGenerator 초기화 완료: model={model_name}, threshold={threshold}")

    @classmethod
    def from_config(cls, config: SegmentationConfig) -> "RembgMaskGenerator":
        return cls(model_name=config.model, threshold=config.mask_threshold)

    def segment(self, image: np.ndarray) -> Mask:
        """
        BGR 이미지에서 전경 마스크를 생성합니다.

        파라미터:
            image: BGR uint8 배열 (height, width, 3)

        반환값:
            Mask: 전경이 있으면 MaskPresent, 없으면 MaskAbsent
        """
        height, width = image.shape[:2]
        pil_image = Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
        mask_image = self._remove(pil_image, session=self._session, only_mask=True)
        raw_mask = np.asarray(mask_image.convert("L"), dtype=np.uint8)
        return mask_from_alpha(raw_mask, (width, height), self._threshold_u8)


def mask_from_alpha(raw_mask: np.ndarray, size: tuple[int, int], threshold_u8: int) -> Mask:
    """
    모델 출력 마스크를 이미지 크기에 맞춘 Mask로 변환합니다.

    - 크기가 다르면 (width, height)로 리사이즈
    - threshold_u8 미만 값은 0으로 정리
    - 남은 전경 픽셀이 없으면 MaskAbsent

    파라미터:
        raw_mask: uint8 2차원 마스크
        size: 목표 크기 (width, height)
        threshold_u8: 전경 판정 임계값 (0~255)
    """
    width, height = size
    if raw_mask.shape[:2] != (height, width):
        raw_mask = cv2.resize(raw_mask, (width, height), interpolation=cv2.INTER_LINEAR)

    alpha = np.where(raw_mask >= threshold_u8, raw_mask, 0).astype(np.uint8)
    if not alpha.any():
        return MaskAbsent()
    return MaskPresent(alpha=alpha)
