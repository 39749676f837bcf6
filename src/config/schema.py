"""
Video Background Remover 설정 스키마 정의 모듈입니다.

역할:
- Pydantic v2 BaseModel 기반으로 config.yaml의 전체 구조를 타입 안전하게 정의
- 각 섹션(system, extraction, segmentation, encoder, persistence)을
  독립적인 중첩 모델로 분리하여 유지보수성 확보
- 필드별 기본값, 허용 범위, 유효성 검증(validator)을 포함

사용 예시:
    >>> from src.config.schema import AppConfig
    >>> config = AppConfig(**yaml_data)
    >>> print(config.extraction.frame_rate)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

# 모듈 로거 설정
logger = logging.getLogger(__name__)


# =============================================================================
# system 섹션: 시스템 전역 설정
# =============================================================================

class SystemConfig(BaseModel):
    """
    시스템 전역 설정을 정의하는 모델입니다.

    역할:
    - 로깅 레벨 및 포맷 지정
    - 세션 식별자 관리
    """
    # 로그 출력 레벨
    log_level: str = Field(default="INFO", description="로그 레벨 (DEBUG | INFO | WARNING | ERROR)")
    # 로그 출력 포맷
    log_format: str = Field(default="text", description="로그 포맷 (json | text)")
    # 로그 파일 저장 디렉토리 경로
    log_dir: str = Field(default="output/logs", description="로그 저장 디렉토리")
    # 세션 고유 식별자 (빈 문자열이면 UUID로 자동 생성)
    session_id: str = Field(default="", description="세션 ID (비어있으면 UUID 자동생성)")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """로그 레벨이 유효한 Python 로깅 레벨인지 검증합니다."""
        allowed_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        # 대소문자 구분 없이 비교 후 대문자로 정규화
        upper_value = value.upper()
        if upper_value not in allowed_levels:
            error_message = f"log_level은 {allowed_levels} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return upper_value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        """로그 포맷이 지원되는 형식인지 검증합니다."""
        allowed_formats = ("json", "text")
        if value not in allowed_formats:
            error_message = f"log_format은 {allowed_formats} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return value


# =============================================================================
# extraction 섹션: 프레임 샘플링 및 디코딩 설정
# =============================================================================

class ExtractionConfig(BaseModel):
    """
    프레임 샘플링/디코딩 설정을 정의하는 모델입니다.

    역할:
    - 샘플링 프레임레이트 지정 (0이면 원본 영상의 nominal fps 사용)
    - 배치 디코딩 시 동시 디코더 스레드 수 제한
    """
    # 샘플링 프레임레이트 (초당 샘플 수, 0 = 원본 fps 반올림값 사용)
    frame_rate: int = Field(default=0, description="샘플링 프레임레이트 (0 = 원본 fps)")
    # 배치 내 동시 디코딩 스레드 최대 수
    decode_workers: int = Field(default=4, description="배치 디코딩 스레드 수")

    @field_validator("frame_rate")
    @classmethod
    def validate_frame_rate(cls, value: int) -> int:
        """샘플링 프레임레이트가 음수가 아닌지 검증합니다."""
        if value < 0:
            raise ValueError(f"frame_rate는 0 이상이어야 합니다. 입력값: {value}")
        return value

    @field_validator("decode_workers")
    @classmethod
    def validate_decode_workers(cls, value: int) -> int:
        """디코딩 스레드 수가 1 이상인지 검증합니다."""
        if value < 1:
            raise ValueError(f"decode_workers는 1 이상이어야 합니다. 입력값: {value}")
        return value


# =============================================================================
# segmentation 섹션: 전경 마스크 생성 설정
# =============================================================================

class SegmentationConfig(BaseModel):
    """
    전경 세그멘테이션(마스크 생성) 설정입니다.

    역할:
    - rembg 모델 선택
    - 마스크 이진화 임계값 지정
    """
    # rembg 모델 식별자 (u2net | u2netp | isnet-general-use | birefnet-general ...)
    model: str = Field(default="u2net", description="rembg 모델 이름")
    # 마스크 이진화 임계값 (0.0~1.0, 이 값 이상이면 전경)
    mask_threshold: float = Field(default=0.5, description="마스크 이진화 임계값 (0.0~1.0)")

    @field_validator("mask_threshold")
    @classmethod
    def validate_mask_threshold(cls, value: float) -> float:
        """임계값이 0.0~1.0 범위인지 검증합니다."""
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"mask_threshold는 0.0~1.0 범위여야 합니다. 입력값: {value}")
        return value


# =============================================================================
# encoder 섹션: 출력 비디오 인코딩 설정
# =============================================================================

class EncoderConfig(BaseModel):
    """
    출력 비디오 인코더 설정입니다.

    역할:
    - 출력 파일 경로 지정 (비어있으면 임시 디렉토리의 output.mp4)
    - 라이터 큐 크기로 backpressure 발생 시점 제어
    - 라이터 준비 대기 타임아웃 지정
    """
    # 출력 파일 경로 (빈 문자열이면 <tempdir>/output.mp4)
    output_path: str = Field(default="", description="출력 파일 경로 (비어있으면 임시 경로)")
    # FourCC 코덱 코드
    fourcc: str = Field(default="mp4v", description="FourCC 코덱 코드")
    # 라이터 내부 큐 최대 크기 (가득 차면 not-ready 상태)
    writer_queue_size: int = Field(default=8, description="라이터 큐 최대 프레임 수")
    # 라이터 준비 대기 타임아웃 (초)
    ready_timeout_sec: float = Field(default=30.0, description="라이터 준비 대기 타임아웃 (초)")

    @field_validator("writer_queue_size")
    @classmethod
    def validate_writer_queue_size(cls, value: int) -> int:
        """큐 크기가 1 이상인지 검증합니다."""
        if value < 1:
            raise ValueError(f"writer_queue_size는 1 이상이어야 합니다. 입력값: {value}")
        return value

    @field_validator("fourcc")
    @classmethod
    def validate_fourcc(cls, value: str) -> str:
        """FourCC 코드가 4글자인지 검증합니다."""
        if len(value) != 4:
            raise ValueError(f"fourcc는 4글자여야 합니다. 입력값: '{value}'")
        return value


# =============================================================================
# persistence 섹션: 결과물 보관 설정
# =============================================================================

class PersistenceConfig(BaseModel):
    """
    결과 영상을 보관할 라이브러리 디렉토리 설정입니다.
    """
    # 라이브러리 디렉토리 경로
    library_dir: str = Field(default="output/library", description="결과 영상 보관 디렉토리")
    # 파일명 접두어
    filename_prefix: str = Field(default="bgremoved", description="보관 파일명 접두어")


# =============================================================================
# 최상위 AppConfig: 모든 섹션을 통합하는 루트 모델
# =============================================================================

class AppConfig(BaseModel):
    """
    애플리케이션 전체 설정을 통합하는 최상위 모델입니다.

    역할:
    - config.yaml의 모든 섹션을 하나의 타입 안전한 객체로 통합
    - Pydantic v2 유효성 검증을 통해 설정 무결성 보장
    - 각 섹션이 누락된 경우 기본값으로 자동 생성

    사용 예시:
        >>> import yaml
        >>> with open("config.yaml") as f:
        ...     raw = yaml.safe_load(f)
        >>> config = AppConfig(**raw)
        >>> print(config.encoder.fourcc)
        'mp4v'
    """
    # 시스템 전역 설정
    system: SystemConfig = Field(default_factory=SystemConfig, description="시스템 설정")
    # 프레임 추출 설정
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig, description="프레임 추출 설정")
    # 마스크 생성 설정
    segmentation: SegmentationConfig = Field(default_factory=SegmentationConfig, description="세그멘테이션 설정")
    # 인코더 설정
    encoder: EncoderConfig = Field(default_factory=EncoderConfig, description="인코더 설정")
    # 결과물 보관 설정
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig, description="보관 설정")
