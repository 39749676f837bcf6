"""
Video Background Remover 설정 관리 모듈입니다.

역할:
- config.yaml 로드 → VBR_ 환경변수 덮어쓰기 → Pydantic 검증
- 설정 파일이 없을 때 기본값 + 환경변수로 구성 (load_defaults)
- dot-notation 조회 (예: "extraction.frame_rate")
- 커맨드라인 인자 등 런타임 오버라이드

사용 예시:
    >>> manager = ConfigManager()
    >>> config = manager.load("config.yaml")
    >>> manager.apply_overrides({"extraction.frame_rate": 5})
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from src.config.schema import AppConfig

logger = logging.getLogger(__name__)

# 환경변수 오버라이드 접두사
ENV_PREFIX = "VBR_"


class ConfigLoadError(Exception):
    """설정 로드 실패의 기본 클래스입니다."""
    pass


class ConfigValidationError(ConfigLoadError):
    """스키마 검증 실패입니다."""
    pass


class ConfigFileNotFoundError(ConfigLoadError):
    """설정 파일이 존재하지 않습니다."""
    pass


class ConfigManager:
    """
    실행 1회분의 설정을 보관하는 매니저입니다.

    활성 설정은 RLock으로 보호되며, 검증에 실패한 로드/오버라이드는
    이전 활성 설정을 바꾸지 않습니다.
    """

    def __init__(self) -> None:
        self._config: Optional[AppConfig] = None
        self._source_path: Optional[Path] = None
        self._lock = threading.RLock()

    @property
    def config(self) -> Optional[AppConfig]:
        with self._lock:
            return self._config

    @property
    def source_path(self) -> Optional[Path]:
        """마지막으로 로드한 설정 파일 경로 (기본값 사용 시 None)."""
        with self._lock:
            return self._source_path

    def load(self, filepath: str | Path) -> AppConfig:
        """
        YAML 파일을 로드하여 활성 설정으로 만듭니다.

        에러:
            ConfigFileNotFoundError: 파일이 없을 때
            ConfigValidationError: 스키마 검증 실패
            ConfigLoadError: YAML 문법 오류, 읽기 실패
        """
        path = Path(filepath)
        if not path.is_file():
            raise ConfigFileNotFoundError(f"설정 파일을 찾을 수 없습니다: {path}")

        raw_config = self._apply_env_overrides(self._read_yaml(path))
        config = self._activate(self._validate_config(raw_config), path)
        logger.info(
            f"설정 로드: {path} (frame_rate={config.extraction.frame_rate}, "
            f"model={config.segmentation.model}, fourcc={config.encoder.fourcc})"
        )
        return config

    def load_defaults(self) -> AppConfig:
        """설정 파일 없이 기본값 + 환경변수로 활성 설정을 만듭니다."""
        config = self._activate(self._validate_config(self._apply_env_overrides({})), None)
        logger.info("설정 파일 없이 기본 설정 사용")
        return config

    def get(self, key: str, default: Any = None) -> Any:
        """
        dot-notation 키로 설정값을 조회합니다. 없는 키는 default를 반환합니다.

        에러:
            RuntimeError: 설정을 로드하기 전에 호출한 경우
        """
        value: Any = self._require_config()
        for part in key.split("."):
            if isinstance(value, dict):
                if part not in value:
                    return default
                value = value[part]
            elif hasattr(value, part):
                value = getattr(value, part)
            else:
                return default
        return value

    def apply_overrides(self, overrides: dict[str, Any]) -> AppConfig:
        """
        dot-notation 키로 지정된 값들을 현재 설정에 덮어써 새 설정을 만듭니다.

        Pydantic 모델을 dict로 덤프한 뒤 값을 교체하고 다시 검증합니다.
        값이 None인 항목은 무시합니다.

        파라미터:
            overrides: {"extraction.frame_rate": 5, ...}

        반환값:
            AppConfig: 오버라이드가 적용된 설정 객체

        에러:
            RuntimeError: 설정이 로드되지 않은 상태에서 호출 시
            ConfigValidationError: 오버라이드 결과가 스키마를 만족하지 않을 때
        """
        config_dict = self._require_config().model_dump()

        applied = 0
        for key, value in overrides.items():
            if value is None:
                continue
            section_name, _, field_name = key.partition(".")
            config_dict.setdefault(section_name, {})[field_name] = value
            applied += 1

        new_config = self._validate_config(config_dict)
        with self._lock:
            self._config = new_config

        if applied:
            logger.info(f"런타임 오버라이드 적용 완료: {applied}건")
        return new_config

    def validate_schema(self, raw_config: dict) -> bool:
        """
        딕셔너리 데이터가 AppConfig 스키마를 만족하는지 검증합니다.

        반환값:
            bool: 검증 통과 시 True, 실패 시 False
        """
        try:
            AppConfig.model_validate(raw_config)
        except ValidationError as exc:
            logger.warning(f"스키마 검증 실패: {exc.error_count()}건")
            return False
        return True

    # =========================================================================
    # 내부 메서드
    # =========================================================================

    def _require_config(self) -> AppConfig:
        with self._lock:
            if self._config is None:
                raise RuntimeError("설정이 로드되지 않았습니다. load() 또는 load_defaults()를 먼저 호출하세요.")
            return self._config

    def _activate(self, config: AppConfig, source_path: Optional[Path]) -> AppConfig:
        with self._lock:
            self._config = config
            self._source_path = source_path
        return config

    def _read_yaml(self, path: Path) -> dict:
        """YAML 파일을 dict로 읽습니다. 빈 파일은 빈 dict입니다."""
        try:
            text = path.read_text(encoding="utf-8")
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigLoadError(f"YAML 문법 오류: {path}: {exc}") from exc
        except OSError as exc:
            raise ConfigLoadError(f"설정 파일을 읽을 수 없습니다: {path}: {exc}") from exc

        if data is None:
            logger.warning(f"설정 파일이 비어있어 기본값을 사용합니다: {path}")
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(f"설정 파일 최상위는 매핑이어야 합니다: {type(data).__name__}")
        return data

    def _apply_env_overrides(self, raw_config: dict) -> dict:
        """
        VBR_<SECTION>_<FIELD> 환경변수로 설정값을 덮어씁니다.

        섹션 이름은 AppConfig에 정의된 섹션만 인정하며, 나머지는 필드 이름이 됩니다.
        예: VBR_EXTRACTION_FRAME_RATE=5 -> extraction.frame_rate = 5
        """
        sections = set(AppConfig.model_fields)
        applied: list[str] = []

        for env_key in sorted(os.environ):
            if not env_key.startswith(ENV_PREFIX):
                continue

            section_name, _, field_name = env_key[len(ENV_PREFIX):].lower().partition("_")
            if section_name not in sections or not field_name:
                logger.debug(f"환경변수 '{env_key}' 무시 (알 수 없는 설정 키)")
                continue

            section = raw_config.setdefault(section_name, {})
            if not isinstance(section, dict):
                logger.debug(f"환경변수 '{env_key}' 무시 (섹션 '{section_name}'이 매핑이 아님)")
                continue

            section[field_name] = self._convert_env_value(os.environ[env_key])
            applied.append(f"{section_name}.{field_name}")

        if applied:
            logger.info(f"환경변수 오버라이드 {len(applied)}건: {', '.join(applied)}")
        return raw_config

    def _convert_env_value(self, value: str) -> Any:
        """
        환경변수 문자열을 YAML 스칼라 규칙으로 변환합니다 ("5" -> 5, "0.5" -> 0.5, "true" -> True).

        빈 문자열이나 YAML로 해석할 수 없는 값은 문자열 그대로 사용합니다.
        """
        if not value:
            return value
        try:
            converted = yaml.safe_load(value)
        except yaml.YAMLError:
            return value
        # 리스트/매핑으로 해석되는 값은 설정 필드에 맞지 않으므로 원문 유지
        if isinstance(converted, (dict, list)) or converted is None:
            return value
        return converted

    def _validate_config(self, raw_config: dict) -> AppConfig:
        """
        딕셔너리를 AppConfig로 검증합니다.

        에러:
            ConfigValidationError: 검증 실패 시 (필드별 원인을 메시지에 포함)
        """
        try:
            return AppConfig(**raw_config)
        except ValidationError as validation_error:
            problems = [
                f"{'.'.join(str(loc) for loc in detail['loc'])}: {detail['msg']}"
                for detail in validation_error.errors()
            ]
            for problem in problems:
                logger.error(f"설정 검증 실패 - {problem}")
            raise ConfigValidationError(
                f"설정 스키마 검증 실패 ({len(problems)}건): {'; '.join(problems)}"
            ) from validation_error
