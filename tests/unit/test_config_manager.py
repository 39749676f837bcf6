"""
ConfigManager / AppConfig 단위 테스트

검증 조건:
- YAML 로드 및 섹션 기본값
- VBR_ 환경변수 오버라이드 (타입 변환 포함)
- 잘못된 값 → ConfigValidationError, 파일 없음 → ConfigFileNotFoundError
- dot-notation get(), 런타임 오버라이드 (None 무시)
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from src.config.config_manager import (
    ConfigFileNotFoundError,
    ConfigLoadError,
    ConfigManager,
    ConfigValidationError,
)
from src.config.schema import AppConfig


@pytest.fixture(autouse=True)
def clear_vbr_env(monkeypatch):
    """실행 환경의 VBR_ 변수가 테스트에 섞이지 않도록 제거합니다."""
    for key in list(os.environ):
        if key.startswith("VBR_"):
            monkeypatch.delenv(key)


def _write_yaml(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoad:
    def test_load_full_file(self, tmp_path):
        path = _write_yaml(tmp_path, """
system:
  log_level: debug
extraction:
  frame_rate: 12
encoder:
  fourcc: avc1
""")
        config = ConfigManager().load(path)

        assert config.system.log_level == "DEBUG"
        assert config.extraction.frame_rate == 12
        assert config.encoder.fourcc == "avc1"
        # 누락된 섹션은 기본값
        assert config.segmentation.model == "u2net"
        assert config.persistence.filename_prefix == "bgremoved"

    def test_empty_file_uses_defaults(self, tmp_path):
        config = ConfigManager().load(_write_yaml(tmp_path, ""))
        assert config == AppConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigFileNotFoundError):
            ConfigManager().load(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigLoadError):
            ConfigManager().load(_write_yaml(tmp_path, "system: [unclosed"))

    def test_non_mapping_root(self, tmp_path):
        with pytest.raises(ConfigLoadError):
            ConfigManager().load(_write_yaml(tmp_path, "- a\n- b\n"))

    @pytest.mark.parametrize(
        "yaml_text",
        [
            "extraction:\n  frame_rate: -1\n",
            "extraction:\n  decode_workers: 0\n",
            "segmentation:\n  mask_threshold: 1.5\n",
            "encoder:\n  fourcc: h264x\n",
            "encoder:\n  writer_queue_size: 0\n",
            "system:\n  log_format: xml\n",
        ],
    )
    def test_invalid_values_rejected(self, tmp_path, yaml_text):
        with pytest.raises(ConfigValidationError):
            ConfigManager().load(_write_yaml(tmp_path, yaml_text))


class TestEnvOverrides:
    def test_int_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VBR_EXTRACTION_FRAME_RATE", "5")
        config = ConfigManager().load(_write_yaml(tmp_path, "extraction:\n  frame_rate: 24\n"))
        assert config.extraction.frame_rate == 5

    def test_float_and_string_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VBR_SEGMENTATION_MASK_THRESHOLD", "0.25")
        monkeypatch.setenv("VBR_SEGMENTATION_MODEL", "u2netp")
        config = ConfigManager().load_defaults()
        assert config.segmentation.mask_threshold == pytest.approx(0.25)
        assert config.segmentation.model == "u2netp"

    def test_multi_word_field(self, monkeypatch):
        monkeypatch.setenv("VBR_PERSISTENCE_LIBRARY_DIR", "/data/library")
        config = ConfigManager().load_defaults()
        assert config.persistence.library_dir == "/data/library"

    def test_unknown_section_ignored(self, monkeypatch):
        monkeypatch.setenv("VBR_UNKNOWN_FIELD", "1")
        assert ConfigManager().load_defaults() == AppConfig()


class TestGetAndOverrides:
    def test_dot_notation_get(self):
        manager = ConfigManager()
        manager.load_defaults()
        assert manager.get("encoder.fourcc") == "mp4v"
        assert manager.get("encoder.missing", "fallback") == "fallback"

    def test_get_before_load_raises(self):
        with pytest.raises(RuntimeError):
            ConfigManager().get("encoder.fourcc")

    def test_apply_overrides_skips_none(self):
        manager = ConfigManager()
        manager.load_defaults()
        config = manager.apply_overrides({
            "extraction.frame_rate": 8,
            "persistence.library_dir": None,
        })
        assert config.extraction.frame_rate == 8
        assert config.persistence.library_dir == "output/library"
        assert manager.config is config

    def test_invalid_override_keeps_previous_config(self):
        manager = ConfigManager()
        original = manager.load_defaults()
        with pytest.raises(ConfigValidationError):
            manager.apply_overrides({"extraction.frame_rate": -4})
        assert manager.config is original

    def test_validate_schema(self):
        manager = ConfigManager()
        assert manager.validate_schema({"extraction": {"frame_rate": 3}})
        assert not manager.validate_schema({"extraction": {"frame_rate": -3}})
