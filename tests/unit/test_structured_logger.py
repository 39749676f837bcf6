"""
구조화 로깅 모듈 단위 테스트

검증 조건:
- pipeline.log 순환 파일 핸들러 생성 (10MB × 5)
- 세션 ID 결정 순서: 인자 → 설정 → UUID
- JSON 레코드에 timestamp, level, module, session_id, stage 포함
- text 포맷은 세션 ID 앞 8자리와 stage 표시
- StageLoggerAdapter가 stage 필드를 채움
- 서드파티 로거는 DEBUG가 아니면 WARNING으로 제한
"""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO

import pytest

from src.config.schema import AppConfig
from src.logging import StageLoggerAdapter, StructuredLogger, setup_logging


# =========================================================================
# 픽스처
# =========================================================================

@pytest.fixture(autouse=True)
def reset_root_logger():
    """각 테스트 후 root logger 핸들러 초기화."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()


def _make_config(tmp_path, log_format: str = "json", log_level: str = "INFO", session_id: str = "sess-12345678") -> AppConfig:
    return AppConfig(**{
        "system": {
            "log_level": log_level,
            "log_format": log_format,
            "log_dir": str(tmp_path / "logs"),
            "session_id": session_id,
        }
    })


def _capture(logger_name: str) -> tuple[logging.Logger, StringIO]:
    """root 핸들러의 필터/포맷터를 그대로 쓰는 메모리 핸들러를 붙입니다."""
    root_handler = logging.getLogger().handlers[0]
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(root_handler.formatter)
    for log_filter in root_handler.filters:
        handler.addFilter(log_filter)
    logger = logging.getLogger(logger_name)
    logger.addHandler(handler)
    return logger, stream


# =========================================================================
# setup_logging
# =========================================================================

class TestSetupLogging:
    def test_creates_pipeline_log(self, tmp_path):
        setup_logging(_make_config(tmp_path))
        logging.getLogger("setup.test").info("파일 기록 확인")
        assert (tmp_path / "logs" / "pipeline.log").exists()

    def test_rotating_handler_limits(self, tmp_path):
        setup_logging(_make_config(tmp_path))
        rotating = [
            h for h in logging.getLogger().handlers
            if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(rotating) == 1
        assert rotating[0].maxBytes == 10 * 1024 * 1024
        assert rotating[0].backupCount == 5

    def test_session_id_argument_wins(self, tmp_path):
        assert setup_logging(_make_config(tmp_path), session_id="from-arg") == "from-arg"
        assert StructuredLogger.get_session_id() == "from-arg"

    def test_session_id_from_config(self, tmp_path):
        assert setup_logging(_make_config(tmp_path)) == "sess-12345678"

    def test_session_id_generated_when_empty(self, tmp_path):
        session_id = setup_logging(_make_config(tmp_path, session_id=""))
        assert len(session_id) == 36
        assert session_id.count("-") == 4

    def test_repeated_setup_replaces_handlers(self, tmp_path):
        config = _make_config(tmp_path)
        setup_logging(config)
        count = len(logging.getLogger().handlers)
        setup_logging(config)
        assert len(logging.getLogger().handlers) == count

    def test_level_applied(self, tmp_path):
        setup_logging(_make_config(tmp_path, log_level="WARNING"))
        assert logging.getLogger().level == logging.WARNING

    def test_third_party_loggers_quieted(self, tmp_path):
        setup_logging(_make_config(tmp_path, log_level="INFO"))
        assert logging.getLogger("onnxruntime").level == logging.WARNING
        assert logging.getLogger("rembg").level == logging.WARNING

    def test_third_party_loggers_verbose_in_debug(self, tmp_path):
        setup_logging(_make_config(tmp_path, log_level="DEBUG"))
        assert logging.getLogger("PIL").level == logging.DEBUG


# =========================================================================
# 포맷
# =========================================================================

class TestJsonFormat:
    def test_record_fields(self, tmp_path):
        setup_logging(_make_config(tmp_path))
        logger, stream = _capture("json.fields")

        logger.info("배치 완료", extra={"batch_index": 2})

        record = json.loads(stream.getvalue().strip())
        assert record["message"] == "배치 완료"
        assert record["level"] == "INFO"
        assert record["module"] == "json.fields"
        assert record["session_id"] == "sess-12345678"
        assert record["stage"] == "-"
        assert record["batch_index"] == 2
        assert "timestamp" in record

    def test_stage_adapter_sets_stage(self, tmp_path):
        setup_logging(_make_config(tmp_path))
        _, stream = _capture("json.stage")

        adapter = StructuredLogger.for_stage("json.stage", "encoding")
        adapter.info("인코딩 시작")

        record = json.loads(stream.getvalue().strip())
        assert record["stage"] == "encoding"


class TestTextFormat:
    def test_prefix_and_stage(self, tmp_path):
        setup_logging(_make_config(tmp_path, log_format="text"))
        _, stream = _capture("text.stage")

        StructuredLogger.for_stage("text.stage", "extraction").warning("디코딩 지연")

        output = stream.getvalue()
        assert "[sess-123]" in output
        assert "(extraction)" in output
        assert "WARNING" in output
        assert "디코딩 지연" in output


# =========================================================================
# StructuredLogger / StageLoggerAdapter
# =========================================================================

class TestStructuredLogger:
    def test_get_returns_standard_logger(self):
        logger = StructuredLogger.get("factory.module")
        assert isinstance(logger, logging.Logger)
        assert logger is logging.getLogger("factory.module")

    def test_for_stage_returns_adapter(self):
        adapter = StructuredLogger.for_stage("factory.stage", "persistence")
        assert isinstance(adapter, StageLoggerAdapter)
        assert adapter.logger.name == "factory.stage"

    def test_explicit_stage_in_extra_is_kept(self):
        adapter = StructuredLogger.for_stage("factory.extra", "encoding")
        _, kwargs = adapter.process("msg", {"extra": {"stage": "custom"}})
        assert kwargs["extra"]["stage"] == "custom"
