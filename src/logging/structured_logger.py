"""
구조화 로깅 모듈입니다.

역할:
- 콘솔 + 순환 파일(pipeline.log, 10MB × 5) 핸들러 구성
- json 포맷은 python-json-logger, text 포맷은 표준 Formatter 사용
- 모든 레코드에 session_id / stage 필드를 주입하는 필터
- 단계(extraction, encoding ...) 이름을 붙여주는 StageLoggerAdapter
- rembg/onnxruntime/PIL 등 서드파티 로그는 DEBUG가 아니면 WARNING 이상만 출력

사용 예시:
    >>> session_id = setup_logging(config)
    >>> log = StructuredLogger.for_stage(__name__, "encoding")
    >>> log.info("인코딩 시작", extra={"frames": 120})
"""

from __future__ import annotations

import logging
import logging.handlers
import uuid
from pathlib import Path
from typing import Any, MutableMapping, Optional

from pythonjsonlogger import jsonlogger

from src.config.schema import AppConfig

_SESSION_ID: str = ""

_LOG_FILENAME = "pipeline.log"
_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5

# 레코드에 stage가 없을 때 사용하는 값
_NO_STAGE = "-"

_THIRD_PARTY_LOGGERS = ("PIL", "onnxruntime", "rembg", "pooch", "urllib3")


class _SessionFilter(logging.Filter):
    """레코드에 session_id, stage 속성을 채워 넣는 필터입니다."""

    def __init__(self, session_id: str) -> None:
        super().__init__()
        self._session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = self._session_id
        if not hasattr(record, "stage"):
            record.stage = _NO_STAGE
        return True


class _JsonFormatter(jsonlogger.JsonFormatter):
    """timestamp, level, module, session_id, stage 필드를 갖는 JSON 포맷터입니다."""

    def __init__(self, session_id: str = "") -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            rename_fields={"asctime": "timestamp"},
        )
        self._session_id = session_id

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["module"] = record.name
        log_record["session_id"] = getattr(record, "session_id", self._session_id)
        log_record["stage"] = getattr(record, "stage", _NO_STAGE)


class _TextFormatter(logging.Formatter):
    """세션 ID 앞 8자리와 stage를 접두어로 붙이는 텍스트 포맷터입니다."""

    def __init__(self, session_id: str = "") -> None:
        super().__init__(
            fmt="%(asctime)s [%(sid)s] %(levelname)-8s %(name)s (%(stage)s): %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self._short_sid = session_id[:8] if session_id else "no-sid"

    def format(self, record: logging.LogRecord) -> str:
        record.sid = self._short_sid
        if not hasattr(record, "stage"):
            record.stage = _NO_STAGE
        return super().format(record)


def setup_logging(config: AppConfig, session_id: Optional[str] = None) -> str:
    """
    root 로거를 설정하고 확정된 세션 ID를 반환합니다.

    session_id가 없으면 config.system.session_id, 그것도 비어있으면 UUID4를 사용합니다.
    여러 번 호출해도 이전 핸들러를 닫고 교체하므로 핸들러가 누적되지 않습니다.
    """
    global _SESSION_ID
    _SESSION_ID = session_id or config.system.session_id or str(uuid.uuid4())

    level = getattr(logging, config.system.log_level, logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    for old_handler in root.handlers[:]:
        root.removeHandler(old_handler)
        old_handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_dir = Path(config.system.log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=log_dir / _LOG_FILENAME,
                maxBytes=_MAX_BYTES,
                backupCount=_BACKUP_COUNT,
                encoding="utf-8",
            )
        )
    except OSError as exc:
        # 파일 핸들러 없이 콘솔만으로 계속 진행
        logging.getLogger(__name__).warning(f"로그 파일을 열 수 없습니다: {log_dir} ({exc})")

    session_filter = _SessionFilter(_SESSION_ID)
    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(session_filter)
        handler.setFormatter(_make_formatter(config.system.log_format, _SESSION_ID))
        root.addHandler(handler)

    third_party_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    logging.getLogger(__name__).info(
        f"로깅 초기화: level={config.system.log_level}, "
        f"format={config.system.log_format}, session={_SESSION_ID}"
    )
    return _SESSION_ID


def _make_formatter(log_format: str, session_id: str) -> logging.Formatter:
    if log_format == "json":
        return _JsonFormatter(session_id=session_id)
    return _TextFormatter(session_id=session_id)


class StageLoggerAdapter(logging.LoggerAdapter):
    """모든 레코드에 고정 stage 이름을 붙이는 LoggerAdapter입니다."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("stage", self.extra["stage"])
        kwargs["extra"] = extra
        return msg, kwargs


class StructuredLogger:
    """로거 팩토리입니다. 표준 logging API를 그대로 사용합니다."""

    @staticmethod
    def get(name: str) -> logging.Logger:
        return logging.getLogger(name)

    @staticmethod
    def for_stage(name: str, stage: str) -> StageLoggerAdapter:
        """stage 필드가 자동으로 붙는 로거를 반환합니다."""
        return StageLoggerAdapter(logging.getLogger(name), {"stage": stage})

    @staticmethod
    def get_session_id() -> str:
        return _SESSION_ID
