"""
구조화 로깅 패키지
"""

from src.logging.structured_logger import StageLoggerAdapter, StructuredLogger, setup_logging

__all__ = ["StageLoggerAdapter", "StructuredLogger", "setup_logging"]
