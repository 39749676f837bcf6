"""
결과 영상 보관 모듈입니다.

역할:
- 인코딩이 완료된 결과물을 라이브러리 디렉토리로 복사
- 파일명: <prefix>_<session_id>_<YYYYmmdd_HHMMSS>.mp4 (같은 초에 중복되면 번호 추가)
- 복사 실패(OSError)는 False 반환 (재시도 없음)

사용 예시:
    >>> saver = LibrarySaver(config.persistence, session_id="abc123")
    >>> saved = await saver.save(Path("/tmp/output.mp4"))
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Protocol

from src.config.schema import PersistenceConfig

logger = logging.getLogger(__name__)


class PersistenceCollaborator(Protocol):
    """결과물을 보관하는 외부 협력자 인터페이스입니다."""

    async def save(self, path: Path) -> bool:
        ...


class LibrarySaver:
    """
    결과 영상을 로컬 라이브러리 디렉토리에 보관하는 클래스입니다.
    """

    def __init__(self, config: PersistenceConfig, session_id: str = "") -> None:
        self._library_dir = Path(config.library_dir)
        self._prefix = config.filename_prefix
        self._session_id = session_id

    @property
    def library_dir(self) -> Path:
        return self._library_dir

    async def save(self, path: Path) -> bool:
        """
        결과물을 라이브러리 디렉토리에 복사합니다.

        파라미터:
            path: 보관할 결과물 경로

        반환값:
            bool: 복사 성공 여부 (OSError 발생 시 False)
        """
        try:
            destination = await asyncio.to_thread(self._copy, Path(path))
        except OSError as exc:
            logger.error(f"라이브러리 저장 실패: {path}, 오류: {exc}")
            return False

        logger.info(f"라이브러리 저장 완료: {destination}")
        return True

    def _copy(self, source: Path) -> Path:
        self._library_dir.mkdir(parents=True, exist_ok=True)
        destination = self._unique_destination(source.suffix or ".mp4")
        shutil.copy2(source, destination)
        return destination

    def _unique_destination(self, suffix: str) -> Path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        parts = [self._prefix, self._session_id, timestamp] if self._session_id else [self._prefix, timestamp]
        stem = "_".join(parts)

        candidate = self._library_dir / f"{stem}{suffix}"
        counter = 1
        while candidate.exists():
            candidate = self._library_dir / f"{stem}_{counter}{suffix}"
            counter += 1
        return candidate
