"""
LibrarySaver 단위 테스트

검증 조건:
- 결과물이 라이브러리 디렉토리에 prefix_session_timestamp.mp4로 복사
- 같은 초에 여러 번 저장해도 파일명이 겹치지 않음
- 원본이 없으면 False 반환 (예외 전파 없음)
"""

from __future__ import annotations

import pytest

from src.config.schema import PersistenceConfig
from src.persistence.library_saver import LibrarySaver


def _make_saver(tmp_path, session_id: str = "sess01") -> LibrarySaver:
    config = PersistenceConfig(library_dir=str(tmp_path / "library"), filename_prefix="bgremoved")
    return LibrarySaver(config, session_id=session_id)


def _make_artifact(tmp_path, content: bytes = b"video-bytes"):
    artifact = tmp_path / "output.mp4"
    artifact.write_bytes(content)
    return artifact


class TestLibrarySaver:
    @pytest.mark.asyncio
    async def test_copies_artifact_into_library(self, tmp_path):
        saver = _make_saver(tmp_path)
        artifact = _make_artifact(tmp_path)

        assert await saver.save(artifact) is True

        saved = list((tmp_path / "library").iterdir())
        assert len(saved) == 1
        assert saved[0].name.startswith("bgremoved_sess01_")
        assert saved[0].suffix == ".mp4"
        assert saved[0].read_bytes() == b"video-bytes"
        # 원본은 그대로 유지
        assert artifact.exists()

    @pytest.mark.asyncio
    async def test_repeated_saves_get_unique_names(self, tmp_path):
        saver = _make_saver(tmp_path)
        artifact = _make_artifact(tmp_path)

        for _ in range(3):
            assert await saver.save(artifact)

        names = {p.name for p in (tmp_path / "library").iterdir()}
        assert len(names) == 3

    @pytest.mark.asyncio
    async def test_missing_artifact_returns_false(self, tmp_path):
        saver = _make_saver(tmp_path)
        assert await saver.save(tmp_path / "nothing.mp4") is False

    @pytest.mark.asyncio
    async def test_without_session_id(self, tmp_path):
        saver = _make_saver(tmp_path, session_id="")
        assert await saver.save(_make_artifact(tmp_path))
        saved = next((tmp_path / "library").iterdir())
        assert saved.name.startswith("bgremoved_2")
