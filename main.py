"""
Video Background Remover 실행 진입점

역할:
- 설정 로드 (config.yaml + VBR_ 환경변수 + 커맨드라인 오버라이드)
- 구조화 로깅 설정
- BackgroundRemovalPipeline 1회 실행 및 진행률 로깅
- SIGINT/SIGTERM 핸들러로 실행 취소 (다음 배치 경계 또는 append 직전에 반영)

실행 예시:
    기본 실행 (원본 fps로 샘플링):
        python main.py input.mp4

    초당 5프레임 샘플링, 보관 디렉토리 지정:
        python main.py input.mp4 --frame-rate 5 --library-dir output/library

종료 코드:
    0: 성공 (또는 원본 fps 조회 불가로 실행하지 않음)
    1: 실패 또는 취소
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from src.config.config_manager import ConfigFileNotFoundError, ConfigLoadError, ConfigManager
from src.config.schema import AppConfig
from src.logging import setup_logging
from src.pipeline import PipelineSuccess
from src.pipeline.orchestrator import BackgroundRemovalPipeline

logger = logging.getLogger(__name__)


# =============================================================================
# 진입점
# =============================================================================

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """커맨드라인 인자를 파싱합니다."""
    parser = argparse.ArgumentParser(
        description="Video Background Remover: 영상 프레임 배경 제거 후 재인코딩"
    )
    parser.add_argument("input", help="원본 영상 파일 경로")
    parser.add_argument(
        "--config", default="config.yaml", help="설정 파일 경로 (기본: config.yaml)"
    )
    parser.add_argument(
        "--frame-rate", type=int, help="초당 샘플 수 (config.yaml 오버라이드, 0=원본 fps)"
    )
    parser.add_argument(
        "--library-dir", help="결과 영상 보관 디렉토리 (config.yaml 오버라이드)"
    )
    parser.add_argument(
        "--output", help="인코딩 결과물 경로 (기본: <tempdir>/output.mp4)"
    )
    return parser.parse_args(argv)


def _load_config(args: argparse.Namespace) -> AppConfig:
    """설정 파일을 로드하고 커맨드라인 오버라이드를 적용합니다."""
    manager = ConfigManager()
    try:
        manager.load(args.config)
    except ConfigFileNotFoundError:
        # 설정 파일 없이도 기본값으로 실행 가능
        manager.load_defaults()

    return manager.apply_overrides(
        {
            "extraction.frame_rate": args.frame_rate,
            "persistence.library_dir": args.library_dir,
            "encoder.output_path": args.output,
        }
    )


async def _main(argv: list[str] | None = None) -> int:
    """비동기 메인 함수입니다. 프로세스 종료 코드를 반환합니다."""
    args = _parse_args(argv)

    try:
        config = _load_config(args)
    except ConfigLoadError as exc:
        print(f"설정 로드 실패: {exc}", file=sys.stderr)
        return 1

    session_id = setup_logging(config)
    logger.info(f"Video Background Remover 시작: session_id={session_id}, input={args.input}")

    pipeline = BackgroundRemovalPipeline(config, session_id=session_id)

    # SIGINT/SIGTERM 핸들러 등록 (asyncio-safe 방식)
    loop = asyncio.get_running_loop()

    def _signal_handler() -> None:
        logger.info("종료 시그널 수신, 실행 취소 요청")
        pipeline.cancel()

    loop.add_signal_handler(signal.SIGINT, _signal_handler)
    loop.add_signal_handler(signal.SIGTERM, _signal_handler)

    def _on_progress(value: float) -> None:
        logger.info(f"인코딩 진행률: {value:.0%}")

    result = await pipeline.run(args.input, progress=_on_progress)

    if result is None:
        logger.info("원본 fps를 확인할 수 없어 처리하지 않았습니다")
        return 0
    if isinstance(result, PipelineSuccess):
        logger.info(f"완료: {result.path} (라이브러리 저장: {'성공' if result.saved else '실패'})")
        return 0

    logger.error(f"실패: {result.error}")
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(_main()))
