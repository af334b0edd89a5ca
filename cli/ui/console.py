"""
cli/ui/console.py - Rich 콘솔 및 로깅 설정

프로세스 시작 시 루트 logger에 RichHandler를 한 번 설정합니다.
"""

import logging
import platform

from rich.console import Console
from rich.logging import RichHandler

# botocore/urllib3 노이즈 로그 제한
logging.getLogger("botocore.httpchecksum").setLevel(logging.WARNING)
logging.getLogger("botocore.credentials").setLevel(logging.WARNING)
logging.getLogger("botocore.loaders").setLevel(logging.WARNING)
logging.getLogger("botocore.session").setLevel(logging.WARNING)
logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def get_console() -> Console:
    """Rich Console 인스턴스를 생성하고 반환합니다 (로그는 stderr로 출력)."""
    is_windows = platform.system().lower() == "windows"

    return Console(
        stderr=True,
        color_system="auto",
        highlight=True,
        soft_wrap=True,
        emoji=not is_windows,
    )


# 전역 콘솔 인스턴스
console = get_console()


def parse_log_level(name: str) -> int:
    """로그 레벨 이름을 logging 상수로 변환 (알 수 없으면 INFO)"""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: str = "info") -> None:
    """루트 logger에 RichHandler 설정

    Args:
        level: 로그 레벨 이름 (debug, info, warning, error, critical)
    """
    handler = RichHandler(console=console, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logging.basicConfig(level=parse_log_level(level), handlers=[handler], force=True)

    if level.strip().lower() not in LOG_LEVELS:
        logging.getLogger(__name__).warning(f"로그 레벨 '{level}'을(를) 해석할 수 없어 INFO로 설정합니다")


def print_error(message: str) -> None:
    """에러 메시지 출력 (빨간색 X)"""
    console.print(f"[red]✗ {message}[/red]")
