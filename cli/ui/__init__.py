# cli/ui - 콘솔/로깅 (rich)
"""
콘솔 출력 및 로깅 설정 모듈
"""

from .console import console, get_console, parse_log_level, print_error, setup_logging

__all__ = [
    "console",
    "get_console",
    "parse_log_level",
    "print_error",
    "setup_logging",
]
