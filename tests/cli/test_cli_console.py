"""
tests/cli/test_cli_console.py - 콘솔/로깅 설정 테스트
"""

import logging

from rich.logging import RichHandler

from cli.ui.console import parse_log_level, setup_logging


class TestParseLogLevel:
    """parse_log_level 테스트"""

    def test_known(self):
        assert parse_log_level("debug") == logging.DEBUG
        assert parse_log_level(" WARNING ") == logging.WARNING

    def test_unknown_defaults_to_info(self):
        assert parse_log_level("verbose") == logging.INFO


class TestSetupLogging:
    """setup_logging 테스트"""

    def test_installs_rich_handler(self):
        setup_logging("error")

        root = logging.getLogger()
        assert root.level == logging.ERROR
        assert any(isinstance(h, RichHandler) for h in root.handlers)

    def test_unknown_level(self):
        setup_logging("loud")

        assert logging.getLogger().level == logging.INFO
