"""
cli/server.py - 메트릭 HTTP 엔드포인트

prometheus_client WSGI 앱을 metrics_path에 연결하고,
"/"에는 메트릭 링크가 있는 HTML 랜딩 페이지를 제공합니다.

Usage:
    from cli.server import create_app, serve

    app = create_app(registry, "/metrics")
    serve(app, ":8080")
"""

import html
import logging
import signal
import threading
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app
from prometheus_client.exposition import ThreadingWSGIServer

logger = logging.getLogger(__name__)

LANDING_PAGE = """<html>
<head><title>Cloud Price Exporter</title></head>
<body>
<h1>Cloud Price Exporter</h1>
<p><a href="{path}">Metrics</a></p>
</body>
</html>
"""


class _DebugLogHandler(WSGIRequestHandler):
    """접근 로그를 stderr 대신 DEBUG 레벨 로거로 남기는 핸들러"""

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug(f"{self.address_string()} - {format % args}")


def parse_listen_address(address: str) -> tuple[str, int]:
    """"host:port" 또는 ":port" 형식을 (host, port)로 변환

    Raises:
        ValueError: 형식 오류
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"listen address 형식 오류: {address!r} (예: ':8080', '0.0.0.0:8080')")
    return host.strip("[]"), int(port)


def create_app(registry: CollectorRegistry, metrics_path: str = "/metrics"):
    """metrics_path는 prometheus_client 앱, 그 외 경로는 랜딩 페이지로 연결한 WSGI 앱"""
    metrics_app = make_wsgi_app(registry)
    landing = LANDING_PAGE.format(path=html.escape(metrics_path, quote=True)).encode("utf-8")

    def app(environ, start_response):
        path = environ.get("PATH_INFO", "/")
        if path == metrics_path:
            return metrics_app(environ, start_response)
        if path == "/":
            start_response("200 OK", [("Content-Type", "text/html; charset=utf-8")])
            return [landing]
        start_response("404 Not Found", [("Content-Type", "text/plain; charset=utf-8")])
        return [b"Not Found\n"]

    return app


def serve(app, listen_address: str) -> None:
    """WSGI 서버 실행 (SIGTERM/SIGINT 수신 시 종료)

    Args:
        app: WSGI 앱
        listen_address: "host:port" 또는 ":port"
    """
    host, port = parse_listen_address(listen_address)
    httpd = make_server(host, port, app, server_class=ThreadingWSGIServer, handler_class=_DebugLogHandler)

    def _shutdown(signum, _frame):
        logger.info(f"{signal.Signals(signum).name} 수신, 종료합니다...")
        # shutdown()은 serve_forever() 스레드 밖에서 호출해야 함
        threading.Thread(target=httpd.shutdown, daemon=True).start()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    logger.info(f"메트릭 HTTP 엔드포인트 시작 [address={listen_address}]")
    try:
        httpd.serve_forever()
    finally:
        httpd.server_close()
