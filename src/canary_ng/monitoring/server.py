"""
HTTP endpoint exposing the metrics registry.
"""

import logging
from typing import Tuple
from wsgiref.simple_server import WSGIRequestHandler, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app
from prometheus_client.exposition import ThreadingWSGIServer

logger = logging.getLogger(__name__)


class _LoggingHandler(WSGIRequestHandler):
    """Send access logs to the logging module instead of stderr."""

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} - {format % args}")


def parse_listen_addr(listen_addr: str) -> Tuple[str, int]:
    """
    Split a listen address into host and port.

    Args:
        listen_addr: Address such as ":8080", "127.0.0.1:9090" or "[::1]:8080"

    Returns:
        (host, port) tuple, host being empty for all interfaces

    Raises:
        ValueError: If the port is missing or not a number
    """
    host, sep, port = listen_addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {listen_addr}")
    return host.strip("[]"), int(port)


def make_metrics_app(registry: CollectorRegistry, route: str):
    """
    Build a WSGI application serving the registry on a single route.

    Args:
        registry: Registry to expose
        route: URL path of the metrics page

    Returns:
        WSGI application
    """
    metrics_app = make_wsgi_app(registry)

    def app(environ, start_response):
        if environ.get("PATH_INFO", "") != route:
            start_response("404 Not Found", [("Content-Type", "text/plain")])
            return [b"404 page not found\n"]
        return metrics_app(environ, start_response)

    return app


def serve_metrics(registry: CollectorRegistry, listen_addr: str, route: str) -> None:
    """
    Serve metrics until the process exits.

    Args:
        registry: Registry to expose
        listen_addr: Listen address
        route: URL path of the metrics page

    Raises:
        OSError: If the listener cannot bind
        ValueError: If the listen address is invalid
    """
    host, port = parse_listen_addr(listen_addr)
    httpd = make_server(
        host,
        port,
        make_metrics_app(registry, route),
        server_class=ThreadingWSGIServer,
        handler_class=_LoggingHandler
    )
    logger.info(f"serving to {listen_addr}{route}")
    httpd.serve_forever()
