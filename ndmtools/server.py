"""A minimal HTTP server that exposes a single metrics endpoint."""

from __future__ import annotations

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

log = logging.getLogger(__name__)


def _parse_address(listen_port):
    host, sep, port = listen_port.rpartition(":")
    if not sep:
        raise ValueError(f"address {listen_port}: missing port in address")
    return host.strip("[]"), int(port) if port else 0


def _make_request_handler(metrics_path, handler):
    class _RequestHandler(BaseHTTPRequestHandler):
        def _dispatch(self):
            if urlsplit(self.path).path == metrics_path:
                handler(self)
            else:
                self.send_error(404)

        do_GET = _dispatch
        do_HEAD = _dispatch
        do_POST = _dispatch

        def log_message(self, format, *args):
            log.debug("%s - %s", self.address_string(), format % args)

    return _RequestHandler


class MetricsServer:
    """Serves ``handler`` at ``metrics_path`` on ``listen_port`` (``host:port``).

    ``handler`` is called with the request handler instance and writes the
    response itself.
    """

    def __init__(self, listen_port, metrics_path, handler):
        self.listen_port = listen_port
        self.metrics_path = metrics_path
        self.handler = handler
        self.server_address = None
        self.started = threading.Event()
        self._httpd = None

    def start(self):
        """Bind and serve until :meth:`stop` is called.

        Raises OSError if the address cannot be bound.
        """
        address = _parse_address(self.listen_port)
        request_handler = _make_request_handler(self.metrics_path, self.handler)
        try:
            httpd = ThreadingHTTPServer(address, request_handler)
        except OSError:
            log.error("error starting http server", exc_info=True)
            raise
        self._httpd = httpd
        self.server_address = httpd.server_address[:2]
        log.info("Starting HTTP server at http://localhost%s%s", self.listen_port, self.metrics_path)
        self.started.set()
        try:
            httpd.serve_forever()
        finally:
            httpd.server_close()

    def stop(self):
        """Stop a running server; does nothing if it was never started."""
        if self._httpd is not None:
            self._httpd.shutdown()