"""
HTTP server exposing Prometheus metrics on a separate port.

Every path of the upload app may name a stored file, so /metrics cannot
live there.
"""
import threading
from http.server import ThreadingHTTPServer, BaseHTTPRequestHandler
import logging

from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import REGISTRY

logger = logging.getLogger(__name__)


class MetricsHandler(BaseHTTPRequestHandler):
    """HTTP handler for metrics endpoint."""

    def do_GET(self):
        """Handle GET requests to /metrics."""
        if self.path == '/metrics':
            self.send_response(200)
            self.send_header('Content-Type', CONTENT_TYPE_LATEST)
            self.end_headers()
            self.wfile.write(generate_latest(REGISTRY))
        else:
            self.send_response(404)
            self.end_headers()

    def log_message(self, format, *args):
        """Suppress default logging."""
        pass


def start_metrics_server(port: int = 9090, host: str = '0.0.0.0') -> ThreadingHTTPServer:
    """
    Start HTTP server for Prometheus metrics in a daemon thread.

    Args:
        port: Port to listen on (default: 9090)
        host: Interface to bind

    Returns:
        The running server, call shutdown() to stop it
    """
    try:
        server = ThreadingHTTPServer((host, port), MetricsHandler)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        logger.info(f"Metrics server started on port {server.server_address[1]}")
        return server
    except Exception as e:
        logger.error(f"Failed to start metrics server: {e}")
        raise
