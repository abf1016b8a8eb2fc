"""
Health Monitoring HTTP Server for interval-ticker.

Provides a simple HTTP endpoint for monitoring a running Ticker. Useful for
integration with monitoring systems like Prometheus, Grafana, or simple
health checks.

Endpoints:
    GET /health     - Basic health check (200 OK if running)
    GET /status     - JSON ticker status and cadence statistics
    GET /metrics    - Prometheus-compatible metrics

Usage:
    from interval_ticker.output.health_server import HealthServer

    server = HealthServer(port=8080)
    server.set_ticker(ticker, stats)
    server.start()
"""

import json
import logging
import threading
import time
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class HealthRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for health endpoints."""

    # Class-level reference to status callback
    get_status: Optional[Callable[[], Dict[str, Any]]] = None

    def log_message(self, format, *args):
        """Route HTTP access logging to debug."""
        logger.debug(f"{self.address_string()} {format % args}")

    def do_GET(self):
        """Handle GET requests."""
        if self.path == '/health':
            self._handle_health()
        elif self.path == '/status':
            self._handle_status()
        elif self.path == '/metrics':
            self._handle_metrics()
        else:
            self.send_error(404, "Not Found")

    def _handle_health(self):
        self.send_response(200)
        self.send_header('Content-Type', 'text/plain')
        self.end_headers()
        self.wfile.write(b'OK\n')

    def _handle_status(self):
        """Return JSON status of the connected ticker."""
        if not self.get_status:
            self._send(503, 'application/json', json.dumps({'error': 'No ticker connected'}))
            return
        try:
            status = self.get_status()
        except Exception as e:
            logger.error(f"Status query failed: {e}")
            self._send(500, 'application/json', json.dumps({'error': str(e)}))
            return
        self._send(200, 'application/json', json.dumps(status, indent=2))

    def _handle_metrics(self):
        """Return Prometheus-compatible metrics."""
        if not self.get_status:
            self._send(503, 'text/plain', '# No ticker connected\n')
            return
        try:
            metrics = self._format_prometheus_metrics(self.get_status())
        except Exception as e:
            logger.error(f"Metrics query failed: {e}")
            self._send(500, 'text/plain', f'# Error: {e}\n')
            return
        self._send(200, 'text/plain; version=0.0.4', metrics)

    def _send(self, code: int, content_type: str, body: str):
        self.send_response(code)
        self.send_header('Content-Type', content_type)
        self.end_headers()
        self.wfile.write(body.encode())

    def _format_prometheus_metrics(self, status: Dict[str, Any]) -> str:
        """Format status as Prometheus metrics."""
        lines = [
            '# HELP interval_ticker_running Whether the ticker is scheduling ticks (1) or stopped (0)',
            '# TYPE interval_ticker_running gauge',
            f'interval_ticker_running {1 if status.get("running") else 0}',
            '',
            '# HELP interval_ticker_ticks_total Ticks completed in the current run',
            '# TYPE interval_ticker_ticks_total counter',
            f'interval_ticker_ticks_total {status.get("tick_count", 0)}',
            '',
            '# HELP interval_ticker_actions Number of registered actions',
            '# TYPE interval_ticker_actions gauge',
            f'interval_ticker_actions {status.get("action_count", 0)}',
            '',
            '# HELP interval_ticker_period_ms Configured tick period in milliseconds',
            '# TYPE interval_ticker_period_ms gauge',
            f'interval_ticker_period_ms {status.get("period_ms", 0)}',
        ]

        # Cadence metrics only once enough ticks were seen
        stats = status.get('stats') or {}
        if stats.get('interval_mean_ms') is not None:
            lines.extend([
                '',
                '# HELP interval_ticker_interval_mean_ms Mean observed interval between tick starts',
                '# TYPE interval_ticker_interval_mean_ms gauge',
                f'interval_ticker_interval_mean_ms {stats["interval_mean_ms"]:.3f}',
            ])
        if stats.get('jitter_ms') is not None:
            lines.extend([
                '',
                '# HELP interval_ticker_jitter_ms Mean absolute deviation of interval from period',
                '# TYPE interval_ticker_jitter_ms gauge',
                f'interval_ticker_jitter_ms {stats["jitter_ms"]:.3f}',
            ])

        lines.append('')
        return '\n'.join(lines)


class HealthServer:
    """
    HTTP server for health monitoring.

    Runs in a background thread and reports on one Ticker.
    """

    def __init__(self, port: int = 8080, bind_address: str = '0.0.0.0'):
        """
        Initialize the health server.

        Args:
            port: HTTP port to listen on
            bind_address: Address to bind to (default: all interfaces)
        """
        self.port = port
        self.bind_address = bind_address
        self.server: Optional[HTTPServer] = None
        self.thread: Optional[threading.Thread] = None
        self.ticker = None
        self.stats = None
        self._running = False

    def set_ticker(self, ticker, stats=None):
        """
        Connect to a Ticker for status reporting.

        Args:
            ticker: Ticker instance
            stats: Optional TickStats attached to the same ticker
        """
        self.ticker = ticker
        self.stats = stats
        HealthRequestHandler.get_status = self._get_status

    def _get_status(self) -> Dict[str, Any]:
        """Get current status from the ticker."""
        if not self.ticker:
            return {'error': 'No ticker connected'}

        action_ids = list(self.ticker.action_ids)
        status = {
            'timestamp': time.time(),
            'running': self.ticker.is_running,
            'period_ms': self.ticker.period,
            'tick_count': self.ticker.tick_count,
            'action_count': len(action_ids),
            'action_ids': action_ids,
        }

        if self.stats is not None:
            status['stats'] = self.stats.summary()

        return status

    def start(self):
        """Start the health server in a background thread."""
        if self._running:
            logger.warning("Health server already running")
            return

        try:
            self.server = HTTPServer(
                (self.bind_address, self.port),
                HealthRequestHandler
            )
            # Set timeout so handle_request doesn't block forever
            self.server.timeout = 1.0
            self._running = True

            self.thread = threading.Thread(
                target=self._serve,
                name="HealthServer",
                daemon=True
            )
            self.thread.start()

            logger.info(f"Health server started on http://{self.bind_address}:{self.port}")
            logger.info("  GET /health  - Health check")
            logger.info("  GET /status  - JSON status")
            logger.info("  GET /metrics - Prometheus metrics")

        except OSError as e:
            logger.error(f"Failed to start health server: {e}")
            self._running = False

    def _serve(self):
        """Server loop (runs in background thread)."""
        while self._running:
            try:
                self.server.handle_request()
            except (OSError, ValueError):
                # Socket closed by stop()
                break

    def stop(self):
        """Stop the health server."""
        if not self._running and self.server is None:
            return
        self._running = False
        if self.thread:
            self.thread.join(timeout=2.0)
            self.thread = None
        if self.server:
            self.server.server_close()
            self.server = None
        logger.info("Health server stopped")
