"""
Tests for health monitoring server.
"""

import json
import pytest
import time
import urllib.error
import urllib.request
from unittest.mock import MagicMock


class TestHealthServer:
    """Tests for HealthServer."""

    def test_health_server_initialization(self):
        """Test HealthServer initialization with custom port."""
        from interval_ticker.output.health_server import HealthServer

        server = HealthServer(port=9999, bind_address='127.0.0.1')
        assert server.port == 9999
        assert server.bind_address == '127.0.0.1'
        assert server.ticker is None
        assert server._running is False

    def test_status_without_ticker(self):
        from interval_ticker.output.health_server import HealthServer

        assert HealthServer()._get_status() == {'error': 'No ticker connected'}

    def test_status_from_ticker(self):
        """Status reflects the connected ticker and its stats."""
        from interval_ticker import Ticker, TickStats
        from interval_ticker.output.health_server import HealthServer

        ticker = Ticker(1000)
        ticker.add_action(lambda: None, 'a')
        stats = TickStats().attach(ticker)

        server = HealthServer()
        server.set_ticker(ticker, stats)
        ticker.start()
        try:
            status = server._get_status()
        finally:
            ticker.stop()

        assert status['running'] is True
        assert status['period_ms'] == 1000
        assert status['tick_count'] == 1
        assert status['action_count'] == 1
        assert status['action_ids'] == ['a']
        assert status['stats']['ticks_observed'] == 1


class TestHealthServerIntegration:
    """Integration tests for HealthServer (requires network)."""

    @pytest.fixture
    def mock_ticker(self):
        """Create a mock Ticker for testing."""
        ticker = MagicMock()
        ticker.is_running = True
        ticker.period = 250
        ticker.tick_count = 42
        ticker.action_ids = ('heartbeat', 'poll')
        return ticker

    @pytest.fixture
    def health_server(self, mock_ticker):
        """Create and start a health server for testing."""
        from interval_ticker.output.health_server import HealthServer

        # Use a high port to avoid conflicts
        server = HealthServer(port=19877, bind_address='127.0.0.1')
        server.set_ticker(mock_ticker)
        server.start()

        # Give server time to start
        time.sleep(0.1)

        yield server

        server.stop()

    def test_health_endpoint(self, health_server):
        """Test /health endpoint returns OK."""
        try:
            response = urllib.request.urlopen(
                'http://127.0.0.1:19877/health',
                timeout=2
            )
            assert response.status == 200
            assert response.read() == b'OK\n'
        except urllib.error.URLError as e:
            pytest.skip(f"Network test failed: {e}")

    def test_status_endpoint(self, health_server):
        """Test /status endpoint returns JSON."""
        try:
            response = urllib.request.urlopen(
                'http://127.0.0.1:19877/status',
                timeout=2
            )
            assert response.status == 200

            data = json.loads(response.read())
            assert data['running'] is True
            assert data['tick_count'] == 42
            assert data['action_ids'] == ['heartbeat', 'poll']
        except urllib.error.URLError as e:
            pytest.skip(f"Network test failed: {e}")

    def test_metrics_endpoint(self, health_server):
        """Test /metrics endpoint returns Prometheus format."""
        try:
            response = urllib.request.urlopen(
                'http://127.0.0.1:19877/metrics',
                timeout=2
            )
            assert response.status == 200

            content = response.read().decode()
            assert 'interval_ticker_ticks_total 42' in content
            assert 'interval_ticker_period_ms 250' in content
        except urllib.error.URLError as e:
            pytest.skip(f"Network test failed: {e}")

    def test_unknown_path(self, health_server):
        """Test unknown paths return 404."""
        try:
            with pytest.raises(urllib.error.HTTPError) as exc_info:
                urllib.request.urlopen('http://127.0.0.1:19877/nope', timeout=2)
        except urllib.error.URLError as e:
            pytest.skip(f"Network test failed: {e}")
        assert exc_info.value.code == 404


class TestPrometheusMetrics:
    """Tests for Prometheus metrics formatting."""

    def test_prometheus_format(self):
        """Test that metrics are properly formatted for Prometheus."""
        from interval_ticker.output.health_server import HealthRequestHandler

        handler = HealthRequestHandler.__new__(HealthRequestHandler)

        status = {
            'running': True,
            'period_ms': 100,
            'tick_count': 17,
            'action_count': 3,
            'stats': {
                'interval_mean_ms': 100.25,
                'jitter_ms': 0.5,
            },
        }

        metrics = handler._format_prometheus_metrics(status)

        assert 'interval_ticker_running 1' in metrics
        assert 'interval_ticker_ticks_total 17' in metrics
        assert 'interval_ticker_actions 3' in metrics
        assert 'interval_ticker_period_ms 100' in metrics
        assert 'interval_ticker_interval_mean_ms 100.250' in metrics
        assert 'interval_ticker_jitter_ms 0.500' in metrics

    def test_cadence_metrics_omitted_without_stats(self):
        from interval_ticker.output.health_server import HealthRequestHandler

        handler = HealthRequestHandler.__new__(HealthRequestHandler)
        metrics = handler._format_prometheus_metrics({'running': False})

        assert 'interval_ticker_running 0' in metrics
        assert 'interval_ticker_interval_mean_ms' not in metrics
