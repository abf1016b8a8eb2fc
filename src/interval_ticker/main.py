#!/usr/bin/env python3
"""
interval-ticker: Periodic Action Runner

Main entry point. Runs a Ticker with a heartbeat action, collects cadence
statistics, and optionally serves health endpoints until interrupted or a
fixed duration elapses.

Usage:
    # Run with defaults (1000ms period, health server on 127.0.0.1:8080)
    python -m interval_ticker

    # Fast ticker for 10 seconds, no health server
    python -m interval_ticker --period 50 --duration 10 --health-port 0
"""

import argparse
import logging
import signal
import threading
from typing import Any, Dict, Optional

# Set up logging before imports that use it
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger('interval-ticker')

from .config import load_config
from .interfaces.tick_report import StopReport
from .stats import TickStats
from .ticker import Ticker


class TickerDaemon:
    """
    Runs one Ticker with a heartbeat action until told to stop.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Args:
            config: Configuration dictionary from load_config()
        """
        self.config = config
        ticker_config = config.get('ticker', {})
        heartbeat_config = config.get('heartbeat', {})
        output_config = config.get('output', {})

        self.ticker = Ticker(ticker_config.get('period_ms', 1000))
        self.stats = TickStats().attach(self.ticker)
        self.log_every = max(1, int(heartbeat_config.get('log_every', 1)))
        self.heartbeats = 0

        if heartbeat_config.get('enabled', True):
            self.ticker.add_action(self._heartbeat, 'heartbeat')

        self.health_port = output_config.get('health_port', 8080)
        self.bind_address = output_config.get('bind_address', '127.0.0.1')
        self.health_server = None

        self._shutdown = threading.Event()

        logger.info("=" * 60)
        logger.info("interval-ticker initializing")
        logger.info(f"  Period: {self.ticker.period}ms")
        logger.info(f"  Actions: {', '.join(self.ticker.action_ids) or 'none'}")
        logger.info(f"  Health port: {self.health_port or 'disabled'}")
        logger.info("=" * 60)

    def _heartbeat(self):
        self.heartbeats += 1
        if self.heartbeats % self.log_every == 0:
            logger.info(f"Heartbeat #{self.heartbeats} (tick {self.ticker.tick_count + 1})")

    def _signal_handler(self, signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        self._shutdown.set()

    def run(self, duration: float = 0.0) -> Optional[StopReport]:
        """
        Run until a signal arrives or ``duration`` seconds pass.

        Args:
            duration: Seconds to run; 0 runs until SIGINT/SIGTERM

        Returns:
            StopReport for the run
        """
        previous_handlers = {
            signum: signal.signal(signum, self._signal_handler)
            for signum in (signal.SIGTERM, signal.SIGINT)
        }

        if self.health_port:
            from .output.health_server import HealthServer
            self.health_server = HealthServer(port=self.health_port, bind_address=self.bind_address)
            self.health_server.set_ticker(self.ticker, self.stats)
            self.health_server.start()

        try:
            self.ticker.start()
            self._shutdown.wait(duration if duration > 0 else None)
            summary = self.stats.summary()
            report = self.ticker.stop()
        finally:
            # start() may have raised before stop() was reached
            if self.ticker.is_running:
                self.ticker.stop()
            if self.health_server:
                self.health_server.stop()
            for signum, handler in previous_handlers.items():
                signal.signal(signum, handler)

        logger.info("=" * 60)
        logger.info(f"Run complete: {report.tick_count} ticks in {report.elapsed_seconds:.3f}s")
        if summary['interval_mean_ms'] is not None:
            logger.info(
                f"Interval: mean={summary['interval_mean_ms']:.2f}ms "
                f"std={summary['interval_std_ms']:.2f}ms "
                f"p95={summary['interval_p95_ms']:.2f}ms "
                f"jitter={summary['jitter_ms']:.2f}ms"
            )
        if summary['duration_mean_ms'] is not None:
            logger.info(
                f"Tick duration: mean={summary['duration_mean_ms']:.3f}ms "
                f"max={summary['duration_max_ms']:.3f}ms"
            )
        logger.info("=" * 60)
        return report


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='interval-ticker: Periodic Action Runner',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Start with config file
    python -m interval_ticker --config /etc/interval-ticker/config.toml

    # 250ms period for one minute
    python -m interval_ticker --period 250 --duration 60
        """
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to TOML configuration file'
    )
    parser.add_argument(
        '--period', '-p',
        type=int,
        help='Tick period in milliseconds (overrides config)'
    )
    parser.add_argument(
        '--duration', '-t',
        type=float,
        default=0.0,
        help='Seconds to run before stopping (default: 0, run until interrupted)'
    )
    parser.add_argument(
        '--health-port',
        type=int,
        help='HTTP port for health monitoring endpoint (overrides config, 0 to disable)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)

    # Apply command-line overrides
    if args.period is not None:
        config.setdefault('ticker', {})['period_ms'] = args.period
    if args.health_port is not None:
        config.setdefault('output', {})['health_port'] = args.health_port

    daemon = TickerDaemon(config)
    daemon.run(duration=args.duration)


if __name__ == '__main__':
    main()
