"""
Prometheus metrics exporter for benchmark phases.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server

logger = logging.getLogger(__name__)


class PrometheusExporter:
    """Exposes per-phase results over HTTP for scraping."""

    def __init__(self, port: int = 9100, registry: Optional[CollectorRegistry] = None):
        self.port = port
        self.server_started = False
        self.registry = registry or CollectorRegistry()

        self.operations_total = Counter(
            's3bench_operations_total', 'Completed object operations',
            ['phase'], registry=self.registry,
        )
        self.slowdowns_total = Counter(
            's3bench_slowdowns_total', 'Failed or throttled object operations',
            ['phase'], registry=self.registry,
        )
        self.throughput = Gauge(
            's3bench_throughput_bytes_per_second', 'Throughput of the last finished phase',
            ['phase'], registry=self.registry,
        )
        self.operations_rate = Gauge(
            's3bench_operations_per_second', 'Operation rate of the last finished phase',
            ['phase'], registry=self.registry,
        )
        self.concurrency = Gauge(
            's3bench_concurrency', 'Worker threads per phase', registry=self.registry,
        )
        self.loop = Gauge(
            's3bench_loop', 'Current loop iteration', registry=self.registry,
        )

    def start_server(self) -> None:
        """Start the Prometheus HTTP server."""
        if self.server_started:
            return
        try:
            start_http_server(self.port, registry=self.registry)
            self.server_started = True
            logger.info(f"Prometheus server started on port {self.port}")
        except OSError as e:
            logger.error(f"Failed to start Prometheus server: {e}")

    def record_phase(self, phase: str, objects: int, slowdowns: int,
                     bytes_per_second: float, operations_per_second: float) -> None:
        """Record the results of a finished phase."""
        self.operations_total.labels(phase=phase).inc(max(objects, 0))
        self.slowdowns_total.labels(phase=phase).inc(max(slowdowns, 0))
        self.throughput.labels(phase=phase).set(bytes_per_second)
        self.operations_rate.labels(phase=phase).set(operations_per_second)

    def update_concurrency(self, concurrency: int) -> None:
        self.concurrency.set(concurrency)

    def update_loop(self, loop: int) -> None:
        self.loop.set(loop)
