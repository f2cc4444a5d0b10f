"""
Command line entry point for the S3 load generator.
"""

import sys
import logging
import argparse
from typing import List, Optional

from s3bench.configuration import (
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    AWS_HOST,
    DEFAULT_BUCKET,
    DEFAULT_REGION,
    DEFAULT_DURATION_SECONDS,
    DEFAULT_THREADS,
    DEFAULT_LOOPS,
    DEFAULT_OBJECT_SIZE,
    DEFAULT_MULTIPART_THRESHOLD,
    DEFAULT_LOG_FILE,
    LOG_FORMAT,
)
from s3bench.settings import BenchmarkSettings, ConfigurationError, resolve_settings
from s3bench.common.payload import Payload
from s3bench.systems.base import ObjectStoreClient, ObjectStoreError
from s3bench.algorithms.coordinator import BenchmarkCoordinator
from s3bench.observability.prom import PrometheusExporter

logger = logging.getLogger(__name__)

BANNER = "S3 benchmark program v2.0"


def setup_logging(log_file: Optional[str], verbose: bool = False) -> None:
    """Log to the console and append to ``log_file``."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    if not root.handlers:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


class BenchmarkCLI:
    """CLI interface for the PUT/GET/DELETE throughput benchmark."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser."""
        parser = argparse.ArgumentParser(
            prog="s3bench",
            description="Throughput benchmark for S3-compatible object stores",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # 1 MiB objects, 8 threads, 60 seconds per phase
  s3bench -u http://localhost:9000 -a minioadmin -s minioadmin -t 8

  # 100 MiB objects uploaded in 16 MiB parts, 3 loops of 30 seconds
  s3bench -u https://s3.example.com -z 100M -m 16M -d 30 -l 3

  # Expose Prometheus metrics while the benchmark runs
  s3bench -u http://localhost:9000 --metrics-port 9100
            """,
        )
        parser.add_argument('-a', '--access-key', default=AWS_ACCESS_KEY_ID,
                            help='Access key (default: $AWS_ACCESS_KEY_ID)')
        parser.add_argument('-s', '--secret-key', default=AWS_SECRET_ACCESS_KEY,
                            help='Secret key (default: $AWS_SECRET_ACCESS_KEY)')
        parser.add_argument('-u', '--url', default=AWS_HOST,
                            help='URL for host with method prefix (default: $AWS_HOST)')
        parser.add_argument('-b', '--bucket', default=DEFAULT_BUCKET,
                            help=f'Bucket for testing (default: {DEFAULT_BUCKET})')
        parser.add_argument('-r', '--region', default=DEFAULT_REGION,
                            help=f'Region for testing (default: {DEFAULT_REGION})')
        parser.add_argument('-d', '--duration', type=float, default=DEFAULT_DURATION_SECONDS,
                            help=f'Duration of each test in seconds (default: {DEFAULT_DURATION_SECONDS})')
        parser.add_argument('-t', '--threads', type=int, default=DEFAULT_THREADS,
                            help=f'Number of threads to run (default: {DEFAULT_THREADS})')
        parser.add_argument('-l', '--loops', type=int, default=DEFAULT_LOOPS,
                            help=f'Number of times to repeat test (default: {DEFAULT_LOOPS})')
        parser.add_argument('-z', '--size', default=DEFAULT_OBJECT_SIZE,
                            help=f'Size of objects in bytes with postfix K, M, and G (default: {DEFAULT_OBJECT_SIZE})')
        parser.add_argument('-m', '--multipart-threshold', default=DEFAULT_MULTIPART_THRESHOLD,
                            help=f'Multipart upload threshold, at most 5G (default: {DEFAULT_MULTIPART_THRESHOLD})')
        parser.add_argument('--ignore-bucket-errors', action='store_true',
                            help='Continue when the bucket cannot be created')
        parser.add_argument('--metrics-port', type=int, default=None,
                            help='Expose Prometheus metrics on this port')
        parser.add_argument('--log-file', default=DEFAULT_LOG_FILE,
                            help=f'Append log lines to this file, empty to disable (default: {DEFAULT_LOG_FILE})')
        parser.add_argument('--insecure', action='store_true',
                            help='Skip TLS certificate verification')
        parser.add_argument('-v', '--verbose', action='store_true',
                            help='Log every operation')
        return parser

    def run_benchmark(self, settings: BenchmarkSettings) -> int:
        """Set up the bucket, run every loop and print the summary."""
        logger.info(f"Parameters: {settings.describe()}")

        exporter = None
        if settings.metrics_port:
            exporter = PrometheusExporter(settings.metrics_port)
            exporter.start_server()

        client = ObjectStoreClient(
            endpoint=settings.endpoint,
            bucket_name=settings.bucket,
            credentials=settings.credentials,
            transport=settings.transport,
        )
        payload = Payload(settings.object_size)

        coordinator = BenchmarkCoordinator(settings, client, payload, exporter=exporter)
        coordinator.setup()
        result = coordinator.run()

        for line in result.summary_lines(settings.endpoint, settings.threads, settings.size_arg):
            print(line)
        return 0

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI with the given arguments."""
        if args is None:
            args = sys.argv[1:]

        parsed_args = self.parser.parse_args(args)
        setup_logging(parsed_args.log_file or None, parsed_args.verbose)
        print(BANNER)

        try:
            settings = resolve_settings(parsed_args)
            return self.run_benchmark(settings)
        except ConfigurationError as e:
            logger.error(f"FATAL: {e}")
            return 1
        except ObjectStoreError as e:
            logger.error(f"FATAL: {e}")
            return 1
        except KeyboardInterrupt:
            logger.info("Benchmark interrupted by user")
            return 1


def main():
    """Main entry point."""
    cli = BenchmarkCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
