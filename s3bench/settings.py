"""
Validated settings record for one benchmark run.
"""

from argparse import Namespace
from dataclasses import dataclass, field
from typing import Optional

from s3bench.configuration import (
    DEFAULT_BUCKET,
    DEFAULT_REGION,
    DEFAULT_DURATION_SECONDS,
    DEFAULT_THREADS,
    DEFAULT_LOOPS,
    DEFAULT_OBJECT_SIZE,
    DEFAULT_MULTIPART_THRESHOLD,
    DEFAULT_LOG_FILE,
    MAX_MULTIPART_THRESHOLD,
)
from s3bench.common.sizes import parse_size
from s3bench.systems.base import TransportSettings


class ConfigurationError(ValueError):
    """The run cannot start with the given arguments."""


@dataclass
class BenchmarkSettings:
    access_key: str
    secret_key: str
    endpoint: str
    bucket: str = DEFAULT_BUCKET
    region: str = DEFAULT_REGION
    duration: float = DEFAULT_DURATION_SECONDS
    threads: int = DEFAULT_THREADS
    loops: int = DEFAULT_LOOPS
    size_arg: str = DEFAULT_OBJECT_SIZE
    object_size: int = 0
    multipart_threshold_arg: str = DEFAULT_MULTIPART_THRESHOLD
    multipart_threshold: int = 0
    ignore_bucket_errors: bool = False
    metrics_port: Optional[int] = None
    log_file: Optional[str] = DEFAULT_LOG_FILE
    transport: TransportSettings = field(default_factory=TransportSettings)

    @property
    def use_multipart(self) -> bool:
        """Whether uploads go through multipart sessions; fixed for the whole run."""
        return self.object_size > self.multipart_threshold

    @property
    def credentials(self) -> dict:
        return {
            "access_key_id": self.access_key,
            "secret_access_key": self.secret_key,
            "region_name": self.region,
        }

    def describe(self) -> str:
        return (
            f"url={self.endpoint}, bucket={self.bucket}, region={self.region}, "
            f"duration={self.duration:g}, threads={self.threads}, loops={self.loops}, "
            f"size={self.size_arg}, multipart-threshold={self.multipart_threshold_arg}, "
            f"use-multipart-upload={str(self.use_multipart).lower()}"
        )


def resolve_settings(args: Namespace) -> BenchmarkSettings:
    """Validate parsed CLI arguments into settings.

    Raises:
        ConfigurationError: On a missing credential or endpoint, an invalid
            size, or a non-positive duration, thread or loop count
    """
    if not args.access_key:
        raise ConfigurationError("Missing argument -a for access key.")
    if not args.secret_key:
        raise ConfigurationError("Missing argument -s for secret key.")
    if not args.url:
        raise ConfigurationError("Missing argument -u for host endpoint.")

    try:
        object_size = parse_size(args.size)
    except ValueError as e:
        raise ConfigurationError(f"Invalid -z argument for object size: {e}") from e
    try:
        multipart_threshold = parse_size(args.multipart_threshold)
    except ValueError as e:
        raise ConfigurationError(f"Invalid -m argument for multipart threshold: {e}") from e
    if multipart_threshold > MAX_MULTIPART_THRESHOLD:
        raise ConfigurationError("The multipart threshold cannot be greater than 5GB")

    if args.duration <= 0:
        raise ConfigurationError(f"Duration must be positive, got {args.duration}")
    if args.threads <= 0:
        raise ConfigurationError(f"Thread count must be positive, got {args.threads}")
    if args.loops <= 0:
        raise ConfigurationError(f"Loop count must be positive, got {args.loops}")

    return BenchmarkSettings(
        access_key=args.access_key,
        secret_key=args.secret_key,
        endpoint=args.url,
        bucket=args.bucket,
        region=args.region,
        duration=args.duration,
        threads=args.threads,
        loops=args.loops,
        size_arg=args.size,
        object_size=object_size,
        multipart_threshold_arg=args.multipart_threshold,
        multipart_threshold=multipart_threshold,
        ignore_bucket_errors=args.ignore_bucket_errors,
        metrics_port=args.metrics_port,
        log_file=args.log_file or None,
        transport=TransportSettings(verify_tls=not args.insecure),
    )
