"""
Configuration constants for the S3 load generator.

This module contains all configuration parameters including:
- Object store credentials and endpoint defaults (read from the environment)
- Benchmark run defaults (duration, threads, loops, object size)
- Worker and multipart failure-handling limits
- HTTP transport defaults for the object store client
- File size constants and conversion factors
"""

import os

# =============================================================================
# OBJECT STORE CONFIGURATION
# =============================================================================

AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
AWS_HOST: str = os.getenv("AWS_HOST", "")

DEFAULT_BUCKET: str = "loadgen"
DEFAULT_REGION: str = "us-east-1"

# =============================================================================
# BENCHMARK RUN DEFAULTS
# =============================================================================

DEFAULT_DURATION_SECONDS: int = 60  # Duration of each phase
DEFAULT_THREADS: int = 1
DEFAULT_LOOPS: int = 1
DEFAULT_OBJECT_SIZE: str = "1M"
DEFAULT_MULTIPART_THRESHOLD: str = "5G"

OBJECT_KEY_PREFIX: str = "Object-"
PAYLOAD_CONTENT_TYPE: str = "application/octet-stream"

# =============================================================================
# ERROR HANDLING
# =============================================================================

MAX_PART_ATTEMPTS: int = 3  # Attempts per multipart part before aborting the session
MAX_WORKER_ERRORS: int = 3  # Download/delete worker gives up after this many errors

# Error codes the store uses to ask the client to slow down
SLOWDOWN_ERROR_CODES = frozenset({
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "ServiceUnavailable",
    "503",
})
HTTP_SERVICE_UNAVAILABLE: int = 503

# Bucket creation errors that mean the bucket is already usable
BUCKET_EXISTS_ERROR_CODES = frozenset({
    "BucketAlreadyOwnedByYou",
    "BucketAlreadyExists",
})

# =============================================================================
# HTTP TRANSPORT DEFAULTS
# =============================================================================

CONNECT_TIMEOUT_SECONDS: float = 30.0
READ_TIMEOUT_SECONDS: float = 60.0
MAX_POOL_CONNECTIONS: int = 4096  # Idle connections kept per host
CLIENT_MAX_ATTEMPTS: int = 1  # Retries happen at the object level, not in botocore
TCP_KEEPALIVE: bool = True
VERIFY_TLS: bool = True

# =============================================================================
# FILE SIZE CONSTANTS
# =============================================================================

BYTE: int = 1
KILOBYTE: int = 1024 * BYTE
MEGABYTE: int = 1024 * KILOBYTE
GIGABYTE: int = 1024 * MEGABYTE
TERABYTE: int = 1024 * GIGABYTE
PETABYTE: int = 1024 * TERABYTE
EXABYTE: int = 1024 * PETABYTE

MAX_MULTIPART_THRESHOLD: int = 5 * GIGABYTE  # Largest part the store accepts

# =============================================================================
# KEY REGISTRY
# =============================================================================

KEY_REGISTRY_STRIPES: int = 16

# =============================================================================
# CLI DEFAULTS
# =============================================================================

DEFAULT_LOG_FILE: str = "benchmark.log"
LOG_FORMAT: str = "%(asctime)s - %(levelname)s - %(message)s"
