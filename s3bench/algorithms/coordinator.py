"""
Benchmark coordinator: runs the upload, download and delete phases per loop.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

from s3bench.configuration import MEGABYTE
from s3bench.common.key_registry import KeyRegistry
from s3bench.common.payload import Payload
from s3bench.common.phase_runner import Clock, RunWindow, run_phase
from s3bench.common.result_aggregator import ResultAggregator
from s3bench.common.sizes import format_size
from s3bench.settings import BenchmarkSettings
from s3bench.systems.base import ObjectStoreClient, ObjectStoreError
from s3bench.algorithms.upload import make_upload_worker_factory
from s3bench.algorithms.download import DownloadWorker
from s3bench.algorithms.delete import DeleteWorker

logger = logging.getLogger(__name__)


def rate(amount: float, elapsed: float) -> float:
    """Amount per second, 0 when no time elapsed."""
    if elapsed <= 0:
        return 0.0
    return amount / elapsed


def endpoint_name(endpoint: str) -> str:
    """Short name of an endpoint: the first label of its host name."""
    parsed = urlparse(endpoint if "://" in endpoint else f"//{endpoint}")
    host = parsed.hostname or endpoint
    return host.split(".")[0]


@dataclass
class PhaseResult:
    """Outcome of one phase of one loop."""

    phase: str
    elapsed: float
    objects: int
    bytes_per_second: float
    operations_per_second: float
    slowdowns: int

    @property
    def megabytes_per_second(self) -> float:
        return self.bytes_per_second / MEGABYTE


@dataclass
class LoopResult:
    loop: int
    upload: PhaseResult
    download: PhaseResult
    delete: PhaseResult


@dataclass
class BenchmarkResult:
    """Results of every loop; the reported speeds are those of the last loop."""

    loops: List[LoopResult] = field(default_factory=list)

    @property
    def upload_mbps(self) -> float:
        return self.loops[-1].upload.megabytes_per_second if self.loops else 0.0

    @property
    def download_mbps(self) -> float:
        return self.loops[-1].download.megabytes_per_second if self.loops else 0.0

    def summary_lines(self, endpoint: str, threads: int, size_arg: str) -> List[str]:
        """Final machine-parsable summary."""
        return [
            "result title: name-concurrency-size, uploadspeed, downloadspeed",
            f"result csv: {endpoint_name(endpoint)}-{threads}-{size_arg},"
            f"{self.upload_mbps:.2f},{self.download_mbps:.2f}",
        ]


class BenchmarkCoordinator:
    """Sequences the phases of each loop and computes their rates."""

    def __init__(
        self,
        settings: BenchmarkSettings,
        client: ObjectStoreClient,
        payload: Payload,
        exporter=None,
        clock: Clock = time.monotonic,
    ):
        """Initialize the coordinator.

        Args:
            settings: Validated run settings
            client: Store client shared by all workers
            payload: Payload generated once for the run
            exporter: Optional PrometheusExporter receiving phase results
            clock: Monotonic time source for run windows
        """
        self.settings = settings
        self.client = client
        self.payload = payload
        self.exporter = exporter
        self.clock = clock

        # Current loop state, replaced at the start of every loop
        self.results: Optional[ResultAggregator] = None
        self.registry: Optional[KeyRegistry] = None

        logger.info(
            f"Initialized coordinator: {settings.threads} threads, {settings.duration:g}s per phase, "
            f"{settings.loops} loops, {'multipart' if settings.use_multipart else 'single-part'} uploads"
        )

    def setup(self) -> None:
        """Create the bucket and remove any objects left in it.

        Raises:
            ObjectStoreError: If the bucket cannot be created (unless
                ignore_bucket_errors is set) or cannot be listed
        """
        try:
            self.client.create_bucket_if_absent()
        except ObjectStoreError as e:
            if not self.settings.ignore_bucket_errors:
                logger.error(
                    f"Unable to create bucket {self.settings.bucket} "
                    f"(is your access and secret correct?): {e}"
                )
                raise
            logger.warning(f"createBucket {self.settings.bucket} error, ignoring {e}")

        self.delete_all_objects()

    def delete_all_objects(self) -> int:
        """Delete every object in the bucket.

        Returns:
            Number of objects left afterwards
        """
        keys = list(self.client.list_all_keys())
        if not keys:
            return 0

        logger.info(f"got existing {len(keys)} objects, try to delete now...")
        for key in keys:
            try:
                self.client.delete(key)
            except ObjectStoreError as e:
                logger.warning(f"delete err: {e}")

        remaining = sum(1 for _ in self.client.list_all_keys())
        logger.info(f"after delete, got {remaining} objects")
        return remaining

    def run(self) -> BenchmarkResult:
        """Run every loop and return the collected results."""
        result = BenchmarkResult()
        if self.exporter:
            self.exporter.update_concurrency(self.settings.threads)

        for loop in range(1, self.settings.loops + 1):
            result.loops.append(self.run_loop(loop))

        return result

    def run_loop(self, loop: int) -> LoopResult:
        """Run upload, download and delete once, with fresh counters and registry."""
        self.results = ResultAggregator()
        self.registry = KeyRegistry()
        if self.exporter:
            self.exporter.update_loop(loop)

        upload = self.run_upload_phase(loop)
        download = self.run_download_phase(loop)
        delete = self.run_delete_phase(loop)
        return LoopResult(loop=loop, upload=upload, download=download, delete=delete)

    def run_upload_phase(self, loop: int) -> PhaseResult:
        window = RunWindow(self.settings.duration, self.clock)
        factory = make_upload_worker_factory(
            self.client,
            self.payload,
            self.registry,
            self.results,
            self.settings.multipart_threshold,
            self.settings.use_multipart,
            window,
        )
        run_phase(self.settings.threads, window, factory, "upload")
        elapsed = window.elapsed()

        uploaded = self.results.uploaded.value
        slowdowns = self.results.upload_slowdowns.value
        result = PhaseResult(
            phase="upload",
            elapsed=elapsed,
            objects=uploaded,
            bytes_per_second=rate(uploaded * self.payload.size, elapsed),
            operations_per_second=rate(uploaded, elapsed),
            slowdowns=slowdowns,
        )
        logger.info(
            f"Loop {loop}: PUT time {elapsed:.1f} secs, objects = {uploaded}, "
            f"speed = {format_size(result.bytes_per_second)}B/sec, "
            f"{result.operations_per_second:.1f} operations/sec. Slowdowns = {slowdowns}"
        )
        if len(self.registry) != uploaded:
            logger.warning(f"Key registry holds {len(self.registry)} keys, {uploaded} uploads counted")
        self._finish_phase(result)
        return result

    def run_download_phase(self, loop: int) -> PhaseResult:
        window = RunWindow(self.settings.duration, self.clock)

        def factory(worker_id: int) -> DownloadWorker:
            return DownloadWorker(worker_id, self.client, self.registry, self.results)

        run_phase(self.settings.threads, window, factory, "download")
        elapsed = window.elapsed()

        downloaded = self.results.downloaded.value
        slowdowns = self.results.download_slowdowns.value
        result = PhaseResult(
            phase="download",
            elapsed=elapsed,
            objects=downloaded,
            bytes_per_second=rate(downloaded * self.payload.size, elapsed),
            operations_per_second=rate(downloaded, elapsed),
            slowdowns=slowdowns,
        )
        logger.info(
            f"Loop {loop}: GET time {elapsed:.1f} secs, objects = {downloaded}, "
            f"speed = {format_size(result.bytes_per_second)}B/sec, "
            f"{result.operations_per_second:.1f} operations/sec. Slowdowns = {slowdowns}"
        )
        self._finish_phase(result)
        return result

    def run_delete_phase(self, loop: int) -> PhaseResult:
        # Bounded by the work, not the clock
        window = RunWindow(None, self.clock)
        total = self.results.uploaded.value

        def factory(worker_id: int) -> DeleteWorker:
            return DeleteWorker(worker_id, self.client, self.results, total)

        run_phase(self.settings.threads, window, factory, "delete")
        elapsed = window.elapsed()

        slowdowns = self.results.delete_slowdowns.value
        result = PhaseResult(
            phase="delete",
            elapsed=elapsed,
            objects=self.results.deleted.value,
            bytes_per_second=0.0,
            operations_per_second=rate(total, elapsed),
            slowdowns=slowdowns,
        )
        logger.info(
            f"Loop {loop}: DELETE time {elapsed:.1f} secs, "
            f"{result.operations_per_second:.1f} deletes/sec. Slowdowns = {slowdowns}"
        )
        self._finish_phase(result)
        return result

    def _finish_phase(self, result: PhaseResult) -> None:
        if self.exporter:
            self.exporter.record_phase(
                result.phase,
                result.objects,
                result.slowdowns,
                result.bytes_per_second,
                result.operations_per_second,
            )
        logger.debug(
            f"{result.phase} finished with {self.client.get_connection_count()} established connections"
        )
