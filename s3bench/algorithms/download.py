"""
Download phase worker.
"""

import logging

from s3bench.configuration import MAX_WORKER_ERRORS
from s3bench.common.key_registry import KeyRegistry
from s3bench.common.phase_runner import PhaseWorker
from s3bench.common.result_aggregator import ResultAggregator
from s3bench.systems.base import ObjectStoreClient, ObjectStoreError

logger = logging.getLogger(__name__)


class DownloadWorker(PhaseWorker):
    """Walks the uploaded keys and downloads each one in full.

    Workers do not partition the registry; several may download the same key.
    The error count is never reset by a success, so the worker gives up on
    its ``max_errors``-th failure overall.
    """

    def __init__(
        self,
        worker_id: int,
        client: ObjectStoreClient,
        registry: KeyRegistry,
        results: ResultAggregator,
        max_errors: int = MAX_WORKER_ERRORS,
    ):
        super().__init__(worker_id)
        self.client = client
        self.results = results
        self.max_errors = max_errors
        self.errors = 0
        self.bytes_read = 0
        self._keys = iter(registry)

    def step(self) -> bool:
        key = next(self._keys, None)
        if key is None:
            return False

        self.results.downloaded.increment()
        try:
            self.bytes_read += self.client.get(key)
        except ObjectStoreError as e:
            self.errors += 1
            self.results.download_slowdowns.increment()
            self.results.downloaded.decrement()
            logger.warning(f"download err: {e}")
            if self.errors >= self.max_errors:
                logger.error(
                    f"download thread {self.worker_id} stopping after {self.errors} errors"
                )
                return False
            return True
        except Exception:
            self.results.download_slowdowns.increment()
            self.results.downloaded.decrement()
            raise

        logger.debug(f"download thread {self.worker_id}, {key}")
        return True
