"""
Delete phase worker.
"""

import logging

from s3bench.configuration import MAX_WORKER_ERRORS
from s3bench.common.payload import object_key
from s3bench.common.phase_runner import PhaseWorker
from s3bench.common.result_aggregator import ResultAggregator
from s3bench.systems.base import ObjectStoreClient, ObjectStoreError

logger = logging.getLogger(__name__)


class DeleteWorker(PhaseWorker):
    """Deletes ``Object-1`` .. ``Object-<total>``, claiming indexes from ``deleted``.

    The phase ends when every index has been claimed. A failed delete gives
    its index back so the slot is claimed again, by this or another worker.
    """

    def __init__(
        self,
        worker_id: int,
        client: ObjectStoreClient,
        results: ResultAggregator,
        total: int,
        max_errors: int = MAX_WORKER_ERRORS,
    ):
        super().__init__(worker_id)
        self.client = client
        self.results = results
        self.total = total
        self.max_errors = max_errors
        self.errors = 0

    def step(self) -> bool:
        index = self.results.deleted.increment()
        if index > self.total:
            self.results.deleted.decrement()
            return False

        key = object_key(index)
        try:
            self.client.delete(key)
        except ObjectStoreError as e:
            self.errors += 1
            self.results.delete_slowdowns.increment()
            self.results.deleted.decrement()
            logger.warning(f"delete err: {e}")
            if self.errors >= self.max_errors:
                logger.error(
                    f"delete thread {self.worker_id} stopping after {self.errors} errors"
                )
                return False
            return True
        except Exception:
            self.results.delete_slowdowns.increment()
            self.results.deleted.decrement()
            raise

        logger.debug(f"delete thread {self.worker_id}, {key}")
        return True
