"""
Upload phase workers: single-part PUT and multipart.
"""

import logging
from typing import Optional

from s3bench.common.key_registry import KeyRegistry
from s3bench.common.payload import Payload, object_key
from s3bench.common.phase_runner import PhaseWorker, RunWindow
from s3bench.common.result_aggregator import ResultAggregator
from s3bench.systems.base import ObjectStoreClient, ObjectStoreError
from s3bench.algorithms.multipart import MultipartUploadController

logger = logging.getLogger(__name__)


class UploadWorker(PhaseWorker):
    """Uploads the payload under a fresh key on every step.

    The key index is claimed by incrementing ``uploaded``; a failed upload
    gives the index back so only confirmed uploads are counted.
    """

    def __init__(
        self,
        worker_id: int,
        client: ObjectStoreClient,
        payload: Payload,
        registry: KeyRegistry,
        results: ResultAggregator,
    ):
        super().__init__(worker_id)
        self.client = client
        self.payload = payload
        self.registry = registry
        self.results = results

    def step(self) -> bool:
        index = self.results.uploaded.increment()
        key = object_key(index)

        try:
            self._upload(key)
        except ObjectStoreError as e:
            self.results.upload_slowdowns.increment()
            self.results.uploaded.decrement()
            if e.throttled:
                logger.warning(f"upload slowdown: {e}")
            else:
                logger.error(f"upload err: {e}")
            return True
        except Exception:
            # Release the index before the runner ends this worker
            self.results.upload_slowdowns.increment()
            self.results.uploaded.decrement()
            raise

        self.registry.add(key)
        logger.debug(f"upload thread {self.worker_id}, {key}")
        return True

    def _upload(self, key: str) -> None:
        self.client.put(key, self.payload.data)


class MultipartUploadWorker(UploadWorker):
    """Upload worker that sends the payload through a multipart session."""

    def __init__(
        self,
        worker_id: int,
        client: ObjectStoreClient,
        payload: Payload,
        registry: KeyRegistry,
        results: ResultAggregator,
        part_size: int,
        window: Optional[RunWindow] = None,
    ):
        super().__init__(worker_id, client, payload, registry, results)
        self.controller = MultipartUploadController(client, payload, part_size, window=window)

    def _upload(self, key: str) -> None:
        self.controller.upload(key)


def make_upload_worker_factory(
    client: ObjectStoreClient,
    payload: Payload,
    registry: KeyRegistry,
    results: ResultAggregator,
    multipart_threshold: int,
    use_multipart: bool,
    window: Optional[RunWindow] = None,
):
    """Build the upload worker factory for a phase.

    The path is fixed for the whole run by ``use_multipart``, decided once at
    startup from the object size and threshold.
    """
    if use_multipart:
        def factory(worker_id: int) -> PhaseWorker:
            return MultipartUploadWorker(
                worker_id, client, payload, registry, results, multipart_threshold, window
            )
    else:
        def factory(worker_id: int) -> PhaseWorker:
            return UploadWorker(worker_id, client, payload, registry, results)
    return factory
