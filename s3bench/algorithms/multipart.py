"""
Multipart upload of the shared payload with bounded per-part retry.
"""

import logging
from typing import Optional

from s3bench.configuration import MAX_PART_ATTEMPTS
from s3bench.common.payload import Payload
from s3bench.common.phase_runner import RunWindow
from s3bench.systems.base import MultipartSession, ObjectStoreClient, ObjectStoreError

logger = logging.getLogger(__name__)


class MultipartUploadController:
    """Uploads the payload as ``ceil(size / part_size)`` sequential parts.

    A part that still fails after ``max_attempts`` attempts aborts the whole
    session, and so does a failed completion: a session is always either
    completed or aborted, never left open.
    """

    def __init__(
        self,
        client: ObjectStoreClient,
        payload: Payload,
        part_size: int,
        max_attempts: int = MAX_PART_ATTEMPTS,
        window: Optional[RunWindow] = None,
    ):
        """Initialize the controller.

        Args:
            client: Store client
            payload: Shared payload to upload
            part_size: Length of every part but the last (the multipart threshold)
            max_attempts: Attempts per part before giving up
            window: Phase run window; retries are not started once it expired
        """
        if part_size <= 0:
            raise ValueError(f"Part size must be positive, got {part_size}")
        if max_attempts <= 0:
            raise ValueError(f"Attempts must be positive, got {max_attempts}")

        self.client = client
        self.payload = payload
        self.part_size = part_size
        self.max_attempts = max_attempts
        self.window = window

    def upload(self, key: str) -> MultipartSession:
        """Upload the payload under ``key``.

        Returns:
            The completed session

        Raises:
            ObjectStoreError: If initiation, a part, or completion failed, or
                the run window expired between parts. The session has been
                aborted by then.
        """
        session = self.client.create_multipart_session(
            key, self.payload.content_type, len(self.payload)
        )

        logger.debug(
            f"Uploading {key} in {self.payload.part_count(self.part_size)} parts "
            f"(UploadId#{session.upload_id})"
        )

        try:
            for part_number, data in self.payload.parts(self.part_size):
                if part_number > 1 and self.window is not None and self.window.expired():
                    raise ObjectStoreError(
                        f"UploadPart #{part_number}", key, TimeoutError("run window expired")
                    )
                etag = self._upload_part(session, part_number, data)
                session.add_part(part_number, etag, len(data))
            self.client.complete_multipart_session(session)
        except ObjectStoreError:
            self._abort(session)
            raise

        logger.debug(f"Completed multipart upload of {key} in {len(session.completed_parts)} parts")
        return session

    def _upload_part(self, session: MultipartSession, part_number: int, data) -> str:
        """Upload one part, retrying up to the attempt budget."""
        attempt = 1
        while True:
            try:
                return self.client.upload_part(session, part_number, data)
            except ObjectStoreError as e:
                if attempt >= self.max_attempts:
                    logger.warning(
                        f"Part {part_number} of {session.key} failed after {attempt} attempts: {e}"
                    )
                    raise
                if self.window is not None and self.window.expired():
                    logger.warning(
                        f"Part {part_number} of {session.key} failed after the deadline, not retrying: {e}"
                    )
                    raise
                logger.debug(f"Retrying part {part_number} of {session.key} (attempt {attempt}): {e}")
                attempt += 1

    def _abort(self, session: MultipartSession) -> None:
        try:
            self.client.abort_multipart_session(session)
        except ObjectStoreError as e:
            logger.error(f"Failed to abort multipart upload {session.upload_id}: {e}")
