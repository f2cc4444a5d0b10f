"""
In-memory object store and manual clock used by the tests.
"""

import threading
import itertools
from typing import Callable, Dict, List, Optional, Tuple

from botocore.exceptions import ClientError

from s3bench.systems.base import MultipartSession, ObjectStoreError, SlowDownError


def slowdown(operation: str, key: str) -> SlowDownError:
    error = ClientError(
        {"Error": {"Code": "SlowDown", "Message": "Please reduce your request rate."},
         "ResponseMetadata": {"HTTPStatusCode": 503}},
        operation,
    )
    return SlowDownError(operation, key, error, "SlowDown")


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeObjectStore:
    """Thread-safe stand-in for ObjectStoreClient.

    ``fail`` decides per call whether it raises: it receives the operation
    name and key (``"upload_part"`` also gets ``#<part number>`` appended).
    """

    def __init__(self, fail: Optional[Callable[[str, str], bool]] = None, latency: float = 0.0,
                 bucket_error: Optional[ObjectStoreError] = None):
        self.objects: Dict[str, bytes] = {}
        self.calls: List[Tuple[str, str]] = []
        self.completed: Dict[str, List[dict]] = {}
        self.aborted: List[str] = []
        self.part_sizes: Dict[str, List[int]] = {}
        self.fail = fail or (lambda operation, key: False)
        self.latency = latency
        self.bucket_error = bucket_error
        self.bucket_created = False
        self._lock = threading.Lock()
        self._upload_ids = itertools.count(1)
        self._sleep = threading.Event()

    def _call(self, operation: str, key: str) -> None:
        with self._lock:
            self.calls.append((operation, key))
        if self.latency:
            self._sleep.wait(self.latency)
        if self.fail(operation, key):
            raise slowdown(operation, key)

    def operations(self, operation: str) -> List[str]:
        with self._lock:
            return [key for op, key in self.calls if op == operation]

    def put(self, key, body):
        self._call("put", key)
        with self._lock:
            self.objects[key] = bytes(body)

    def get(self, key):
        self._call("get", key)
        with self._lock:
            if key not in self.objects:
                raise ObjectStoreError("GET", key, KeyError(key), "NoSuchKey")
            return len(self.objects[key])

    def delete(self, key):
        self._call("delete", key)
        with self._lock:
            self.objects.pop(key, None)

    def create_multipart_session(self, key, content_type="application/octet-stream", total_size=0):
        self._call("create_multipart", key)
        return MultipartSession(key, f"upload-{next(self._upload_ids)}", total_size)

    def upload_part(self, session, part_number, data):
        self._call("upload_part", f"{session.key}#{part_number}")
        with self._lock:
            self.part_sizes.setdefault(session.upload_id, []).append(len(data))
        return f'"etag-{part_number}"'

    def complete_multipart_session(self, session):
        self._call("complete_multipart", session.key)
        with self._lock:
            self.completed[session.key] = list(session.completed_parts)
            self.objects[session.key] = b"x" * sum(self.part_sizes.get(session.upload_id, []))

    def abort_multipart_session(self, session):
        self._call("abort_multipart", session.key)
        with self._lock:
            self.aborted.append(session.upload_id)

    def create_bucket_if_absent(self):
        if self.bucket_error is not None:
            raise self.bucket_error
        created = not self.bucket_created
        self.bucket_created = True
        return created

    def list_all_keys(self):
        with self._lock:
            return iter(list(self.objects))

    def get_connection_count(self):
        return 0


class BrokenStore(FakeObjectStore):
    """Store whose object calls raise an error the client adapter never wraps."""

    def put(self, key, body):
        self._call("put", key)
        raise RuntimeError(f"connection reset while writing {key}")

    def get(self, key):
        self._call("get", key)
        raise RuntimeError(f"connection reset while reading {key}")

    def delete(self, key):
        self._call("delete", key)
        raise RuntimeError(f"connection reset while deleting {key}")
