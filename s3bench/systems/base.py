"""
Object store client used by the benchmark workers, backed by boto3.
"""

import os
import logging
from typing import Any, Dict, Iterator, List, Optional

# Silence the SDK before it is imported; failures are reported by the workers
logging.getLogger('botocore').setLevel(logging.CRITICAL)
logging.getLogger('botocore.credentials').setLevel(logging.CRITICAL)
logging.getLogger('boto3').setLevel(logging.CRITICAL)
logging.getLogger('urllib3').setLevel(logging.CRITICAL)
logging.getLogger('s3transfer').setLevel(logging.CRITICAL)

import boto3
import psutil
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from s3bench.configuration import (
    CONNECT_TIMEOUT_SECONDS,
    READ_TIMEOUT_SECONDS,
    MAX_POOL_CONNECTIONS,
    CLIENT_MAX_ATTEMPTS,
    TCP_KEEPALIVE,
    VERIFY_TLS,
    SLOWDOWN_ERROR_CODES,
    HTTP_SERVICE_UNAVAILABLE,
    BUCKET_EXISTS_ERROR_CODES,
    PAYLOAD_CONTENT_TYPE,
)

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024 * 1024


class ObjectStoreError(Exception):
    """A store operation failed."""

    def __init__(self, operation: str, key: Optional[str], cause: Exception, code: str = ""):
        self.operation = operation
        self.key = key
        self.cause = cause
        self.code = code
        target = f" {key}" if key else ""
        super().__init__(f"{operation}{target} failed: {cause}")

    @property
    def throttled(self) -> bool:
        return False


class SlowDownError(ObjectStoreError):
    """The store rejected the request asking the client to reduce its rate."""

    @property
    def throttled(self) -> bool:
        return True


def classify_error(operation: str, key: Optional[str], error: Exception) -> ObjectStoreError:
    """Wrap an SDK exception into a throttling or a plain store error."""
    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        code = str(details.get("Code", ""))
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if code in SLOWDOWN_ERROR_CODES or status == HTTP_SERVICE_UNAVAILABLE:
            return SlowDownError(operation, key, error, code)
        return ObjectStoreError(operation, key, error, code)
    return ObjectStoreError(operation, key, error)


class TransportSettings:
    """HTTP transport tuning for the store client."""

    def __init__(
        self,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
        read_timeout: float = READ_TIMEOUT_SECONDS,
        max_pool_connections: int = MAX_POOL_CONNECTIONS,
        max_attempts: int = CLIENT_MAX_ATTEMPTS,
        tcp_keepalive: bool = TCP_KEEPALIVE,
        verify_tls: bool = VERIFY_TLS,
    ):
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.max_pool_connections = max_pool_connections
        self.max_attempts = max_attempts
        self.tcp_keepalive = tcp_keepalive
        self.verify_tls = verify_tls

    def to_config(self, region: str) -> Config:
        """Build the botocore config for these settings."""
        return Config(
            region_name=region,
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
            max_pool_connections=self.max_pool_connections,
            retries={
                'max_attempts': self.max_attempts,
                'mode': 'standard',
            },
            s3={
                'addressing_style': 'path',
                'payload_signing_enabled': False,  # Skip hashing the body
            },
            tcp_keepalive=self.tcp_keepalive,
        )

    def __repr__(self) -> str:
        return (
            f"TransportSettings(connect_timeout={self.connect_timeout}, "
            f"read_timeout={self.read_timeout}, pool={self.max_pool_connections}, "
            f"verify_tls={self.verify_tls})"
        )


class MultipartSession:
    """State of one open multipart upload."""

    def __init__(self, key: str, upload_id: str, total_size: int = 0):
        self.key = key
        self.upload_id = upload_id
        self.remaining = total_size
        self.completed_parts: List[Dict[str, Any]] = []

    def add_part(self, part_number: int, etag: str, length: int) -> None:
        """Record a part the store confirmed."""
        self.completed_parts.append({"ETag": etag, "PartNumber": part_number})
        self.remaining -= length

    def __repr__(self) -> str:
        return (
            f"MultipartSession(key='{self.key}', upload_id='{self.upload_id}', "
            f"parts={len(self.completed_parts)}, remaining={self.remaining})"
        )


class ObjectStoreClient:
    """Thread-safe S3 client bound to one bucket.

    Every failing operation raises ``ObjectStoreError`` (``SlowDownError``
    for throttling).
    """

    def __init__(
        self,
        endpoint: str,
        bucket_name: str,
        credentials: dict,
        transport: Optional[TransportSettings] = None,
        client=None,
    ):
        """Initialize the client.

        Args:
            endpoint: Endpoint URL including the scheme
            bucket_name: Bucket every operation targets
            credentials: Dict with access_key_id, secret_access_key and region_name
            transport: HTTP transport settings (default: TransportSettings())
            client: Prebuilt boto3 S3 client, mostly for tests
        """
        self.endpoint = endpoint
        self.bucket_name = bucket_name
        self.transport = transport or TransportSettings()
        self.region = credentials.get("region_name", "us-east-1")

        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=credentials.get("access_key_id"),
                aws_secret_access_key=credentials.get("secret_access_key"),
                region_name=self.region,
            )
            client = session.client(
                "s3",
                endpoint_url=endpoint,
                verify=self.transport.verify_tls,
                config=self.transport.to_config(self.region),
            )
        self.client = client

        logger.info(
            f"Initialized object store client for {endpoint}, bucket {bucket_name} "
            f"(max_pool_connections={self.transport.max_pool_connections})"
        )

    def put(self, key: str, body) -> None:
        """Upload a whole object in one request."""
        try:
            self.client.put_object(Bucket=self.bucket_name, Key=key, Body=bytes(body))
        except (ClientError, BotoCoreError) as e:
            raise classify_error("PUT", key, e) from e

    def get(self, key: str) -> int:
        """Download an object and drain its body.

        Returns:
            Number of bytes read
        """
        try:
            response = self.client.get_object(Bucket=self.bucket_name, Key=key)
            body = response["Body"]
            total = 0
            try:
                for chunk in iter(lambda: body.read(READ_CHUNK_SIZE), b""):
                    total += len(chunk)
            finally:
                body.close()
            return total
        except (ClientError, BotoCoreError) as e:
            raise classify_error("GET", key, e) from e

    def delete(self, key: str) -> None:
        """Delete one object."""
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise classify_error("DELETE", key, e) from e

    def create_multipart_session(
        self, key: str, content_type: str = PAYLOAD_CONTENT_TYPE, total_size: int = 0
    ) -> MultipartSession:
        """Open a multipart upload for ``key``."""
        try:
            response = self.client.create_multipart_upload(
                Bucket=self.bucket_name, Key=key, ContentType=content_type
            )
        except (ClientError, BotoCoreError) as e:
            raise classify_error("CreateMultipartUpload", key, e) from e
        return MultipartSession(key, response["UploadId"], total_size)

    def upload_part(self, session: MultipartSession, part_number: int, data) -> str:
        """Upload one part and return its ETag."""
        try:
            response = self.client.upload_part(
                Bucket=self.bucket_name,
                Key=session.key,
                UploadId=session.upload_id,
                PartNumber=part_number,
                ContentLength=len(data),
                Body=bytes(data),
            )
        except (ClientError, BotoCoreError) as e:
            raise classify_error(f"UploadPart #{part_number}", session.key, e) from e
        return response["ETag"]

    def complete_multipart_session(self, session: MultipartSession) -> None:
        """Assemble the object from the session's completed parts."""
        try:
            self.client.complete_multipart_upload(
                Bucket=self.bucket_name,
                Key=session.key,
                UploadId=session.upload_id,
                MultipartUpload={"Parts": list(session.completed_parts)},
            )
        except (ClientError, BotoCoreError) as e:
            raise classify_error("CompleteMultipartUpload", session.key, e) from e

    def abort_multipart_session(self, session: MultipartSession) -> None:
        """Discard an open multipart upload and its parts."""
        logger.info(f"Aborting multipart upload for UploadId#{session.upload_id}")
        try:
            self.client.abort_multipart_upload(
                Bucket=self.bucket_name, Key=session.key, UploadId=session.upload_id
            )
        except (ClientError, BotoCoreError) as e:
            raise classify_error("AbortMultipartUpload", session.key, e) from e

    def create_bucket_if_absent(self) -> bool:
        """Create the bucket.

        Returns:
            True if it was created, False if it already existed
        """
        try:
            self.client.create_bucket(Bucket=self.bucket_name)
            logger.info(f"Created bucket {self.bucket_name}")
            return True
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in BUCKET_EXISTS_ERROR_CODES:
                logger.debug(f"Bucket {self.bucket_name} already exists")
                return False
            raise classify_error("CreateBucket", self.bucket_name, e) from e
        except BotoCoreError as e:
            raise classify_error("CreateBucket", self.bucket_name, e) from e

    def list_all_keys(self) -> Iterator[str]:
        """Yield every key in the bucket, following pagination."""
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name):
                for item in page.get("Contents", []):
                    yield item["Key"]
        except (ClientError, BotoCoreError) as e:
            raise classify_error("ListObjects", self.bucket_name, e) from e

    def get_connection_count(self) -> int:
        """Get number of established connections for this process."""
        try:
            process = psutil.Process(os.getpid())
            connections = process.net_connections(kind='inet')
        except psutil.Error as e:
            logger.debug(f"Failed to get connection count: {e}")
            return -1
        return sum(1 for c in connections if c.status == psutil.CONN_ESTABLISHED)

    def __repr__(self) -> str:
        return f"ObjectStoreClient(endpoint='{self.endpoint}', bucket='{self.bucket_name}')"
