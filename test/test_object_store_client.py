"""
Tests for the boto3-backed object store client, using a mocked S3 client.
"""

import unittest
from unittest.mock import Mock, patch

from botocore.exceptions import ClientError, EndpointConnectionError

from s3bench.systems.base import (
    MultipartSession,
    ObjectStoreClient,
    ObjectStoreError,
    SlowDownError,
    TransportSettings,
    classify_error,
)


def client_error(code, status=400, operation="PutObject"):
    return ClientError(
        {"Error": {"Code": code, "Message": code},
         "ResponseMetadata": {"HTTPStatusCode": status}},
        operation,
    )


class TestClassifyError(unittest.TestCase):
    """Test classify_error."""

    def test_slowdown_codes(self):
        for code, status in [("SlowDown", 503), ("Throttling", 400), ("InternalError", 503)]:
            with self.subTest(code=code):
                error = classify_error("PUT", "Object-1", client_error(code, status))
                self.assertIsInstance(error, SlowDownError)
                self.assertTrue(error.throttled)

    def test_other_errors(self):
        error = classify_error("PUT", "Object-1", client_error("AccessDenied", 403))
        self.assertNotIsInstance(error, SlowDownError)
        self.assertFalse(error.throttled)
        self.assertEqual(error.code, "AccessDenied")
        self.assertIn("PUT Object-1 failed", str(error))

    def test_transport_errors(self):
        cause = EndpointConnectionError(endpoint_url="http://localhost:9000")
        error = classify_error("GET", "Object-1", cause)
        self.assertIsInstance(error, ObjectStoreError)
        self.assertFalse(error.throttled)
        self.assertIs(error.cause, cause)


class TestTransportSettings(unittest.TestCase):
    """Test TransportSettings.to_config."""

    def test_config(self):
        config = TransportSettings(connect_timeout=5, read_timeout=10,
                                   max_pool_connections=64).to_config("eu-west-1")

        self.assertEqual(config.region_name, "eu-west-1")
        self.assertEqual(config.connect_timeout, 5)
        self.assertEqual(config.read_timeout, 10)
        self.assertEqual(config.max_pool_connections, 64)
        self.assertEqual(config.retries, {"max_attempts": 1, "mode": "standard"})
        self.assertEqual(config.s3["addressing_style"], "path")
        self.assertFalse(config.s3["payload_signing_enabled"])


class TestObjectStoreClient(unittest.TestCase):
    """Test ObjectStoreClient against a mocked boto3 client."""

    def setUp(self):
        self.s3 = Mock()
        self.client = ObjectStoreClient(
            "http://localhost:9000",
            "loadgen",
            {"access_key_id": "a", "secret_access_key": "s", "region_name": "us-east-1"},
            client=self.s3,
        )

    def test_put(self):
        self.client.put("Object-1", memoryview(b"abc"))
        self.s3.put_object.assert_called_once_with(Bucket="loadgen", Key="Object-1", Body=b"abc")

    def test_put_slowdown(self):
        self.s3.put_object.side_effect = client_error("SlowDown", 503)
        with self.assertRaises(SlowDownError) as ctx:
            self.client.put("Object-1", b"abc")
        self.assertEqual(ctx.exception.key, "Object-1")

    def test_get_drains_body(self):
        body = Mock()
        body.read.side_effect = [b"a" * 10, b"b" * 5, b""]
        self.s3.get_object.return_value = {"Body": body}

        self.assertEqual(self.client.get("Object-1"), 15)
        body.close.assert_called_once()

    def test_get_missing_key(self):
        self.s3.get_object.side_effect = client_error("NoSuchKey", 404, "GetObject")
        with self.assertRaises(ObjectStoreError) as ctx:
            self.client.get("Object-9")
        self.assertFalse(ctx.exception.throttled)

    def test_delete(self):
        self.client.delete("Object-1")
        self.s3.delete_object.assert_called_once_with(Bucket="loadgen", Key="Object-1")

    def test_multipart_calls(self):
        self.s3.create_multipart_upload.return_value = {"UploadId": "u-1"}
        self.s3.upload_part.return_value = {"ETag": '"e1"'}

        session = self.client.create_multipart_session("Object-1", total_size=3)
        etag = self.client.upload_part(session, 1, memoryview(b"abc"))
        session.add_part(1, etag, 3)
        self.client.complete_multipart_session(session)

        self.assertEqual(session.upload_id, "u-1")
        self.assertEqual(session.remaining, 0)
        self.s3.upload_part.assert_called_once_with(
            Bucket="loadgen", Key="Object-1", UploadId="u-1",
            PartNumber=1, ContentLength=3, Body=b"abc",
        )
        self.s3.complete_multipart_upload.assert_called_once_with(
            Bucket="loadgen", Key="Object-1", UploadId="u-1",
            MultipartUpload={"Parts": [{"ETag": '"e1"', "PartNumber": 1}]},
        )

    def test_abort(self):
        session = MultipartSession("Object-1", "u-2")
        with self.assertLogs("s3bench.systems.base", level="INFO") as logs:
            self.client.abort_multipart_session(session)

        self.s3.abort_multipart_upload.assert_called_once_with(
            Bucket="loadgen", Key="Object-1", UploadId="u-2"
        )
        self.assertTrue(any("UploadId#u-2" in line for line in logs.output))

    def test_create_bucket(self):
        self.assertTrue(self.client.create_bucket_if_absent())

        self.s3.create_bucket.side_effect = client_error("BucketAlreadyOwnedByYou", 409)
        self.assertFalse(self.client.create_bucket_if_absent())

        self.s3.create_bucket.side_effect = client_error("AccessDenied", 403)
        with self.assertRaises(ObjectStoreError):
            self.client.create_bucket_if_absent()

    def test_list_all_keys(self):
        paginator = Mock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "a"}, {"Key": "b"}]},
            {"Contents": [{"Key": "c"}]},
            {},
        ]
        self.s3.get_paginator.return_value = paginator

        self.assertEqual(list(self.client.list_all_keys()), ["a", "b", "c"])
        self.s3.get_paginator.assert_called_once_with("list_objects_v2")
        paginator.paginate.assert_called_once_with(Bucket="loadgen")

    def test_connection_count(self):
        self.assertIsInstance(self.client.get_connection_count(), int)

    def test_builds_boto3_client(self):
        with patch("s3bench.systems.base.boto3.session.Session") as session_cls:
            client = ObjectStoreClient(
                "https://s3.example.com", "loadgen",
                {"access_key_id": "a", "secret_access_key": "s", "region_name": "eu-west-1"},
                transport=TransportSettings(verify_tls=False),
            )

        session_cls.assert_called_once_with(
            aws_access_key_id="a", aws_secret_access_key="s", region_name="eu-west-1"
        )
        kwargs = session_cls.return_value.client.call_args.kwargs
        self.assertEqual(kwargs["endpoint_url"], "https://s3.example.com")
        self.assertFalse(kwargs["verify"])
        self.assertIs(client.client, session_cls.return_value.client.return_value)


if __name__ == '__main__':
    unittest.main()
