"""Pytest configuration and shared fixtures.

Organization:
    - Environment Fixtures: isolate tests from S3_*/LOG_* variables and conf files
    - Fake Backend Fixtures: in-memory stand-in for the aioboto3 S3 surface
    - Client Fixtures: ready-to-use S3Client instances in both namespace modes

The fake backend implements only the calls S3Client makes and raises real
botocore ClientError instances, so error mapping is exercised end to end.
"""

from __future__ import annotations

import asyncio
import hashlib
import io
import os
from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime
from typing import Any

import pytest
from botocore.exceptions import ClientError

from s3_service.core.settings import NamespaceMode, clear_all_caches
from s3_service.infra.storage import ClientOptions, S3Client

# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Generator[None]:
    """Run every test without ambient configuration.

    Removes S3_* and LOG_* variables, points the conf.d loaders at an empty
    directory and moves into tmp_path so no stray .env file is read.
    """
    for name in list(os.environ):
        if name.startswith(("S3_", "LOG_", "LOGGING_")):
            monkeypatch.delenv(name, raising=False)

    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    monkeypatch.setenv("S3_CONFIG_DIR", str(conf_dir))
    monkeypatch.setenv("LOGGING_CONFIG_DIR", str(conf_dir))
    monkeypatch.chdir(tmp_path)

    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture
def conf_dir(tmp_path):
    """Directory read by the storage and logging YAML sources."""
    return tmp_path / "conf"


# ============================================================================
# Fake Backend Fixtures
# ============================================================================


def _client_error(code: str, message: str, operation: str, status: int = 400) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"RequestId": "req-test", "HTTPStatusCode": status},
        },
        operation,
    )


class FakeStreamingBody:
    """Stand-in for aiobotocore's StreamingBody."""

    def __init__(self, data: bytes) -> None:
        self._buffer = io.BytesIO(data)
        self.closed = False

    async def read(self, amt: int | None = None) -> bytes:
        if amt is None:
            return self._buffer.read()
        return self._buffer.read(amt)

    def close(self) -> None:
        self.closed = True


class FakeS3Client:
    """In-memory S3 client covering the calls S3Client makes.

    Attributes:
        buckets: bucket name -> key -> (body, content type)
        calls: (operation, kwargs) for every call, in order
        page_size: objects per list_objects_v2 page
        block: when set, every call waits on this event before running
        started: set once a blocked call is waiting
    """

    def __init__(self) -> None:
        self.buckets: dict[str, dict[str, tuple[bytes, str]]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.page_size = 1000
        self.block: asyncio.Event | None = None
        self.started = asyncio.Event()

    async def _enter(self, operation: str, kwargs: dict[str, Any]) -> None:
        self.calls.append((operation, kwargs))
        if self.block is not None:
            self.started.set()
            await self.block.wait()

    def _bucket(self, name: str, operation: str) -> dict[str, tuple[bytes, str]]:
        if name not in self.buckets:
            raise _client_error(
                "NoSuchBucket", "The specified bucket does not exist", operation, 404
            )
        return self.buckets[name]

    def calls_for(self, operation: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == operation]

    async def get_object(self, **kwargs: Any) -> dict[str, Any]:
        await self._enter("get_object", kwargs)
        objects = self._bucket(kwargs["Bucket"], "GetObject")
        if kwargs["Key"] not in objects:
            raise _client_error("NoSuchKey", "The specified key does not exist.", "GetObject", 404)
        body, content_type = objects[kwargs["Key"]]
        return {
            "Body": FakeStreamingBody(body),
            "ContentLength": len(body),
            "ContentType": content_type,
            "ETag": f'"{hashlib.md5(body).hexdigest()}"',
        }

    async def put_object(self, **kwargs: Any) -> dict[str, Any]:
        await self._enter("put_object", kwargs)
        objects = self._bucket(kwargs["Bucket"], "PutObject")
        body = kwargs["Body"]
        objects[kwargs["Key"]] = (body, kwargs.get("ContentType", "binary/octet-stream"))
        return {"ETag": f'"{hashlib.md5(body).hexdigest()}"'}

    async def delete_object(self, **kwargs: Any) -> dict[str, Any]:
        await self._enter("delete_object", kwargs)
        self._bucket(kwargs["Bucket"], "DeleteObject").pop(kwargs["Key"], None)
        return {}

    async def list_objects_v2(self, **kwargs: Any) -> dict[str, Any]:
        await self._enter("list_objects_v2", kwargs)
        objects = self._bucket(kwargs["Bucket"], "ListObjectsV2")
        prefix = kwargs.get("Prefix", "")
        delimiter = kwargs.get("Delimiter")

        entries: list[tuple[str, bool]] = []
        seen_prefixes: set[str] = set()
        for key in sorted(objects):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if delimiter and delimiter in rest:
                common = prefix + rest.split(delimiter, 1)[0] + delimiter
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    entries.append((common, True))
                continue
            entries.append((key, False))

        start = int(kwargs.get("ContinuationToken", "0"))
        page = entries[start : start + self.page_size]
        end = start + len(page)

        response: dict[str, Any] = {
            "KeyCount": len(page),
            "IsTruncated": end < len(entries),
            "Contents": [
                {
                    "Key": key,
                    "Size": len(objects[key][0]),
                    "LastModified": datetime(2024, 1, 1, tzinfo=UTC),
                    "ETag": f'"{hashlib.md5(objects[key][0]).hexdigest()}"',
                    "StorageClass": "STANDARD",
                }
                for key, is_prefix in page
                if not is_prefix
            ],
        }
        common_prefixes = [{"Prefix": key} for key, is_prefix in page if is_prefix]
        if common_prefixes:
            response["CommonPrefixes"] = common_prefixes
        if response["IsTruncated"]:
            response["NextContinuationToken"] = str(end)
        return response

    async def create_bucket(self, **kwargs: Any) -> dict[str, Any]:
        await self._enter("create_bucket", kwargs)
        if kwargs["Bucket"] in self.buckets:
            raise _client_error(
                "BucketAlreadyOwnedByYou",
                "Your previous request to create the named bucket succeeded and you already own it.",
                "CreateBucket",
                409,
            )
        self.buckets[kwargs["Bucket"]] = {}
        return {"Location": f"/{kwargs['Bucket']}"}

    async def delete_bucket(self, **kwargs: Any) -> dict[str, Any]:
        await self._enter("delete_bucket", kwargs)
        if self._bucket(kwargs["Bucket"], "DeleteBucket"):
            raise _client_error(
                "BucketNotEmpty", "The bucket you tried to delete is not empty", "DeleteBucket", 409
            )
        del self.buckets[kwargs["Bucket"]]
        return {}

    async def head_bucket(self, **kwargs: Any) -> dict[str, Any]:
        await self._enter("head_bucket", kwargs)
        if kwargs["Bucket"] not in self.buckets:
            raise _client_error("404", "Not Found", "HeadBucket", 404)
        return {}

    async def list_buckets(self, **kwargs: Any) -> dict[str, Any]:
        await self._enter("list_buckets", kwargs)
        return {"Buckets": [{"Name": name} for name in sorted(self.buckets)]}

    async def generate_presigned_url(
        self,
        ClientMethod: str,
        Params: dict[str, Any],
        ExpiresIn: int,
    ) -> str:
        await self._enter(
            "generate_presigned_url",
            {"ClientMethod": ClientMethod, "Params": Params, "ExpiresIn": ExpiresIn},
        )
        return (
            f"https://s3.test/{Params['Bucket']}/{Params['Key']}"
            f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=fake"
        )


class FakeClientContext:
    """What ``aioboto3.Session().client("s3")`` returns."""

    def __init__(self, client: FakeS3Client) -> None:
        self.client = client
        self.entered = 0
        self.exited = 0

    async def __aenter__(self) -> FakeS3Client:
        self.entered += 1
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.exited += 1


class FakeSession:
    """Stand-in for ``aioboto3.Session`` recording client() kwargs."""

    def __init__(self, client: FakeS3Client) -> None:
        self.context = FakeClientContext(client)
        self.client_calls: list[tuple[str, dict[str, Any]]] = []

    def client(self, service_name: str, **kwargs: Any) -> FakeClientContext:
        self.client_calls.append((service_name, kwargs))
        return self.context


@pytest.fixture
def fake_s3() -> FakeS3Client:
    """Empty in-memory backend with one bucket named "data"."""
    client = FakeS3Client()
    client.buckets["data"] = {}
    return client


@pytest.fixture
def fake_session(fake_s3: FakeS3Client) -> FakeSession:
    return FakeSession(fake_s3)


# ============================================================================
# Client Fixtures
# ============================================================================


@pytest.fixture
def client_options() -> ClientOptions:
    """Bucket-mode options pointing at the "data" bucket."""
    return ClientOptions(
        log_name="test",
        endpoint="localhost:9000",
        secure=False,
        region="us-east-1",
        namespace=NamespaceMode.BUCKET,
        bucket="data",
        access_key="test-access",
        secret_key="test-secret",
    )


@pytest.fixture
def prefix_options() -> ClientOptions:
    """Prefix-mode options prepending "tenant-" to bucket names."""
    return ClientOptions(
        log_name="test",
        endpoint="localhost:9000",
        secure=False,
        region="us-east-1",
        namespace=NamespaceMode.PREFIX,
        prefix="tenant-",
        access_key="test-access",
        secret_key="test-secret",
    )


@pytest.fixture
async def s3_client(
    client_options: ClientOptions,
    fake_session: FakeSession,
) -> AsyncGenerator[S3Client]:
    """Bucket-mode client backed by the fake session. Closed after the test."""
    client = await S3Client.connect(client_options, session=fake_session)
    try:
        yield client
    finally:
        await client.close()


@pytest.fixture
async def prefix_client(
    prefix_options: ClientOptions,
    fake_session: FakeSession,
) -> AsyncGenerator[S3Client]:
    """Prefix-mode client backed by the fake session. Closed after the test."""
    client = await S3Client.connect(prefix_options, session=fake_session)
    try:
        yield client
    finally:
        await client.close()
