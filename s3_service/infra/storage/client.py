"""S3-compatible object storage client.

S3Client wraps one aioboto3 S3 client and exposes namespace-aware object
and bucket operations. Each operation:

- resolves the caller's (bucket, key) through the injected namespace,
- runs the backend call as a task tracked by the client's lifecycle,
- records a span and metrics via ``traced_operation``,
- translates botocore errors into StorageError subclasses.

Example:
    options = settings.to_client_options("uploads")
    async with await S3Client.connect(options) as client:
        await client.put_object("logs", "a.txt", b"hello", 5)
        async for info in client.list_objects("logs"):
            print(info.key)
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any, BinaryIO, TypeVar

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from s3_service.infra.logging.context import ContextBoundLogger

from . import metrics
from .exceptions import (
    StorageConnectionError,
    StorageDisabledError,
    StorageError,
    StorageFileNotFoundError,
    StorageValidationError,
    map_boto_error,
    map_transport_error,
)
from .instrumentation import traced_operation
from .lifecycle import ClientState, Lifecycle
from .namespace import namespace_for
from .protocol import ObjectInfo, UploadResult
from .stream import ObjectStream

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable
    from types import TracebackType

    from .options import ClientOptions
    from .protocol import NamespaceStrategy

T = TypeVar("T")

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Regions for which CreateBucket must not carry a LocationConstraint
_IMPLICIT_REGIONS = frozenset({"", "auto", "us-east-1"})


def _expiry_seconds(expires: timedelta | int) -> int:
    if isinstance(expires, timedelta):
        return int(expires.total_seconds())
    return int(expires)


def _read_payload(data: BinaryIO | bytes | bytearray | memoryview, size: int) -> bytes:
    """Read exactly ``size`` bytes from ``data``, or everything when size is -1."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        payload = bytes(data)
        return payload if size < 0 else payload[:size]

    if size < 0:
        return data.read()

    chunks: list[bytes] = []
    remaining = size
    while remaining > 0:
        chunk = data.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


class S3Client:
    """Namespace-scoped facade over an S3-compatible backend.

    Build instances with :meth:`connect`. The client is safe for concurrent
    use from one event loop. After :meth:`close` every operation raises
    StorageCancelledError.

    Attributes:
        options: Options the client was built from.
        namespace: Strategy mapping caller addresses onto buckets and keys.
    """

    def __init__(
        self,
        options: ClientOptions,
        *,
        client: Any,
        client_context: Any,
        namespace: NamespaceStrategy,
        logger: ContextBoundLogger,
    ) -> None:
        self.options = options
        self.namespace = namespace
        self._client = client
        self._client_context = client_context
        self._logger = logger
        self._lifecycle = Lifecycle()
        self._state = ClientState.ACTIVE
        self._closed = asyncio.Event()

    # ========================================================================
    # Construction and lifecycle
    # ========================================================================

    @classmethod
    async def connect(
        cls,
        options: ClientOptions,
        logger: logging.Logger | ContextBoundLogger | None = None,
        *,
        namespace: NamespaceStrategy | None = None,
        session: Any = None,
    ) -> S3Client:
        """Create a client from validated options.

        Args:
            options: Client options, usually from ``StorageSettings.to_client_options``.
            logger: Base logger. Records are bound with ``log_scope=options.log_name``.
            namespace: Namespace strategy. Chosen from ``options.namespace`` when omitted.
            session: aioboto3 session to build the client from. A new
                ``aioboto3.Session()`` is used when omitted.

        Raises:
            StorageDisabledError: If ``options.disabled`` is set. No session
                is touched in that case.
            StorageConnectionError: If the backend client cannot be created.
        """
        if isinstance(logger, ContextBoundLogger):
            bound = logger.bind(log_scope=options.log_name, backend="s3")
        else:
            bound = ContextBoundLogger(
                logger or logging.getLogger(__name__),
                log_scope=options.log_name,
                backend="s3",
            )

        if options.disabled:
            bound.warning("Object storage is disabled")
            metrics.observe_connect("disabled")
            raise StorageDisabledError(metadata={"log_scope": options.log_name})

        namespace = namespace if namespace is not None else namespace_for(options)
        bound.debug(
            "Connecting to S3 endpoint",
            extra={
                "endpoint": options.endpoint_url,
                "region": options.region,
                "namespace": repr(namespace),
            },
        )

        boto_config = Config(
            signature_version="s3v4",
            retries={
                "max_attempts": options.max_retries,
                "mode": options.retry_mode,
            },
            connect_timeout=options.timeout,
            read_timeout=options.timeout,
            max_pool_connections=options.max_pool_connections,
        )

        try:
            session = session if session is not None else aioboto3.Session()
            client_context = session.client(
                "s3",
                endpoint_url=options.endpoint_url,
                region_name=options.region,
                aws_access_key_id=options.access_key,
                aws_secret_access_key=options.secret_key,
                use_ssl=options.secure,
                verify=options.verify_ssl,
                config=boto_config,
            )
            client = await client_context.__aenter__()
        except Exception as e:
            bound.exception(
                "Failed to create S3 client",
                extra={"endpoint": options.endpoint_url, "error": str(e)},
            )
            metrics.observe_connect("error")
            raise StorageConnectionError(
                f"Failed to create S3 client: {e}",
                metadata={"endpoint": options.endpoint_url, "region": options.region},
            ) from e

        metrics.observe_connect("ok")
        return cls(
            options,
            client=client,
            client_context=client_context,
            namespace=namespace,
            logger=bound,
        )

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state == ClientState.CLOSED

    @property
    def pending(self) -> int:
        """Number of backend calls currently in flight."""
        return self._lifecycle.pending

    async def close(self) -> None:
        """Cancel in-flight operations, wait for them, and release the client.

        Operations interrupted by close raise StorageCancelledError. Calling
        close again, or concurrently, waits for the first call to finish.
        """
        if self._state != ClientState.ACTIVE:
            await self._closed.wait()
            return

        self._state = ClientState.CLOSING
        self._logger.debug("Closing S3 client", extra={"pending": self._lifecycle.pending})
        try:
            await self._lifecycle.stop()
        finally:
            # Runs even when close() itself is cancelled
            try:
                await self._client_context.__aexit__(None, None, None)
            except Exception as e:
                self._logger.warning("Error closing S3 client", extra={"error": str(e)})
            finally:
                self._state = ClientState.CLOSED
                self._closed.set()

    async def __aenter__(self) -> S3Client:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ========================================================================
    # Call plumbing
    # ========================================================================

    async def _call(
        self,
        operation: str,
        aw: Awaitable[T],
        *,
        bucket: str,
        key: str | None = None,
        upload_size: int | None = None,
    ) -> T:
        """Run one backend call under the lifecycle, tracing and error mapping."""
        async with traced_operation(
            operation,
            log_scope=self.options.log_name,
            bucket=bucket,
            key=key,
            upload_size=upload_size,
        ) as span:
            try:
                result = await self._lifecycle.run(aw)
            except StorageError:
                raise
            except ClientError as e:
                error = map_boto_error(e, operation=operation, key=key, bucket=bucket)
                self._log_failure(error)
                raise error from e
            except BotoCoreError as e:
                error = map_transport_error(e, operation=operation, key=key, bucket=bucket)
                self._log_failure(error)
                raise error from e
            except Exception as e:
                self._logger.exception(
                    "Unexpected storage error",
                    extra={"operation": operation, "bucket": bucket, "key": key},
                )
                raise StorageError(
                    f"{operation} failed: {e}",
                    code="STORAGE_ERROR",
                    metadata={"operation": operation, "bucket": bucket, "key": key},
                ) from e

            if isinstance(result, dict) and result.get("ETag"):
                span.set_attribute("s3.etag", result["ETag"].strip('"'))
            return result

    def _log_failure(self, error: StorageError) -> None:
        # Missing objects are routine for delete and existence checks
        level = logging.DEBUG if isinstance(error, StorageFileNotFoundError) else logging.WARNING
        self._logger.log(level, error.detail, extra={"error_code": error.code, **error.extra})

    # ========================================================================
    # Object operations
    # ========================================================================

    async def presigned_get_object(
        self,
        bucket: str,
        key: str,
        expires: timedelta | int,
    ) -> str:
        """Return a time-limited URL granting GET access to one object.

        Args:
            bucket: Namespace bucket (a path segment in bucket mode).
            key: Object key.
            expires: Validity as a timedelta or in seconds. The backend
                enforces its own bounds.
        """
        target = self.namespace.resolve(bucket, key)
        seconds = _expiry_seconds(expires)
        self._logger.debug(
            "Presigning object",
            extra={"bucket": target.bucket, "key": target.key, "expires": seconds},
        )
        return await self._call(
            "presigned_get_object",
            self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": target.bucket, "Key": target.key},
                ExpiresIn=seconds,
            ),
            bucket=target.bucket,
            key=target.key,
        )

    async def get_object(self, bucket: str, key: str) -> ObjectStream:
        """Open an object for reading.

        The returned stream must be closed by the caller.

        Raises:
            StorageFileNotFoundError: If the object does not exist.
        """
        target = self.namespace.resolve(bucket, key)
        self._logger.debug("Getting object", extra={"bucket": target.bucket, "key": target.key})
        response = await self._call(
            "get_object",
            self._client.get_object(Bucket=target.bucket, Key=target.key),
            bucket=target.bucket,
            key=target.key,
        )
        return ObjectStream(
            response["Body"],
            target=target,
            lifecycle=self._lifecycle,
            content_length=response.get("ContentLength"),
            content_type=response.get("ContentType"),
            etag=(response.get("ETag") or "").strip('"') or None,
        )

    async def put_object(
        self,
        bucket: str,
        key: str,
        data: BinaryIO | bytes,
        size: int,
        content_type: str | None = None,
    ) -> UploadResult:
        """Upload exactly ``size`` bytes read from ``data``.

        Args:
            bucket: Namespace bucket (a path segment in bucket mode).
            key: Object key.
            data: Bytes or a binary file object.
            size: Number of bytes to upload; -1 reads ``data`` to EOF.
            content_type: MIME type, ``application/octet-stream`` when omitted.

        Raises:
            StorageValidationError: If ``data`` holds fewer than ``size`` bytes.
        """
        target = self.namespace.resolve(bucket, key)
        if size < -1:
            raise StorageValidationError(
                f"Invalid object size {size}",
                metadata={"bucket": target.bucket, "key": target.key, "size": size},
            )

        payload = _read_payload(data, size)
        if size >= 0 and len(payload) != size:
            raise StorageValidationError(
                f"Expected {size} bytes, read {len(payload)}",
                metadata={
                    "bucket": target.bucket,
                    "key": target.key,
                    "expected_size": size,
                    "actual_size": len(payload),
                },
            )

        content_type = content_type or DEFAULT_CONTENT_TYPE
        self._logger.debug(
            "Putting object",
            extra={"bucket": target.bucket, "key": target.key, "size_bytes": len(payload)},
        )
        response = await self._call(
            "put_object",
            self._client.put_object(
                Bucket=target.bucket,
                Key=target.key,
                Body=payload,
                ContentLength=len(payload),
                ContentType=content_type,
            ),
            bucket=target.bucket,
            key=target.key,
            upload_size=len(payload),
        )

        return UploadResult(
            bucket=target.bucket,
            key=target.key,
            etag=(response.get("ETag") or "").strip('"') or None,
            size_bytes=len(payload),
            checksum_sha256=hashlib.sha256(payload).hexdigest(),
            version_id=response.get("VersionId"),
        )

    async def delete_object(self, bucket: str, key: str) -> None:
        """Delete an object. Deleting a key that does not exist succeeds."""
        target = self.namespace.resolve(bucket, key)
        self._logger.debug("Deleting object", extra={"bucket": target.bucket, "key": target.key})
        try:
            await self._call(
                "delete_object",
                self._client.delete_object(Bucket=target.bucket, Key=target.key),
                bucket=target.bucket,
                key=target.key,
            )
        except StorageFileNotFoundError as e:
            if e.extra.get("aws_error_code") != "NoSuchKey":
                raise

    async def list_objects(
        self,
        bucket: str,
        prefix: str = "",
        *,
        recursive: bool = True,
    ) -> AsyncIterator[ObjectInfo]:
        """Yield the objects under ``prefix``, fetching pages on demand.

        Args:
            bucket: Namespace bucket (a path segment in bucket mode).
            prefix: Sub-prefix to list within the namespace.
            recursive: When False, list one level using ``/`` as delimiter
                and yield common prefixes with ``is_prefix=True``.
        """
        target = self.namespace.resolve_prefix(bucket, prefix)
        self._logger.debug(
            "Listing objects",
            extra={"bucket": target.bucket, "prefix": target.key, "recursive": recursive},
        )

        params: dict[str, Any] = {"Bucket": target.bucket, "Prefix": target.key}
        if not recursive:
            params["Delimiter"] = "/"

        while True:
            response = await self._call(
                "list_objects",
                self._client.list_objects_v2(**params),
                bucket=target.bucket,
                key=target.key,
            )

            for common in response.get("CommonPrefixes", []):
                yield ObjectInfo(key=common["Prefix"], size_bytes=0, is_prefix=True)

            for item in response.get("Contents", []):
                yield ObjectInfo(
                    key=item["Key"],
                    size_bytes=item.get("Size", 0),
                    last_modified=item.get("LastModified"),
                    etag=(item.get("ETag") or "").strip('"') or None,
                    storage_class=item.get("StorageClass"),
                )

            token = response.get("NextContinuationToken")
            if not response.get("IsTruncated") or not token:
                break
            params["ContinuationToken"] = token

    # ========================================================================
    # Bucket operations
    # ========================================================================

    async def make_bucket(self, bucket: str) -> None:
        """Create a bucket.

        Raises:
            StorageBucketExistsError: If the bucket already exists.
        """
        name = self.namespace.resolve_bucket(bucket)
        self._logger.debug("Making bucket", extra={"bucket": name})

        params: dict[str, Any] = {"Bucket": name}
        if self.options.region not in _IMPLICIT_REGIONS:
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.options.region}

        await self._call("make_bucket", self._client.create_bucket(**params), bucket=name)

    async def remove_bucket(self, bucket: str) -> None:
        """Remove an empty bucket.

        Raises:
            StorageBucketNotEmptyError: If the bucket still holds objects.
            StorageFileNotFoundError: If the bucket does not exist.
        """
        name = self.namespace.resolve_bucket(bucket)
        self._logger.debug("Removing bucket", extra={"bucket": name})
        await self._call("remove_bucket", self._client.delete_bucket(Bucket=name), bucket=name)

    async def bucket_exists(self, bucket: str) -> bool:
        name = self.namespace.resolve_bucket(bucket)
        try:
            await self._call("bucket_exists", self._client.head_bucket(Bucket=name), bucket=name)
        except StorageFileNotFoundError:
            return False
        return True

    async def health_check(self) -> bool:
        """Check connectivity and credentials.

        Heads the namespace's bucket when it is bound to one, otherwise
        lists buckets. Never raises for backend errors.
        """
        home = self.namespace.home_bucket
        try:
            if home is not None:
                await self._call(
                    "health_check",
                    self._client.head_bucket(Bucket=home),
                    bucket=home,
                )
            else:
                await self._call("health_check", self._client.list_buckets(), bucket="")
        except StorageError as e:
            self._logger.warning("S3 health check failed", extra={"error": str(e)})
            return False
        return True

    def __repr__(self) -> str:
        return (
            f"S3Client(endpoint={self.options.endpoint_url!r}, "
            f"namespace={self.namespace!r}, state={self._state.value!r})"
        )
