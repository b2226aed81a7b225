"""Lazy object body returned by ``S3Client.get_object``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import (
    StorageError,
    StorageTransportError,
    map_boto_error,
    map_transport_error,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType

    from .lifecycle import Lifecycle
    from .protocol import ObjectTarget

DEFAULT_CHUNK_SIZE = 64 * 1024


class ObjectStream:
    """Single-pass byte stream over an object body.

    Nothing is buffered beyond what the caller reads. Reads are tracked by
    the owning client's lifecycle, so closing the client aborts a read in
    progress with StorageCancelledError.

    Example:
        async with await client.get_object("logs", "a.txt") as stream:
            async for chunk in stream:
                sink.write(chunk)
    """

    def __init__(
        self,
        body: Any,
        *,
        target: ObjectTarget,
        lifecycle: Lifecycle,
        content_length: int | None = None,
        content_type: str | None = None,
        etag: str | None = None,
    ) -> None:
        self._body = body
        self._lifecycle = lifecycle
        self._closed = False
        self.target = target
        self.content_length = content_length
        self.content_type = content_type
        self.etag = etag

    @property
    def closed(self) -> bool:
        return self._closed

    async def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or the rest of the body when negative.

        Returns ``b""`` at end of stream.

        Raises:
            ValueError: If the stream has been closed.
            StorageCancelledError: If the owning client closes mid-read.
        """
        if self._closed:
            raise ValueError("I/O operation on closed object stream")

        amount = None if size < 0 else size
        try:
            return await self._lifecycle.run(self._body.read(amount))
        except StorageError:
            raise
        except ClientError as e:
            raise map_boto_error(
                e, operation="read_object", key=self.target.key, bucket=self.target.bucket
            ) from e
        except BotoCoreError as e:
            raise map_transport_error(
                e, operation="read_object", key=self.target.key, bucket=self.target.bucket
            ) from e
        except Exception as e:
            raise StorageTransportError(
                f"read_object failed: {e}",
                metadata={"bucket": self.target.bucket, "key": self.target.key},
            ) from e

    async def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """Yield the body in chunks of at most ``chunk_size`` bytes."""
        while chunk := await self.read(chunk_size):
            yield chunk

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.iter_chunks()

    def close(self) -> None:
        """Release the underlying connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._body.close()

    async def __aenter__(self) -> ObjectStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"ObjectStream(bucket={self.target.bucket!r}, key={self.target.key!r}, "
            f"closed={self._closed})"
        )
