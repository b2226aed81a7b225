"""Storage data structures and the namespace protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from datetime import datetime

# ============================================================================
# Data Structures
# ============================================================================


@dataclass(frozen=True)
class ObjectTarget:
    """A resolved backend address.

    Attributes:
        bucket: Bucket name sent to the backend
        key: Object key (or listing prefix) sent to the backend
    """

    bucket: str
    key: str


@dataclass(frozen=True)
class ObjectInfo:
    """One entry of an object listing.

    Attributes:
        key: Object key as stored by the backend
        size_bytes: Object size in bytes (0 for common prefixes)
        last_modified: Last modification timestamp
        etag: Entity tag
        storage_class: Storage tier (e.g. STANDARD)
        is_prefix: True for a common prefix of a non-recursive listing
    """

    key: str
    size_bytes: int
    last_modified: datetime | None = None
    etag: str | None = None
    storage_class: str | None = None
    is_prefix: bool = False


@dataclass(frozen=True)
class UploadResult:
    """Result of an upload operation.

    Attributes:
        bucket: Bucket the object was written to
        key: Key the object was written to
        etag: Entity tag of the uploaded object
        size_bytes: Number of bytes uploaded
        checksum_sha256: Hex SHA256 of the uploaded bytes
        version_id: Version ID (for versioned buckets)
    """

    bucket: str
    key: str
    etag: str | None
    size_bytes: int
    checksum_sha256: str | None
    version_id: str | None = None


# ============================================================================
# Namespace Protocol
# ============================================================================


class NamespaceStrategy(Protocol):
    """Maps the (bucket, key) pair callers pass to a backend address.

    Callers always pass two strings. Which of them names the bucket and
    which forms part of the key is decided by the strategy.
    """

    def resolve(self, bucket: str, key: str) -> ObjectTarget:
        """Resolve an object address."""
        ...

    def resolve_prefix(self, bucket: str, prefix: str) -> ObjectTarget:
        """Resolve a listing address; ``key`` of the result is the listing prefix."""
        ...

    def resolve_bucket(self, bucket: str) -> str:
        """Resolve the bucket name used by bucket lifecycle operations."""
        ...

    @property
    def home_bucket(self) -> str | None:
        """The single bucket this namespace is bound to, or None."""
        ...
