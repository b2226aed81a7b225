"""Namespace strategies.

Two ways of carving one S3 account into namespaces:

- BucketPathNamespace: every object lives in one configured bucket; the
  caller's first argument becomes a path segment.
      resolve("logs", "2024/01/a.txt") -> ("data", "logs/2024/01/a.txt")
- BucketPrefixNamespace: the caller's first argument names a bucket, which
  gets a configured prefix.
      resolve("alpha", "a.txt") -> ("tenant-alpha", "a.txt")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from s3_service.core.settings.storage import NamespaceMode

from .protocol import NamespaceStrategy, ObjectTarget

if TYPE_CHECKING:
    from .options import ClientOptions


def join_key(prefix: str, key: str) -> str:
    """Join a namespace prefix and a key with a single slash.

    The slash is always inserted, so an empty prefix yields ``"/key"``.
    """
    return f"{prefix}/{key}"


class BucketPathNamespace:
    """All objects in one bucket under ``<prefix>/<key>``."""

    def __init__(self, bucket: str) -> None:
        self.bucket = bucket

    def resolve(self, bucket: str, key: str) -> ObjectTarget:
        return ObjectTarget(bucket=self.bucket, key=join_key(bucket, key))

    def resolve_prefix(self, bucket: str, prefix: str) -> ObjectTarget:
        return ObjectTarget(bucket=self.bucket, key=join_key(bucket, prefix))

    def resolve_bucket(self, bucket: str) -> str:
        return bucket

    @property
    def home_bucket(self) -> str:
        return self.bucket

    def __repr__(self) -> str:
        return f"BucketPathNamespace(bucket={self.bucket!r})"


class BucketPrefixNamespace:
    """One bucket per namespace, named ``<prefix><bucket>``."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def resolve(self, bucket: str, key: str) -> ObjectTarget:
        return ObjectTarget(bucket=self.resolve_bucket(bucket), key=key)

    def resolve_prefix(self, bucket: str, prefix: str) -> ObjectTarget:
        return ObjectTarget(bucket=self.resolve_bucket(bucket), key=prefix)

    def resolve_bucket(self, bucket: str) -> str:
        return f"{self.prefix}{bucket}"

    @property
    def home_bucket(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"BucketPrefixNamespace(prefix={self.prefix!r})"


def namespace_for(options: ClientOptions) -> NamespaceStrategy:
    """Build the namespace strategy selected by ``options.namespace``."""
    if options.namespace == NamespaceMode.PREFIX:
        return BucketPrefixNamespace(options.prefix)
    return BucketPathNamespace(options.bucket)
