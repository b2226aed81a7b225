"""S3-compatible object storage client.

Usage:
    from s3_service.core.settings import get_storage_settings
    from s3_service.infra.storage import S3Client, StorageDisabledError

    settings = get_storage_settings()
    settings.validate_required()
    try:
        client = await S3Client.connect(settings.to_client_options("uploads"))
    except StorageDisabledError:
        client = None
"""

from __future__ import annotations

from .client import DEFAULT_CONTENT_TYPE, S3Client
from .exceptions import (
    StorageBucketExistsError,
    StorageBucketNotEmptyError,
    StorageCancelledError,
    StorageConnectionError,
    StorageDisabledError,
    StorageError,
    StorageFileNotFoundError,
    StoragePermissionError,
    StorageQuotaExceededError,
    StorageTimeoutError,
    StorageTransportError,
    StorageValidationError,
    map_boto_error,
    map_transport_error,
)
from .lifecycle import ClientState, Lifecycle
from .namespace import BucketPathNamespace, BucketPrefixNamespace, namespace_for
from .options import ClientOptions
from .protocol import NamespaceStrategy, ObjectInfo, ObjectTarget, UploadResult
from .stream import ObjectStream

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "BucketPathNamespace",
    "BucketPrefixNamespace",
    "ClientOptions",
    "ClientState",
    "Lifecycle",
    "NamespaceStrategy",
    "ObjectInfo",
    "ObjectStream",
    "ObjectTarget",
    "S3Client",
    "StorageBucketExistsError",
    "StorageBucketNotEmptyError",
    "StorageCancelledError",
    "StorageConnectionError",
    "StorageDisabledError",
    "StorageError",
    "StorageFileNotFoundError",
    "StoragePermissionError",
    "StorageQuotaExceededError",
    "StorageTimeoutError",
    "StorageTransportError",
    "StorageValidationError",
    "UploadResult",
    "map_boto_error",
    "map_transport_error",
    "namespace_for",
]
