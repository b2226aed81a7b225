"""Storage-specific exceptions for S3-compatible operations.

Every error raised by the client derives from StorageError and carries an
HTTP-style status code, a machine-readable code and metadata, following
RFC 7807 Problem Details. Subclasses only declare their defaults.

Example:
    ```python
    from s3_service.infra.storage.exceptions import StorageError, map_boto_error

    try:
        await client.get_object(Bucket=bucket, Key=key)
    except ClientError as e:
        raise map_boto_error(e, operation="get_object", key=key, bucket=bucket) from e
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from botocore.exceptions import ConnectTimeoutError, ReadTimeoutError

from s3_service.core.exceptions import AppException

if TYPE_CHECKING:
    from botocore.exceptions import BotoCoreError, ClientError


class StorageError(AppException):
    """Base exception for all storage errors.

    Attributes:
        code: Error code for programmatic handling (e.g. ``STORAGE_TIMEOUT``).
        message: Human-readable message, same as ``detail``.

    Example:
        ```python
        raise StorageError(
            "Unexpected failure",
            code="STORAGE_ERROR",
            metadata={"operation": "put_object"},
        )
        ```
    """

    default_code: ClassVar[str] = "STORAGE_ERROR"
    default_status: ClassVar[int] = 500
    default_message: ClassVar[str] = "Storage operation failed"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        status_code: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.code = code or self.default_code
        self.message = message or self.default_message
        super().__init__(
            status_code=status_code or self.default_status,
            detail=self.message,
            type=self.code.lower().replace("_", "-"),
            extra=metadata or {},
        )


class StorageDisabledError(StorageError):
    """Raised by client construction when storage is disabled.

    Not a failure: callers are expected to check for it and continue
    without storage.
    """

    default_code = "STORAGE_DISABLED"
    default_status = 503
    default_message = "Object storage is disabled"


class StorageConnectionError(StorageError):
    """Raised when the underlying S3 client cannot be created."""

    default_code = "STORAGE_CONNECTION_ERROR"
    default_status = 503
    default_message = "Failed to create storage client"


class StorageCancelledError(StorageError):
    """Raised when an operation is aborted because the client is closing."""

    default_code = "STORAGE_CANCELLED"
    default_status = 499
    default_message = "Operation cancelled: storage client is closing"


class StorageFileNotFoundError(StorageError):
    """Raised when an object or bucket does not exist."""

    default_code = "STORAGE_NOT_FOUND"
    default_status = 404
    default_message = "Object not found"


class StoragePermissionError(StorageError):
    """Raised when credentials are rejected or access is denied."""

    default_code = "STORAGE_PERMISSION_DENIED"
    default_status = 403
    default_message = "Permission denied"


class StorageBucketExistsError(StorageError):
    default_code = "STORAGE_BUCKET_EXISTS"
    default_status = 409
    default_message = "Bucket already exists"


class StorageBucketNotEmptyError(StorageError):
    default_code = "STORAGE_BUCKET_NOT_EMPTY"
    default_status = 409
    default_message = "Bucket is not empty"


class StorageQuotaExceededError(StorageError):
    default_code = "STORAGE_QUOTA_EXCEEDED"
    default_status = 507
    default_message = "Storage quota exceeded"


class StorageValidationError(StorageError):
    """Raised for invalid input such as a short upload body or a bad key."""

    default_code = "STORAGE_VALIDATION_ERROR"
    default_status = 400
    default_message = "Invalid storage request"


class StorageTimeoutError(StorageError):
    default_code = "STORAGE_TIMEOUT"
    default_status = 504
    default_message = "Storage operation timed out"


class StorageTransportError(StorageError):
    """Raised for network-level failures that never produced an S3 response."""

    default_code = "STORAGE_TRANSPORT_ERROR"
    default_status = 502
    default_message = "Storage transport error"


_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "NotFound", "404"})
_PERMISSION_CODES = frozenset(
    {
        "AccessDenied",
        "ExpiredToken",
        "InvalidAccessKeyId",
        "SignatureDoesNotMatch",
        "InvalidToken",
        "TokenRefreshRequired",
        "403",
    }
)
_TIMEOUT_CODES = frozenset({"RequestTimeout", "RequestTimeTooSkewed", "SlowDown"})
_QUOTA_CODES = frozenset({"QuotaExceeded", "TooManyBuckets", "AccountProblem"})
_BUCKET_EXISTS_CODES = frozenset({"BucketAlreadyOwnedByYou", "BucketAlreadyExists"})
_VALIDATION_CODES = frozenset(
    {
        "InvalidRequest",
        "InvalidArgument",
        "MalformedXML",
        "InvalidBucketName",
        "InvalidObjectState",
        "KeyTooLongError",
        "MetadataTooLarge",
        "IncompleteBody",
    }
)

# First match wins
_ERROR_CLASSES: tuple[tuple[frozenset[str], type[StorageError]], ...] = (
    (_NOT_FOUND_CODES, StorageFileNotFoundError),
    (_PERMISSION_CODES, StoragePermissionError),
    (_BUCKET_EXISTS_CODES, StorageBucketExistsError),
    (frozenset({"BucketNotEmpty"}), StorageBucketNotEmptyError),
    (_TIMEOUT_CODES, StorageTimeoutError),
    (_QUOTA_CODES, StorageQuotaExceededError),
    (_VALIDATION_CODES, StorageValidationError),
)


def map_boto_error(
    error: ClientError,
    operation: str,
    key: str | None = None,
    bucket: str | None = None,
) -> StorageError:
    """Map a botocore ClientError to a StorageError subclass.

    Args:
        error: The ClientError raised by the S3 client.
        operation: Operation name (e.g. ``"put_object"``).
        key: Resolved object key, if any.
        bucket: Resolved bucket name, if any.

    Error Code Mappings:
        - NoSuchKey, NoSuchBucket, 404 -> StorageFileNotFoundError (404)
        - AccessDenied, InvalidAccessKeyId, ... -> StoragePermissionError (403)
        - BucketAlreadyOwnedByYou, BucketAlreadyExists -> StorageBucketExistsError (409)
        - BucketNotEmpty -> StorageBucketNotEmptyError (409)
        - RequestTimeout, SlowDown, ... -> StorageTimeoutError (504)
        - QuotaExceeded, TooManyBuckets -> StorageQuotaExceededError (507)
        - InvalidArgument, InvalidBucketName, ... -> StorageValidationError (400)
        - Others -> StorageError (500)
    """
    error_info = error.response.get("Error", {})
    error_code = str(error_info.get("Code", "Unknown"))
    error_message = error_info.get("Message") or str(error)

    metadata: dict[str, Any] = {
        "operation": operation,
        "aws_error_code": error_code,
        "aws_error_message": error_message,
        "request_id": error.response.get("ResponseMetadata", {}).get("RequestId"),
    }
    if bucket:
        metadata["bucket"] = bucket
    if key:
        metadata["key"] = key

    for codes, error_cls in _ERROR_CLASSES:
        if error_code in codes:
            break
    else:
        error_cls = StorageError

    verb = "timed out" if error_cls is StorageTimeoutError else "failed"
    return error_cls(f"{operation} {verb}: {error_message}", metadata=metadata)


def map_transport_error(
    error: BotoCoreError,
    operation: str,
    key: str | None = None,
    bucket: str | None = None,
) -> StorageError:
    """Map a botocore transport failure (no S3 response) to a StorageError."""
    metadata: dict[str, Any] = {
        "operation": operation,
        "error_type": type(error).__name__,
    }
    if bucket:
        metadata["bucket"] = bucket
    if key:
        metadata["key"] = key

    if isinstance(error, (ReadTimeoutError, ConnectTimeoutError)):
        return StorageTimeoutError(f"{operation} timed out: {error}", metadata=metadata)
    return StorageTransportError(f"{operation} failed: {error}", metadata=metadata)
