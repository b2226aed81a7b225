"""Immutable client options.

ClientOptions is the only configuration the storage client reads. It is
produced by ``StorageSettings.to_client_options`` and never exposes any
botocore type.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from s3_service.core.settings.storage import NamespaceMode


@dataclass(frozen=True)
class ClientOptions:
    """Validated snapshot of the storage settings.

    Attributes:
        log_name: Log scope bound to every record the client emits.
        disabled: When set, client construction raises StorageDisabledError.
        endpoint: host[:port] or full URL of the S3 endpoint.
        secure: Use TLS; also selects the scheme for scheme-less endpoints.
        region: Signing region.
        namespace: How addresses are mapped onto buckets and keys.
        bucket: Bucket used in bucket mode.
        prefix: String prepended to bucket names in prefix mode.
        access_key: Static access key ID.
        secret_key: Static secret access key.
    """

    log_name: str
    disabled: bool = False
    endpoint: str = ""
    secure: bool = True
    region: str = "auto"
    namespace: NamespaceMode = NamespaceMode.BUCKET
    bucket: str = ""
    prefix: str = ""
    access_key: str = field(default="", repr=False)
    secret_key: str = field(default="", repr=False)
    verify_ssl: bool = True
    timeout: int = 30
    max_retries: int = 3
    retry_mode: str = "standard"
    max_pool_connections: int = 10

    @property
    def endpoint_url(self) -> str:
        """Endpoint as a URL, adding a scheme chosen by ``secure`` when missing."""
        if "://" in self.endpoint:
            return self.endpoint
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.endpoint}"
