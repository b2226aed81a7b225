"""S3-compatible object storage connection settings.

Environment variables use the S3_ prefix.
Example: S3_ENDPOINT="localhost:9000"
         S3_BUCKET="uploads"

The same fields can be supplied through command-line flags (see
``s3_service.core.settings.flags``) or a conf/storage.yaml file.

Two namespace modes are supported:
- bucket: the client is bound to one bucket and every key is written as
  ``<prefix>/<key>`` inside it
- prefix: the client is bound to a string prefix that is prepended to the
  bucket name supplied on each call
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import Field, SecretStr, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from s3_service.core.exceptions import (
    AccessKeyRequiredError,
    BucketRequiredError,
    ConfigurationError,
    EndpointRequiredError,
    PrefixRequiredError,
    RegionRequiredError,
    SecretKeyRequiredError,
)

from .yaml_sources import create_storage_yaml_source

if TYPE_CHECKING:
    from s3_service.infra.storage.options import ClientOptions

DEFAULT_DISABLED = False
DEFAULT_SECURE = True
DEFAULT_REGION = "auto"


class NamespaceMode(StrEnum):
    """How logical addresses map onto backend buckets and keys."""

    BUCKET = "bucket"
    PREFIX = "prefix"


def _secret_value(value: SecretStr | None) -> str:
    return value.get_secret_value() if value is not None else ""


class StorageSettings(BaseSettings):
    """S3-compatible object storage settings.

    Environment variables use the S3_ prefix.
    Example: S3_DISABLED=true

    Required fields are not enforced at construction time so the model can be
    assembled piecemeal from flags, files and the environment. Call
    :meth:`validate_required` once everything is loaded.
    """

    # ──────────────────────────────────────────────────────────────
    # Enable/Disable toggle
    # ──────────────────────────────────────────────────────────────

    disabled: bool = Field(
        default=DEFAULT_DISABLED,
        description="Disable object storage entirely (no client is created)",
    )

    # ──────────────────────────────────────────────────────────────
    # Connection
    # ──────────────────────────────────────────────────────────────

    endpoint: str = Field(
        default="",
        description="S3 endpoint as host[:port] or a full URL",
    )

    secure: bool = Field(
        default=DEFAULT_SECURE,
        description="Use TLS when talking to the endpoint",
    )

    region: str = Field(
        default=DEFAULT_REGION,
        description="Region used for request signing",
    )

    # ──────────────────────────────────────────────────────────────
    # Namespace
    # ──────────────────────────────────────────────────────────────

    namespace: NamespaceMode = Field(
        default=NamespaceMode.BUCKET,
        description="Namespace mode: 'bucket' joins prefix/key in one bucket, "
        "'prefix' prepends a prefix to bucket names",
    )

    bucket: str = Field(
        default="",
        description="Bucket every object lives in (bucket mode)",
    )

    prefix: str = Field(
        default="",
        description="String prepended to every bucket name (prefix mode)",
    )

    # ──────────────────────────────────────────────────────────────
    # Credentials
    # ──────────────────────────────────────────────────────────────

    access_key: SecretStr | None = Field(
        default=None,
        description="S3 access key ID",
    )

    secret_key: SecretStr | None = Field(
        default=None,
        description="S3 secret access key",
    )

    # ──────────────────────────────────────────────────────────────
    # Transport
    # ──────────────────────────────────────────────────────────────

    verify_ssl: bool = Field(
        default=True,
        description="Verify TLS certificates (set False for self-signed certs)",
    )

    timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Connect and read timeout in seconds",
    )

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retry attempts performed by the transport",
    )

    retry_mode: str = Field(
        default="standard",
        description="botocore retry mode: standard, adaptive, or legacy",
    )

    max_pool_connections: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Maximum number of connections in the connection pool",
    )

    # ──────────────────────────────────────────────────────────────
    # Validators
    # ──────────────────────────────────────────────────────────────

    @field_validator("retry_mode")
    @classmethod
    def _validate_retry_mode(cls, value: str) -> str:
        allowed_modes = {"standard", "adaptive", "legacy"}
        if value not in allowed_modes:
            raise ValueError(f"retry_mode must be one of {allowed_modes}, got {value}")
        return value

    # ──────────────────────────────────────────────────────────────
    # Construction and validation
    # ──────────────────────────────────────────────────────────────

    @classmethod
    def new(cls) -> StorageSettings:
        """Return a settings object holding only the defaults.

        Unlike ``StorageSettings()`` this reads neither the environment nor
        any file.
        """
        return cls.model_construct()

    def missing_field(self) -> ConfigurationError | None:
        """Return the first missing required field as an error, or None.

        Fields are checked in a fixed order: endpoint, region, bucket (or
        prefix in prefix mode), access key, secret key.
        """
        if self.disabled:
            return None
        if not self.endpoint:
            return EndpointRequiredError()
        if not self.region:
            return RegionRequiredError()
        if self.namespace == NamespaceMode.PREFIX:
            if not self.prefix:
                return PrefixRequiredError()
        elif not self.bucket:
            return BucketRequiredError()
        if not _secret_value(self.access_key):
            return AccessKeyRequiredError()
        if not _secret_value(self.secret_key):
            return SecretKeyRequiredError()
        return None

    def validate_required(self) -> None:
        """Raise the first missing required field.

        Always succeeds when ``disabled`` is set. Never touches the network.

        Raises:
            ConfigurationError: The subclass naming the missing field.
        """
        error = self.missing_field()
        if error is not None:
            raise error

    # ──────────────────────────────────────────────────────────────
    # Computed Properties
    # ──────────────────────────────────────────────────────────────

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_configured(self) -> bool:
        """True when storage is enabled and every required field is set."""
        return not self.disabled and self.missing_field() is None

    @property
    def namespace_root(self) -> str:
        """The bucket or prefix the namespace mode binds to."""
        return self.prefix if self.namespace == NamespaceMode.PREFIX else self.bucket

    # ──────────────────────────────────────────────────────────────
    # Helper Methods
    # ──────────────────────────────────────────────────────────────

    def to_client_options(self, log_name: str) -> ClientOptions:
        """Project these settings into the options the client consumes.

        Args:
            log_name: Logging scope name bound to the client's logger.
        """
        from s3_service.infra.storage.options import ClientOptions

        return ClientOptions(
            log_name=log_name,
            disabled=self.disabled,
            endpoint=self.endpoint,
            secure=self.secure,
            region=self.region,
            namespace=self.namespace,
            bucket=self.bucket,
            prefix=self.prefix,
            access_key=_secret_value(self.access_key),
            secret_key=_secret_value(self.secret_key),
            verify_ssl=self.verify_ssl,
            timeout=self.timeout,
            max_retries=self.max_retries,
            retry_mode=self.retry_mode,
            max_pool_connections=self.max_pool_connections,
        )

    # ──────────────────────────────────────────────────────────────
    # Model Configuration
    # ──────────────────────────────────────────────────────────────

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings source precedence: init > yaml > env > dotenv > secrets."""
        return (
            init_settings,
            create_storage_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
