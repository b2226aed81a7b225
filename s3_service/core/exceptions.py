"""Custom exception classes for the storage service."""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class AppException(Exception):
    """Base application exception.

    All custom exceptions inherit from this class. The fields follow
    RFC 7807 Problem Details so errors render the same way whether they
    end up in a log record, a CLI message or an HTTP response.

    Attributes:
        status_code: HTTP-style status code for the error.
        detail: Human-readable error message.
        type: Error type identifier.
        title: Short, human-readable summary of the problem type.
        instance: URI reference identifying this occurrence of the problem.
        extra: Additional context-specific information about the error.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(status_code: int) -> str:
        titles = {
            400: "Bad Request",
            403: "Forbidden",
            404: "Not Found",
            409: "Conflict",
            499: "Client Closed Request",
            500: "Internal Server Error",
            502: "Bad Gateway",
            503: "Service Unavailable",
            504: "Gateway Timeout",
            507: "Insufficient Storage",
        }
        return titles.get(status_code, "Error")

    def to_problem(self) -> dict[str, Any]:
        """Render the exception as an RFC 7807 problem document."""
        problem: dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
        }
        if self.instance:
            problem["instance"] = self.instance
        if self.extra:
            problem.update(self.extra)
        return problem


# ============================================================================
# Configuration errors
# ============================================================================


class ConfigField(StrEnum):
    """Configuration fields that can be reported as missing."""

    ENDPOINT = "endpoint"
    REGION = "region"
    BUCKET = "bucket"
    PREFIX = "prefix"
    ACCESS_KEY = "access_key"
    SECRET_KEY = "secret_key"


class ConfigurationError(AppException):
    """A required storage setting is missing.

    Each missing field has its own subclass so callers can branch with
    ``except`` as well as on :attr:`field`. Instances are created per
    validation call and never shared.
    """

    field: ConfigField

    def __init__(self, detail: str | None = None) -> None:
        label = self.field.value.replace("_", " ")
        super().__init__(
            status_code=400,
            detail=detail or f"{label} is required",
            type=f"{self.field.value.replace('_', '-')}-required",
            title="Invalid Configuration",
            extra={"field": self.field.value},
        )


class EndpointRequiredError(ConfigurationError):
    field = ConfigField.ENDPOINT


class RegionRequiredError(ConfigurationError):
    field = ConfigField.REGION


class BucketRequiredError(ConfigurationError):
    field = ConfigField.BUCKET


class PrefixRequiredError(ConfigurationError):
    field = ConfigField.PREFIX


class AccessKeyRequiredError(ConfigurationError):
    field = ConfigField.ACCESS_KEY


class SecretKeyRequiredError(ConfigurationError):
    field = ConfigField.SECRET_KEY


class FlagRegistrationError(AppException):
    """Raised when a command-line flag cannot be found or marked.

    Example:
        raise FlagRegistrationError("s3-endpoint", "flag is not registered")
    """

    def __init__(self, flag: str, reason: str) -> None:
        self.flag = flag
        super().__init__(
            status_code=500,
            detail=f"--{flag}: {reason}",
            type="flag-registration-error",
            title="Invalid Command Definition",
            extra={"flag": flag},
        )
