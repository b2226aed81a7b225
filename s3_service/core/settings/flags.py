"""Command-line flags for storage settings.

Binds every StorageSettings field to a ``--s3-*`` click option so any
command (or command group) can accept storage configuration on the command
line. Flags that were not given explicitly never override values loaded from
the environment or conf files.

Example:
    @click.group()
    @click.pass_context
    def storage(ctx: click.Context) -> None:
        ctx.obj["storage_settings"] = settings_from_flags(ctx)

    register_flags(storage)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import click
from click.core import ParameterSource

from s3_service.core.exceptions import FlagRegistrationError

from .storage import NamespaceMode, StorageSettings

if TYPE_CHECKING:
    from pydantic import SecretStr


@dataclass(frozen=True)
class FlagSpec:
    """Binding between one settings field and its command-line flag."""

    field: str
    flag: str
    help: str
    secret: bool = False

    @property
    def param_name(self) -> str:
        return self.flag.replace("-", "_")


STORAGE_FLAGS: tuple[FlagSpec, ...] = (
    FlagSpec("disabled", "s3-disabled", "Disable s3"),
    FlagSpec("endpoint", "s3-endpoint", "The s3 endpoint"),
    FlagSpec("secure", "s3-secure", "Use TLS for the s3 endpoint"),
    FlagSpec("region", "s3-region", "The s3 region"),
    FlagSpec("namespace", "s3-namespace", "How keys are namespaced: bucket or prefix"),
    FlagSpec("bucket", "s3-bucket", "The s3 bucket to use"),
    FlagSpec("prefix", "s3-prefix", "The prefix prepended to bucket names"),
    FlagSpec("access_key", "s3-access-key", "The s3 access key", secret=True),
    FlagSpec("secret_key", "s3-secret-key", "The s3 secret key", secret=True),
)

_FLAGS_BY_FIELD = {spec.field: spec for spec in STORAGE_FLAGS}


def _default_value(defaults: StorageSettings, spec: FlagSpec) -> Any:
    value = getattr(defaults, spec.field)
    if spec.secret:
        secret: SecretStr | None = value
        return secret.get_secret_value() if secret is not None else ""
    if isinstance(value, NamespaceMode):
        return value.value
    return value


def _build_option(spec: FlagSpec, default: Any) -> click.Option:
    if spec.field == "disabled":
        return click.Option(
            [f"--{spec.flag}", spec.param_name],
            is_flag=True,
            default=default,
            help=spec.help,
        )
    if spec.field == "secure":
        return click.Option(
            ["--s3-secure/--s3-insecure", spec.param_name],
            default=default,
            show_default=True,
            help=spec.help,
        )
    if spec.field == "namespace":
        return click.Option(
            [f"--{spec.flag}", spec.param_name],
            type=click.Choice([mode.value for mode in NamespaceMode]),
            default=default,
            show_default=True,
            help=spec.help,
        )
    return click.Option(
        [f"--{spec.flag}", spec.param_name],
        default=default,
        show_default=not spec.secret,
        help=spec.help,
    )


def find_flag(command: click.Command, flag: str) -> click.Option | None:
    """Return the option registered under ``--<flag>``, if any."""
    name = flag.replace("-", "_")
    for param in command.params:
        if isinstance(param, click.Option) and param.name == name:
            return param
    return None


def register_flags(
    command: click.Command,
    defaults: StorageSettings | None = None,
    *,
    allow_disable: bool = True,
) -> click.Command:
    """Register every storage flag on ``command``.

    Args:
        command: Click command or group receiving the options.
        defaults: Settings whose values become the flag defaults. Falls back
            to ``StorageSettings.new()``.
        allow_disable: Register ``--s3-disabled``. Commands that cannot run
            without storage leave it out and call :func:`mark_required_flags`.

    Returns:
        The same command, for chaining.

    Raises:
        FlagRegistrationError: If one of the flags is already registered.
    """
    defaults = defaults if defaults is not None else StorageSettings.new()
    for spec in STORAGE_FLAGS:
        if spec.field == "disabled" and not allow_disable:
            continue
        if find_flag(command, spec.flag) is not None:
            raise FlagRegistrationError(spec.flag, "flag is already registered")
        command.params.append(_build_option(spec, _default_value(defaults, spec)))
    return command


def mark_required_flags(
    command: click.Command,
    mode: NamespaceMode = NamespaceMode.BUCKET,
) -> None:
    """Mark endpoint, bucket (or prefix), access key and secret key as required.

    Only valid for commands registered without the disable flag.

    Raises:
        FlagRegistrationError: For the first flag that cannot be marked.
    """
    if find_flag(command, _FLAGS_BY_FIELD["disabled"].flag) is not None:
        raise FlagRegistrationError(
            _FLAGS_BY_FIELD["disabled"].flag,
            "storage flags cannot be required while storage can be disabled",
        )

    root_field = "prefix" if mode == NamespaceMode.PREFIX else "bucket"
    for field in ("endpoint", root_field, "access_key", "secret_key"):
        spec = _FLAGS_BY_FIELD[field]
        option = find_flag(command, spec.flag)
        if option is None:
            raise FlagRegistrationError(spec.flag, "flag is not registered")
        option.required = True
        # click only reports a missing value when it is None
        option.default = None


def settings_from_flags(
    ctx: click.Context,
    base: StorageSettings | None = None,
) -> StorageSettings:
    """Build StorageSettings from the flags given explicitly on ``ctx``.

    Flags left at their defaults are ignored, so environment variables and
    conf files still apply underneath.

    Args:
        ctx: Click context of a command carrying the storage flags.
        base: Settings to overlay the flags onto. When omitted the settings
            are loaded from the usual sources with flags taking precedence.
    """
    values: dict[str, Any] = {}
    for spec in STORAGE_FLAGS:
        if spec.param_name not in ctx.params:
            continue
        source = ctx.get_parameter_source(spec.param_name)
        if source is None or source == ParameterSource.DEFAULT:
            continue
        values[spec.field] = ctx.params[spec.param_name]

    if base is not None:
        return type(base).model_validate({**base.model_dump(), **values})
    return StorageSettings(**values)
