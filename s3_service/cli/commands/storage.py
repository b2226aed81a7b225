"""Storage commands for S3-compatible object storage.

Every command accepts the ``--s3-*`` flags on the ``storage`` group; flags
given on the command line override S3_* environment variables and
conf/storage.yaml.

Examples:
  s3-service storage --s3-endpoint localhost:9000 --s3-insecure --s3-bucket data info
  s3-service storage ls logs 2024/
  s3-service storage put logs a.txt ./a.txt --content-type text/plain
  s3-service storage presign logs a.txt --expires 600
"""

import sys
from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from datetime import datetime
from pathlib import Path

import click
from pydantic import ValidationError

from s3_service.cli.utils import coro, error, format_bytes, info, section, success, warning
from s3_service.core.exceptions import ConfigurationError
from s3_service.core.settings import NamespaceMode, StorageSettings, register_flags, settings_from_flags
from s3_service.infra.logging import clear_log_context, get_logger, set_log_context
from s3_service.infra.storage import (
    S3Client,
    StorageDisabledError,
    StorageError,
)

CLI_LOG_NAME = "cli"

logger = get_logger(__name__, log_scope=CLI_LOG_NAME)


@click.group(name="storage")
@click.pass_context
def storage(ctx: click.Context) -> None:
    """Object storage commands.

    Inspect configuration, list, read, write and delete objects, and
    create or remove buckets.
    """
    ctx.ensure_object(dict)
    clear_log_context()
    set_log_context(command=ctx.invoked_subcommand)
    try:
        ctx.obj["storage_settings"] = settings_from_flags(ctx)
    except ValidationError as e:
        error(f"Invalid storage configuration: {e}")
        sys.exit(1)


register_flags(storage)


def _settings() -> StorageSettings:
    ctx = click.get_current_context()
    return ctx.find_object(dict)["storage_settings"]


@asynccontextmanager
async def _open_client() -> AsyncIterator[S3Client]:
    """Validate settings, connect, and close the client on exit.

    Exits with status 1 on invalid configuration, disabled storage, or a
    failed connection.
    """
    settings = _settings()
    try:
        settings.validate_required()
    except ConfigurationError as e:
        error(f"Invalid storage configuration: {e.detail}")
        sys.exit(1)

    try:
        client = await S3Client.connect(settings.to_client_options(CLI_LOG_NAME), logger)
    except StorageDisabledError:
        warning("Storage is disabled (--s3-disabled / S3_DISABLED)")
        sys.exit(1)
    except StorageError as e:
        error(f"Failed to connect to storage: {e.detail}")
        sys.exit(1)

    try:
        yield client
    finally:
        await client.close()


@storage.command(name="info")
def info_cmd() -> None:
    """Show storage configuration. Credentials are never printed."""
    settings = _settings()

    section("Storage Configuration")
    click.echo(f"Disabled: {settings.disabled}")
    click.echo(f"Endpoint: {settings.endpoint or '(not set)'}")
    click.echo(f"Secure: {settings.secure}")
    click.echo(f"Region: {settings.region}")
    click.echo(f"Namespace: {settings.namespace.value}")
    label = "Prefix" if settings.namespace == NamespaceMode.PREFIX else "Bucket"
    click.echo(f"{label}: {settings.namespace_root or '(not set)'}")
    click.echo(f"Verify SSL: {settings.verify_ssl}")
    click.echo(f"Timeout: {settings.timeout}s")
    click.echo(f"Max Retries: {settings.max_retries} ({settings.retry_mode})")

    if settings.access_key and settings.secret_key:
        success("Credentials: Configured")
    else:
        warning("Credentials: Not configured")

    if settings.disabled:
        warning("Storage is disabled")
    elif settings.is_configured:
        success("Storage is properly configured")
    else:
        missing = settings.missing_field()
        warning(f"Storage is not fully configured: {missing.detail if missing else 'unknown'}")


@storage.command(name="validate")
def validate_cmd() -> None:
    """Check that every required setting is present. Makes no network calls."""
    settings = _settings()
    try:
        settings.validate_required()
    except ConfigurationError as e:
        error(f"Invalid storage configuration: {e.detail}")
        sys.exit(1)

    if settings.disabled:
        warning("Storage is disabled; nothing else to validate")
    else:
        success("Storage configuration is valid")


@storage.command(name="health")
@coro
async def health_cmd() -> None:
    """Check connectivity and credentials against the endpoint."""
    async with _open_client() as client:
        healthy = await client.health_check()

    if healthy:
        success("Storage is reachable")
    else:
        error("Storage health check failed")
        sys.exit(1)


@storage.command(name="ls")
@click.argument("bucket")
@click.argument("prefix", default="")
@click.option(
    "--recursive/--no-recursive",
    default=True,
    show_default=True,
    help="List every object below PREFIX, or only one level",
)
@click.option(
    "--limit",
    type=int,
    default=None,
    help="Stop after this many entries",
)
@coro
async def ls_cmd(bucket: str, prefix: str, recursive: bool, limit: int | None) -> None:
    """List objects under PREFIX in BUCKET.

    \b
    Examples:
      s3-service storage ls logs
      s3-service storage ls logs 2024/ --no-recursive
    """
    count = 0
    total_size = 0
    async with _open_client() as client:
        try:
            listing = client.list_objects(bucket, prefix, recursive=recursive)
            async with aclosing(listing):
                async for obj in listing:
                    if obj.is_prefix:
                        click.echo(f"{'PRE':>12}  {'':<19}  {obj.key}")
                    else:
                        modified = (
                            obj.last_modified.strftime("%Y-%m-%d %H:%M:%S")
                            if isinstance(obj.last_modified, datetime)
                            else ""
                        )
                        click.echo(
                            f"{format_bytes(obj.size_bytes):>12}  {modified:<19}  {obj.key}"
                        )
                        total_size += obj.size_bytes
                    count += 1
                    if limit is not None and count >= limit:
                        break
        except StorageError as e:
            error(f"Failed to list objects: {e.detail}")
            sys.exit(1)

    if count == 0:
        info("No objects found")
    else:
        info(f"Total: {count} entries, {format_bytes(total_size)}")


@storage.command(name="get")
@click.argument("bucket")
@click.argument("key")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, allow_dash=True, path_type=Path),
    default="-",
    help="Destination file, '-' for stdout",
)
@coro
async def get_cmd(bucket: str, key: str, output: Path) -> None:
    """Download KEY from BUCKET."""
    written = 0
    async with _open_client() as client:
        try:
            async with await client.get_object(bucket, key) as stream:
                if str(output) == "-":
                    sink = click.get_binary_stream("stdout")
                    async for chunk in stream:
                        sink.write(chunk)
                        written += len(chunk)
                    sink.flush()
                else:
                    with output.open("wb") as fh:
                        async for chunk in stream:
                            fh.write(chunk)
                            written += len(chunk)
        except StorageError as e:
            error(f"Failed to get object: {e.detail}")
            sys.exit(1)

    if str(output) != "-":
        success(f"Downloaded {key} to {output} ({format_bytes(written)})")


@storage.command(name="put")
@click.argument("bucket")
@click.argument("key")
@click.argument(
    "source",
    type=click.Path(exists=True, dir_okay=False, allow_dash=True, path_type=Path),
)
@click.option("--content-type", default=None, help="MIME type of the object")
@coro
async def put_cmd(bucket: str, key: str, source: Path, content_type: str | None) -> None:
    """Upload SOURCE (a file, or '-' for stdin) to KEY in BUCKET."""
    async with _open_client() as client:
        try:
            if str(source) == "-":
                result = await client.put_object(
                    bucket, key, click.get_binary_stream("stdin"), -1, content_type
                )
            else:
                with source.open("rb") as fh:
                    result = await client.put_object(
                        bucket, key, fh, source.stat().st_size, content_type
                    )
        except StorageError as e:
            error(f"Failed to put object: {e.detail}")
            sys.exit(1)

    success(
        f"Uploaded {format_bytes(result.size_bytes)} to {result.bucket}/{result.key} "
        f"(sha256 {result.checksum_sha256})"
    )


@storage.command(name="rm")
@click.argument("bucket")
@click.argument("key")
@coro
async def rm_cmd(bucket: str, key: str) -> None:
    """Delete KEY from BUCKET. Succeeds if the key does not exist."""
    async with _open_client() as client:
        try:
            await client.delete_object(bucket, key)
        except StorageError as e:
            error(f"Failed to delete object: {e.detail}")
            sys.exit(1)

    success(f"Deleted {key}")


@storage.command(name="presign")
@click.argument("bucket")
@click.argument("key")
@click.option(
    "--expires",
    type=click.IntRange(min=1),
    default=3600,
    show_default=True,
    help="URL validity in seconds",
)
@coro
async def presign_cmd(bucket: str, key: str, expires: int) -> None:
    """Print a presigned GET URL for KEY in BUCKET."""
    async with _open_client() as client:
        try:
            url = await client.presigned_get_object(bucket, key, expires)
        except StorageError as e:
            error(f"Failed to presign object: {e.detail}")
            sys.exit(1)

    click.echo(url)


@storage.command(name="mb")
@click.argument("bucket")
@coro
async def mb_cmd(bucket: str) -> None:
    """Create BUCKET (prefixed in prefix namespace mode)."""
    async with _open_client() as client:
        try:
            await client.make_bucket(bucket)
        except StorageError as e:
            error(f"Failed to create bucket: {e.detail}")
            sys.exit(1)

    success(f"Created bucket {client.namespace.resolve_bucket(bucket)}")


@storage.command(name="rb")
@click.argument("bucket")
@coro
async def rb_cmd(bucket: str) -> None:
    """Remove the empty BUCKET (prefixed in prefix namespace mode)."""
    async with _open_client() as client:
        try:
            await client.remove_bucket(bucket)
        except StorageError as e:
            error(f"Failed to remove bucket: {e.detail}")
            sys.exit(1)

    success(f"Removed bucket {client.namespace.resolve_bucket(bucket)}")
