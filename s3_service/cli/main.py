"""Main CLI entry point for s3-service."""

import click

from s3_service.cli.commands import storage
from s3_service.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="s3-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """s3-service CLI - S3-compatible object storage from the command line.

    \b
    Command Groups:
      storage    Object and bucket operations

    \b
    Quick Start:
      s3-service storage --s3-endpoint localhost:9000 --s3-insecure validate
      s3-service storage ls logs
      s3-service storage put logs a.txt ./a.txt
    """
    ctx.ensure_object(dict)


cli.add_command(storage.storage)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
