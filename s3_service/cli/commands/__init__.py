"""CLI command modules."""

from s3_service.cli.commands import storage

__all__ = ["storage"]
