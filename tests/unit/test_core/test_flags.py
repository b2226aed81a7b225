"""Unit tests for storage command-line flags."""
from __future__ import annotations

import click
import pytest
from click.testing import CliRunner

from s3_service.core.exceptions import FlagRegistrationError
from s3_service.core.settings import (
    STORAGE_FLAGS,
    NamespaceMode,
    StorageSettings,
    find_flag,
    mark_required_flags,
    register_flags,
    settings_from_flags,
)

ALL_FLAGS = [
    "s3-disabled",
    "s3-endpoint",
    "s3-secure",
    "s3-region",
    "s3-namespace",
    "s3-bucket",
    "s3-prefix",
    "s3-access-key",
    "s3-secret-key",
]


def _capturing_command(**register_kwargs):
    """Build a command that stores the settings built from its flags."""
    captured: dict[str, StorageSettings] = {}

    @click.command()
    @click.pass_context
    def cmd(ctx: click.Context) -> None:
        captured["settings"] = settings_from_flags(ctx)

    register_flags(cmd, **register_kwargs)
    return cmd, captured


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.mark.unit
class TestRegisterFlags:
    """Test flag registration."""

    def test_every_field_registered(self):
        cmd = register_flags(click.Command("cmd"))

        for flag in ALL_FLAGS:
            assert find_flag(cmd, flag) is not None, flag
        assert [spec.flag for spec in STORAGE_FLAGS] == ALL_FLAGS

    def test_every_flag_has_help(self):
        cmd = register_flags(click.Command("cmd"))

        assert all(param.help for param in cmd.params)

    def test_defaults_come_from_new_settings(self):
        cmd = register_flags(click.Command("cmd"))

        assert find_flag(cmd, "s3-disabled").default is False
        assert find_flag(cmd, "s3-secure").default is True
        assert find_flag(cmd, "s3-region").default == "auto"
        assert find_flag(cmd, "s3-namespace").default == "bucket"
        assert find_flag(cmd, "s3-endpoint").default == ""

    def test_defaults_from_given_settings(self):
        defaults = StorageSettings(endpoint="minio:9000", region="eu-west-1")

        cmd = register_flags(click.Command("cmd"), defaults)

        assert find_flag(cmd, "s3-endpoint").default == "minio:9000"
        assert find_flag(cmd, "s3-region").default == "eu-west-1"

    def test_without_disable_flag(self):
        cmd = register_flags(click.Command("cmd"), allow_disable=False)

        assert find_flag(cmd, "s3-disabled") is None
        assert find_flag(cmd, "s3-endpoint") is not None

    def test_duplicate_registration_rejected(self):
        cmd = register_flags(click.Command("cmd"))

        with pytest.raises(FlagRegistrationError) as exc_info:
            register_flags(cmd)

        assert exc_info.value.flag == "s3-disabled"

    def test_secrets_not_shown_in_help(self, cli_runner):
        defaults = StorageSettings(access_key="very-secret-ak", secret_key="very-secret-sk")
        cmd = register_flags(click.Command("cmd"), defaults)

        result = cli_runner.invoke(cmd, ["--help"])

        assert result.exit_code == 0
        assert "--s3-access-key" in result.output
        assert "very-secret" not in result.output


@pytest.mark.unit
class TestMarkRequiredFlags:
    """Test required-flag marking."""

    def test_marks_bucket_mode_flags(self):
        cmd = register_flags(click.Command("cmd"), allow_disable=False)

        mark_required_flags(cmd)

        required = {param.name for param in cmd.params if param.required}
        assert required == {"s3_endpoint", "s3_bucket", "s3_access_key", "s3_secret_key"}

    def test_marks_prefix_mode_flags(self):
        cmd = register_flags(click.Command("cmd"), allow_disable=False)

        mark_required_flags(cmd, NamespaceMode.PREFIX)

        required = {param.name for param in cmd.params if param.required}
        assert required == {"s3_endpoint", "s3_prefix", "s3_access_key", "s3_secret_key"}

    def test_unregistered_flag_reported(self):
        """Test the first flag missing from the command is named."""
        with pytest.raises(FlagRegistrationError) as exc_info:
            mark_required_flags(click.Command("cmd"))

        assert exc_info.value.flag == "s3-endpoint"
        assert "not registered" in exc_info.value.detail

    def test_rejected_when_disable_flag_present(self):
        cmd = register_flags(click.Command("cmd"))

        with pytest.raises(FlagRegistrationError) as exc_info:
            mark_required_flags(cmd)

        assert exc_info.value.flag == "s3-disabled"

    def test_missing_required_flag_fails_invocation(self, cli_runner):
        cmd, captured = _capturing_command(allow_disable=False)
        mark_required_flags(cmd)

        result = cli_runner.invoke(cmd, ["--s3-bucket", "data"])

        assert result.exit_code == 2
        assert "--s3-endpoint" in result.output
        assert "settings" not in captured


@pytest.mark.unit
class TestSettingsFromFlags:
    """Test building settings from parsed flags."""

    def test_explicit_flags_applied(self, cli_runner):
        cmd, captured = _capturing_command()

        result = cli_runner.invoke(
            cmd,
            [
                "--s3-endpoint", "minio:9000",
                "--s3-insecure",
                "--s3-bucket", "data",
                "--s3-access-key", "ak",
                "--s3-secret-key", "sk",
            ],
        )

        assert result.exit_code == 0, result.output
        settings = captured["settings"]
        assert settings.endpoint == "minio:9000"
        assert settings.secure is False
        assert settings.secret_key.get_secret_value() == "sk"
        settings.validate_required()

    def test_defaults_do_not_shadow_environment(self, cli_runner, monkeypatch):
        """Test flags left at their default keep environment values."""
        monkeypatch.setenv("S3_REGION", "eu-central-1")
        monkeypatch.setenv("S3_SECURE", "false")
        cmd, captured = _capturing_command()

        result = cli_runner.invoke(cmd, ["--s3-bucket", "data"])

        assert result.exit_code == 0, result.output
        assert captured["settings"].region == "eu-central-1"
        assert captured["settings"].secure is False
        assert captured["settings"].bucket == "data"

    def test_flags_override_environment(self, cli_runner, monkeypatch):
        monkeypatch.setenv("S3_BUCKET", "from-env")
        cmd, captured = _capturing_command()

        cli_runner.invoke(cmd, ["--s3-bucket", "from-flag"])

        assert captured["settings"].bucket == "from-flag"

    def test_namespace_flag(self, cli_runner):
        cmd, captured = _capturing_command()

        cli_runner.invoke(cmd, ["--s3-namespace", "prefix", "--s3-prefix", "tenant-"])

        assert captured["settings"].namespace == NamespaceMode.PREFIX
        assert captured["settings"].prefix == "tenant-"

    def test_disabled_flag(self, cli_runner):
        cmd, captured = _capturing_command()

        cli_runner.invoke(cmd, ["--s3-disabled"])

        assert captured["settings"].disabled is True
        captured["settings"].validate_required()

    def test_overlay_on_base(self):
        base = StorageSettings(endpoint="base:9000", bucket="base-bucket", access_key="ak")
        cmd = register_flags(click.Command("cmd"))
        ctx = cmd.make_context("cmd", ["--s3-bucket", "flag-bucket"])

        settings = settings_from_flags(ctx, base)

        assert settings.endpoint == "base:9000"
        assert settings.bucket == "flag-bucket"
        assert settings.access_key.get_secret_value() == "ak"
