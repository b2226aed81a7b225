"""Tests for application exceptions."""
from __future__ import annotations

import pytest

from s3_service.core.exceptions import (
    AccessKeyRequiredError,
    AppException,
    BucketRequiredError,
    ConfigField,
    ConfigurationError,
    EndpointRequiredError,
    FlagRegistrationError,
    PrefixRequiredError,
    RegionRequiredError,
    SecretKeyRequiredError,
)


@pytest.mark.unit
class TestAppException:
    def test_default_title(self):
        exc = AppException(status_code=404, detail="missing")

        assert exc.title == "Not Found"
        assert str(exc) == "missing"

    def test_to_problem(self):
        exc = AppException(
            status_code=400,
            detail="bad",
            type="bad-thing",
            instance="/objects/1",
            extra={"field": "endpoint"},
        )

        assert exc.to_problem() == {
            "type": "bad-thing",
            "title": "Bad Request",
            "status": 400,
            "detail": "bad",
            "instance": "/objects/1",
            "field": "endpoint",
        }


@pytest.mark.unit
class TestConfigurationErrors:
    @pytest.mark.parametrize(
        ("error_cls", "field", "problem_type"),
        [
            (EndpointRequiredError, ConfigField.ENDPOINT, "endpoint-required"),
            (RegionRequiredError, ConfigField.REGION, "region-required"),
            (BucketRequiredError, ConfigField.BUCKET, "bucket-required"),
            (PrefixRequiredError, ConfigField.PREFIX, "prefix-required"),
            (AccessKeyRequiredError, ConfigField.ACCESS_KEY, "access-key-required"),
            (SecretKeyRequiredError, ConfigField.SECRET_KEY, "secret-key-required"),
        ],
    )
    def test_each_field_has_distinct_error(self, error_cls, field, problem_type):
        exc = error_cls()

        assert isinstance(exc, ConfigurationError)
        assert exc.field == field
        assert exc.type == problem_type
        assert exc.status_code == 400

    def test_errors_distinguishable_by_type(self):
        with pytest.raises(RegionRequiredError):
            raise RegionRequiredError()

        assert not isinstance(RegionRequiredError(), EndpointRequiredError)

    def test_custom_detail(self):
        assert EndpointRequiredError("set S3_ENDPOINT").detail == "set S3_ENDPOINT"


@pytest.mark.unit
def test_flag_registration_error():
    exc = FlagRegistrationError("s3-bucket", "flag is not registered")

    assert exc.flag == "s3-bucket"
    assert exc.detail == "--s3-bucket: flag is not registered"
    assert exc.extra == {"flag": "s3-bucket"}
