"""Tests for admin input validation."""

import pytest

from telemon.core.errors import MetricValidationError
from telemon.core.validation import (
    ensure_valid_metric,
    ensure_valid_refresh_interval,
    validate_metric,
    validate_refresh_interval,
)


class TestValidateMetric:
    """Field-keyed error messages for the admin form."""

    def test_valid_payload_has_no_errors(self, metric_payload):
        assert validate_metric(metric_payload) == {}

    def test_required_text_fields(self, metric_payload):
        metric_payload.update(name="", description="   ", unit=None)

        errors = validate_metric(metric_payload)

        assert errors["name"] == "Name is required"
        assert errors["description"] == "Description is required"
        assert errors["unit"] == "Unit is required"

    def test_limits_must_be_numbers(self, metric_payload):
        metric_payload.update(ucl="abc", lcl=None)

        errors = validate_metric(metric_payload)

        assert errors["ucl"] == "UCL must be a number"
        assert errors["lcl"] == "LCL must be a number"

    def test_numeric_strings_are_accepted(self, metric_payload):
        metric_payload.update(ucl="150", lcl="50")
        assert validate_metric(metric_payload) == {}

    @pytest.mark.parametrize("lcl", [150, 200])
    def test_lcl_must_be_below_ucl(self, metric_payload, lcl):
        metric_payload["lcl"] = lcl

        errors = validate_metric(metric_payload)

        assert errors["lcl"] == "LCL must be less than UCL"
        assert errors["ucl"] == "UCL must be greater than LCL"

    def test_critical_threshold_is_optional(self, metric_payload):
        metric_payload.pop("criticalThreshold")
        assert validate_metric(metric_payload) == {}

        metric_payload["criticalThreshold"] = "high"
        assert "criticalThreshold" in validate_metric(metric_payload)

    @pytest.mark.parametrize("source_type", ["kibana", "database", "api"])
    def test_query_sources_need_a_query(self, metric_payload, source_type):
        metric_payload["dataSource"] = {"type": source_type, "query": ""}

        assert validate_metric(metric_payload) == {"dataSource.query": "Query is required"}

    def test_weather_needs_city_and_metric_type(self, metric_payload):
        metric_payload["dataSource"] = {"type": "weather_api", "params": {}}

        errors = validate_metric(metric_payload)

        assert errors["dataSource.params.city"] == "City is required"
        assert errors["dataSource.params.metricType"] == "Weather metric type is required"

    def test_weather_metric_type_must_be_known(self, metric_payload):
        metric_payload["dataSource"] = {
            "type": "weather_api",
            "params": {"city": "Oslo", "metricType": "visibility"},
        }

        errors = validate_metric(metric_payload)

        assert "dataSource.params.metricType" in errors
        assert "dataSource.params.city" not in errors

    def test_unknown_source_type_rejected(self, metric_payload):
        metric_payload["dataSource"] = {"type": "snmp", "query": "ifInOctets"}

        errors = validate_metric(metric_payload)

        assert errors == {"dataSource.type": "Unsupported data source type: snmp"}

    def test_missing_data_source(self, metric_payload):
        metric_payload.pop("dataSource")
        assert validate_metric(metric_payload) == {"dataSource": "Data source is required"}

    def test_source_refresh_interval_minimum(self, metric_payload):
        metric_payload["dataSource"]["refreshInterval"] = 1000

        errors = validate_metric(metric_payload)

        assert errors == {
            "dataSource.refreshInterval": "Refresh interval must be at least 5000 ms"
        }

    def test_ensure_raises_with_errors(self, metric_payload):
        metric_payload["name"] = ""

        with pytest.raises(MetricValidationError) as exc_info:
            ensure_valid_metric(metric_payload)

        assert exc_info.value.errors == {"name": "Name is required"}


class TestRefreshInterval:

    @pytest.mark.parametrize("value", [5000, "5000", 60000])
    def test_accepted(self, value):
        assert validate_refresh_interval(value) == {}

    @pytest.mark.parametrize("value", [4999, 0, -1, None, "soon", True])
    def test_rejected(self, value):
        assert validate_refresh_interval(value) == {
            "refreshInterval": "Refresh interval must be at least 5000 ms"
        }

    def test_ensure_returns_int(self):
        assert ensure_valid_refresh_interval("30000") == 30000
        with pytest.raises(MetricValidationError):
            ensure_valid_refresh_interval(100)
