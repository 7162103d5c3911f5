"""
Tests for CloudWatch logs and metrics cost estimation.
"""

from unittest.mock import Mock

import pytest

from cloudcost.services.observability_estimators import NO_USAGE_DETAIL, estimate_cloudwatch


def test_logs_ingestion_and_storage(price_index, make_request, make_context):
    tags = {"log_ingestion_gb": "10", "log_storage_gb": "20"}
    result = estimate_cloudwatch(make_request("cloudwatch", "logs"), price_index, make_context(tags))

    assert result.cost_per_month == pytest.approx(5.6)
    assert result.unit_price == 0.0
    assert result.billing_detail == (
        "CloudWatch: 10.00 GB logs ingested ($5.00), "
        "20.00 GB logs stored @ $0.0300/GB-mo ($0.60)"
    )


def test_custom_metrics_span_tiers(price_index, make_request, make_context):
    """15,000 metrics: 10,000 at $0.30 and 5,000 at $0.10."""
    result = estimate_cloudwatch(
        make_request("cloudwatch", "metrics"), price_index, make_context({"custom_metrics": "15000"})
    )
    assert result.cost_per_month == pytest.approx(3500.0)
    assert result.billing_detail == "CloudWatch: 15000 custom metrics ($3500.00)"


def test_combined_sums_logs_and_metrics(price_index, make_request, make_context):
    tags = {"log_ingestion_gb": "10", "log_storage_gb": "20", "custom_metrics": "10"}
    result = estimate_cloudwatch(make_request("cloudwatch", "combined"), price_index, make_context(tags))
    assert result.cost_per_month == pytest.approx(5.6 + 3.0)


def test_logs_sku_ignores_metrics(price_index, make_request, make_context):
    tags = {"log_ingestion_gb": "10", "custom_metrics": "15000"}
    result = estimate_cloudwatch(make_request("cloudwatch", "logs"), price_index, make_context(tags))
    assert result.cost_per_month == pytest.approx(5.0)


def test_default_sku_is_logs(price_index, make_request, make_context):
    result = estimate_cloudwatch(make_request("cloudwatch", ""), price_index, make_context({"log_ingestion_gb": "2"}))
    assert result.cost_per_month == pytest.approx(1.0)
    assert result.defaulted_fields == set()


def test_unknown_sku_is_defaulted(price_index, make_request, make_context):
    result = estimate_cloudwatch(
        make_request("cloudwatch", "dashboards"), price_index, make_context({"log_ingestion_gb": "2"})
    )
    assert result.defaulted_fields == {"sku"}
    assert result.cost_per_month == pytest.approx(1.0)


def test_no_usage(price_index, make_request, make_context):
    result = estimate_cloudwatch(make_request("cloudwatch", "combined"), price_index, make_context())
    assert result.cost_per_month == 0.0
    assert result.billing_detail == NO_USAGE_DETAIL


def test_too_many_custom_metrics_is_clamped(price_index, make_request, make_context, caplog):
    """Metrics above the cap are priced at the cap, never dropped to zero."""
    result = estimate_cloudwatch(
        make_request("cloudwatch", "metrics"), price_index, make_context({"custom_metrics": "2000000"})
    )
    assert result.defaulted_fields == {"custom_metrics"}
    assert result.cost_per_month == pytest.approx(64500.0)
    assert "using 1000000" in caplog.text


@pytest.mark.parametrize("tags", [
    {"log_ingestion_gb": "10", "log_storage_gb": "20", "custom_metrics": "5"},
    {},
])
def test_region_without_cloudwatch_pricing(partial_price_index, make_request, make_context, caplog, tags):
    """Without a CloudWatch offer the detail names the gap, with or without usage tags."""
    result = estimate_cloudwatch(
        make_request("cloudwatch", "combined", region="us-west-2"),
        partial_price_index,
        make_context(tags, region="us-west-2"),
    )

    assert result.cost_per_month == 0.0
    assert result.billing_detail == "CloudWatch pricing data not available for region us-west-2"
    assert "Pricing miss in us-west-2" in caplog.text


def test_missing_components_are_named(make_request, make_context, caplog):
    """An offer without some components prices those at $0 and names each one."""
    index = Mock()
    index.has_offer.return_value = True
    index.tier_schedule.return_value = (None, False)
    index.lookup.return_value = (None, False)
    tags = {"log_ingestion_gb": "10", "log_storage_gb": "20", "custom_metrics": "5"}

    result = estimate_cloudwatch(make_request("cloudwatch", "combined"), index, make_context(tags))

    assert result.cost_per_month == 0.0
    assert "CloudWatch Logs ingestion pricing data not available for region us-east-1" in result.billing_detail
    assert "CloudWatch Logs storage pricing data not available" in result.billing_detail
    assert "CloudWatch Metrics pricing data not available" in result.billing_detail
    assert "pricing incomplete" in caplog.text
