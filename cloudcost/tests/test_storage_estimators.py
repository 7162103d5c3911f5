"""
Tests for EBS, S3 and DynamoDB cost estimation.
"""

import pytest

from cloudcost.services.storage_estimators import estimate_dynamodb, estimate_ebs, estimate_s3


def test_ebs_gp3_volume(price_index, make_request, make_context):
    result = estimate_ebs(make_request("ebs", "gp3"), price_index, make_context({"size": "100"}))

    assert result.cost_per_month == pytest.approx(8.0)
    assert result.unit_price == pytest.approx(0.08)
    assert result.billing_detail == "gp3 volume, 100 GB, $0.0800/GB-month"
    assert result.defaulted_fields == set()


def test_ebs_volume_size_alias(price_index, make_request, make_context):
    result = estimate_ebs(make_request("ebs", "gp2"), price_index, make_context({"volume_size": "50"}))
    assert result.cost_per_month == pytest.approx(5.0)


def test_ebs_missing_size_defaults_to_8gb(price_index, make_request, make_context):
    """Without a size tag the volume is priced at 8 GB and flagged."""
    result = estimate_ebs(make_request("ebs", "gp2"), price_index, make_context())

    assert result.cost_per_month == pytest.approx(0.8)
    assert result.defaulted_fields == {"size"}
    assert result.billing_detail == "gp2 volume, 8 GB (defaulted), $0.1000/GB-month"


@pytest.mark.parametrize("bad_size", ["abc", "-10", "0", "1.5e"])
def test_ebs_invalid_size_is_defaulted(price_index, make_request, make_context, bad_size, caplog):
    result = estimate_ebs(make_request("ebs", "gp3"), price_index, make_context({"size": bad_size}))

    assert result.cost_per_month == pytest.approx(0.64)
    assert result.defaulted_fields == {"size"}
    assert "size" in caplog.text


def test_ebs_unknown_volume_type(price_index, make_request, make_context):
    result = estimate_ebs(make_request("ebs", "gp9"), price_index, make_context({"size": "10"}))
    assert result.cost_per_month == 0.0
    assert result.billing_detail == 'EBS volume type "gp9" not found in pricing data'


def test_s3_standard_first_tier(price_index, make_request, make_context):
    result = estimate_s3(make_request("s3", "STANDARD"), price_index, make_context({"size": "100"}))

    assert result.cost_per_month == pytest.approx(2.3)
    assert result.unit_price == pytest.approx(0.023)
    assert result.billing_detail == "S3 STANDARD storage, 100 GB, $0.0230/GB-month"


def test_s3_fractional_size_is_shown_as_billed(price_index, make_request, make_context):
    result = estimate_s3(make_request("s3", "STANDARD"), price_index, make_context({"size": "0.4"}))

    assert result.cost_per_month == pytest.approx(0.0092)
    assert result.billing_detail == "S3 STANDARD storage, 0.40 GB, $0.0230/GB-month"


def test_s3_volume_tiers(price_index, make_request, make_context):
    """100,000 GB bills 51,200 GB at $0.023 and the rest at $0.022."""
    result = estimate_s3(make_request("s3", "STANDARD"), price_index, make_context({"size": "100000"}))

    assert result.cost_per_month == pytest.approx(2251.2)
    assert result.billing_detail.endswith("volume tiers above 51200 GB")


def test_s3_defaults(price_index, make_request, make_context):
    result = estimate_s3(make_request("s3", ""), price_index, make_context())

    assert result.cost_per_month == pytest.approx(0.023)
    assert result.defaulted_fields == {"size", "storage_class"}
    assert result.billing_detail == "S3 STANDARD storage, 1 GB (defaulted), $0.0230/GB-month"


def test_s3_storage_class_is_case_insensitive(price_index, make_request, make_context):
    result = estimate_s3(make_request("s3", "standard"), price_index, make_context({"size": "100"}))
    assert result.cost_per_month == pytest.approx(2.3)


def test_s3_unknown_storage_class(price_index, make_request, make_context):
    result = estimate_s3(make_request("s3", "REDUCED_REDUNDANCY"), price_index, make_context({"size": "10"}))
    assert result.cost_per_month == 0.0
    assert "not found" in result.billing_detail


def test_dynamodb_provisioned(price_index, make_request, make_context):
    tags = {"read_capacity_units": "10", "write_capacity_units": "5", "storage_gb": "25"}
    result = estimate_dynamodb(make_request("dynamodb", "provisioned"), price_index, make_context(tags))

    assert result.cost_per_month == pytest.approx(9.5715)
    assert result.billing_detail == (
        "DynamoDB provisioned, 10 RCUs, 5 WCUs, 730 hrs/month, 25GB storage"
    )


def test_dynamodb_on_demand(price_index, make_request, make_context):
    tags = {"read_requests_per_month": "1000000", "write_requests_per_month": "1000000"}
    result = estimate_dynamodb(make_request("dynamodb", "on-demand"), price_index, make_context(tags))

    assert result.cost_per_month == pytest.approx(0.75)
    assert result.billing_detail == "DynamoDB on-demand, 1000000 reads, 1000000 writes, 0GB storage"


def test_dynamodb_pay_per_request_alias(price_index, make_request, make_context):
    tags = {"read_requests_per_month": "1000000"}
    result = estimate_dynamodb(make_request("dynamodb", "PAY_PER_REQUEST"), price_index, make_context(tags))
    assert result.cost_per_month == pytest.approx(0.125)


def test_dynamodb_no_usage(price_index, make_request, make_context):
    result = estimate_dynamodb(make_request("dynamodb", ""), price_index, make_context())
    assert result.cost_per_month == 0.0
    assert result.billing_detail.endswith("(missing or zero usage inputs)")


def test_dynamodb_unknown_mode_falls_back_to_on_demand(price_index, make_request, make_context):
    result = estimate_dynamodb(
        make_request("dynamodb", "reserved"), price_index, make_context({"storage_gb": "4"})
    )
    assert "capacity_mode" in result.defaulted_fields
    assert result.billing_detail.startswith("DynamoDB on-demand")
    assert result.cost_per_month == pytest.approx(1.0)
