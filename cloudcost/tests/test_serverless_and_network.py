"""
Tests for Lambda, load balancer and NAT gateway cost estimation.
"""

import pytest

from cloudcost.services.network_estimators import estimate_elb, estimate_natgw, load_balancer_kind
from cloudcost.services.serverless_estimators import estimate_lambda, gb_seconds, lambda_architecture
from cloudcost.services.usage_tags import UsageTagReader


def test_gb_seconds():
    assert gb_seconds(512, 200, 1_000_000) == pytest.approx(100_000)
    assert gb_seconds(1024, 1000, 1) == pytest.approx(1.0)


def test_lambda_x86(price_index, make_request, make_context):
    """Requests plus GB-seconds inside the first duration tier."""
    tags = {"requests_per_month": "1000000", "avg_duration_ms": "200", "arch": "x86_64"}
    result = estimate_lambda(make_request("lambda", "512"), price_index, make_context(tags))

    assert result.cost_per_month == pytest.approx(0.2 + 100_000 * 0.0000166667)
    assert result.billing_detail == (
        "Lambda 512MB (x86_64), 1000000 requests/month, 200ms avg duration, 100000 GB-seconds"
    )
    assert result.defaulted_fields == set()


def test_lambda_arm64_is_cheaper(price_index, make_request, make_context):
    base = {"requests_per_month": "1000000", "avg_duration_ms": "200"}
    x86 = estimate_lambda(make_request("lambda", "512"), price_index, make_context(dict(base, arch="x86_64")))
    arm = estimate_lambda(make_request("lambda", "512"), price_index, make_context(dict(base, arch="arm64")))

    assert arm.cost_per_month == pytest.approx(0.2 + 100_000 * 0.0000133334)
    assert arm.cost_per_month < x86.cost_per_month
    assert "(arm64)" in arm.billing_detail


def test_lambda_all_defaults(price_index, make_request, make_context):
    result = estimate_lambda(make_request("lambda", ""), price_index, make_context())

    assert result.cost_per_month == 0.0
    assert result.defaulted_fields == {"memory", "requests_per_month", "avg_duration_ms", "arch"}
    assert result.billing_detail == (
        "Lambda 128MB (x86_64), 0 requests/month, 100ms avg duration "
        "(memory defaulted, requests defaulted, duration defaulted, arch defaulted to x86_64), "
        "0 GB-seconds"
    )


def test_lambda_invalid_memory_sku(price_index, make_request, make_context):
    tags = {"requests_per_month": "10", "avg_duration_ms": "100", "arch": "x86_64"}
    result = estimate_lambda(make_request("lambda", "lots"), price_index, make_context(tags))
    assert result.defaulted_fields == {"memory"}
    assert "Lambda 128MB" in result.billing_detail


@pytest.mark.parametrize("value,expected", [
    ("arm", "arm64"),
    ("ARM64", "arm64"),
    ("aarch64", "arm64"),
    ("x86_64", "x86_64"),
    ("sparc", "x86_64"),
])
def test_lambda_architecture_aliases(value, expected):
    assert lambda_architecture(UsageTagReader({"arch": value})) == expected


def test_lambda_architecture_tag_alias():
    assert lambda_architecture(UsageTagReader({"architecture": "arm64"})) == "arm64"


def test_alb_with_capacity_units(price_index, make_request, make_context):
    result = estimate_elb(make_request("alb", "alb"), price_index, make_context({"lcu_per_hour": "2"}))

    assert result.cost_per_month == pytest.approx(28.105)
    assert result.unit_price == pytest.approx(0.0225)
    assert result.billing_detail == "ALB, 730 hrs/month, 2.0 LCU avg/hr"


def test_nlb_with_capacity_units(price_index, make_request, make_context):
    result = estimate_elb(make_request("elb", "nlb"), price_index, make_context({"nlcu_per_hour": "1"}))

    assert result.cost_per_month == pytest.approx(20.805)
    assert result.billing_detail == "NLB, 730 hrs/month, 1.0 NLCU avg/hr"


def test_elb_capacity_units_fallback_tag(price_index, make_request, make_context):
    result = estimate_elb(make_request("alb", ""), price_index, make_context({"capacity_units": "2"}))
    assert result.cost_per_month == pytest.approx(28.105)


def test_elb_fixed_charge_only(price_index, make_request, make_context):
    result = estimate_elb(make_request("alb", ""), price_index, make_context())
    assert result.cost_per_month == pytest.approx(16.425)


def test_elb_large_capacity_warns(price_index, make_request, make_context, caplog):
    estimate_elb(make_request("alb", ""), price_index, make_context({"lcu_per_hour": "5000"}))
    assert "verify this is intentional" in caplog.text


def test_load_balancer_kind(make_request):
    assert load_balancer_kind(make_request("nlb")) == "nlb"
    assert load_balancer_kind(make_request("elb", "network")) == "nlb"
    assert load_balancer_kind(make_request("aws:lb/loadBalancer:LoadBalancer")) == "alb"


def test_nat_gateway_with_data(price_index, make_request, make_context):
    result = estimate_natgw(
        make_request("natgw"), price_index, make_context({"data_processed_gb": "100"})
    )
    assert result.cost_per_month == pytest.approx(37.35)
    assert result.billing_detail == (
        "NAT Gateway, 730 hrs/month ($0.045/hr) + 100.00 GB data processed ($0.045/GB)"
    )


def test_nat_gateway_without_data_tag(price_index, make_request, make_context):
    result = estimate_natgw(make_request("natgw"), price_index, make_context())
    assert result.cost_per_month == pytest.approx(32.85)
    assert "use 'data_processed_gb' tag to estimate" in result.billing_detail


def test_nat_gateway_zero_data(price_index, make_request, make_context):
    result = estimate_natgw(make_request("natgw"), price_index, make_context({"data_processed_gb": "0"}))
    assert result.cost_per_month == pytest.approx(32.85)
    assert result.billing_detail.endswith("(0 GB data processed)")
