"""
Behavioral properties that hold across service families.
"""

import pytest


SAMPLE_REQUESTS = [
    ("ec2", "t3.micro", {}),
    ("ebs", "gp3", {"size": "100"}),
    ("s3", "STANDARD", {"size": "100000"}),
    ("rds", "db.m5.large", {"engine": "postgres", "multi_az": "true", "storage_type": "gp3", "storage_size": "100"}),
    ("eks", "cluster", {}),
    ("lambda", "512", {"requests_per_month": "1000000", "avg_duration_ms": "200"}),
    ("alb", "", {"lcu_per_hour": "2"}),
    ("natgw", "", {"data_processed_gb": "100"}),
    ("dynamodb", "provisioned", {"read_capacity_units": "10", "write_capacity_units": "5", "storage_gb": "25"}),
    ("cloudwatch", "combined", {"log_ingestion_gb": "10", "custom_metrics": "15000"}),
    ("elasticache", "cache.t3.micro", {"num_nodes": "2"}),
]


@pytest.mark.parametrize("resource_type,sku,tags", SAMPLE_REQUESTS)
def test_estimates_are_deterministic(estimator, make_request, resource_type, sku, tags):
    """The same request always yields the same result."""
    first = estimator.get_projected_cost(make_request(resource_type, sku, tags=tags))
    second = estimator.get_projected_cost(make_request(resource_type, sku, tags=tags))
    assert first.to_dict() == second.to_dict()


@pytest.mark.parametrize("resource_type,sku,tags", SAMPLE_REQUESTS)
def test_costs_are_never_negative(estimator, make_request, resource_type, sku, tags):
    result = estimator.get_projected_cost(make_request(resource_type, sku, tags=tags))
    assert result.cost_per_month >= 0
    assert result.unit_price >= 0
    if result.carbon is not None:
        assert result.carbon.grams >= 0


@pytest.mark.parametrize("resource_type,sku,tag,values", [
    ("ebs", "gp3", "size", [1, 10, 100, 100.5, 101, 1000]),
    ("rds", "db.t3.micro", "storage_size", [20, 500, 500.5, 501, 5000]),
    ("s3", "STANDARD", "size", [0.4, 1, 51200, 51200.5, 51201, 600000]),
    ("lambda", "1024", "requests_per_month", [0, 1000, 1000.5, 1000000, 100000000]),
    ("dynamodb", "provisioned", "read_capacity_units", [1, 1.5, 2, 100]),
    ("natgw", "", "data_processed_gb", [0, 1, 1.5, 100, 10000]),
    ("cloudwatch", "metrics", "custom_metrics", [1, 10000, 10001, 300000, 1000000, 1000001, 5000000]),
    ("elasticache", "cache.t3.micro", "num_nodes", [1, 2, 2.5, 10, 1000, 1001, 5000]),
])
def test_cost_is_monotonic_in_usage(estimator, make_request, resource_type, sku, tag, values):
    """More usage never costs less."""
    costs = [
        estimator.get_projected_cost(make_request(resource_type, sku, tags={tag: str(v)})).cost_per_month
        for v in values
    ]
    assert costs == sorted(costs)


@pytest.mark.parametrize("utilization", [0.1, 0.25, 0.5, 0.75, 1.0])
def test_carbon_is_monotonic_in_utilization(estimator, make_request, utilization):
    lower = estimator.get_projected_cost(make_request("ec2", "m5.large"), utilization=utilization - 0.05)
    higher = estimator.get_projected_cost(make_request("ec2", "m5.large"), utilization=utilization)
    assert higher.carbon.grams > lower.carbon.grams
