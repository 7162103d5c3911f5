"""
Shared pytest fixtures for cloudcost tests.
"""

import sys
import os
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

# Set minimal environment variables for testing
os.environ.setdefault('CLOUDCOST_PRICING_REGION', 'us-east-1')
os.environ.setdefault('CLOUDCOST_LOG_LEVEL', 'DEBUG')

import pytest
from fastapi.testclient import TestClient

from cloudcost.carbon.estimator import CarbonEstimator
from cloudcost.core.config import Config
from cloudcost.domain.cost_models import ResourceRequest
from cloudcost.pricing.price_index import RegionalPriceIndex
from cloudcost.services.cost_estimator import CostEstimator
from cloudcost.services.usage_tags import EstimationContext, UsageTagReader


def build_index(region):
    """Fresh (uncached) price index over the packaged dataset for a region."""
    return RegionalPriceIndex(region, dataset_path=Config.dataset_path(region))


@pytest.fixture(scope="session")
def price_index():
    """us-east-1 price index."""
    return build_index("us-east-1")


@pytest.fixture(scope="session")
def eu_price_index():
    """eu-west-1 price index (same SKUs, different prices)."""
    return build_index("eu-west-1")


@pytest.fixture(scope="session")
def partial_price_index():
    """us-west-2 price index (no CloudWatch or ElastiCache offers)."""
    return build_index("us-west-2")


@pytest.fixture
def estimator(price_index):
    """Cost estimator for us-east-1 with embodied carbon and diagnostics off."""
    return CostEstimator(
        price_index=price_index,
        carbon_estimator=CarbonEstimator(),
        enhanced_diagnostics=False,
    )


@pytest.fixture
def make_request():
    """Factory for ResourceRequest with us-east-1 AWS defaults."""
    def _make(resource_type, sku="", tags=None, region="us-east-1", provider="aws", utilization=None):
        return ResourceRequest(
            provider=provider,
            resource_type=resource_type,
            sku=sku,
            region=region,
            tags=dict(tags or {}),
            utilization=utilization,
        )
    return _make


@pytest.fixture
def make_context():
    """Factory for EstimationContext around a set of usage tags."""
    def _make(tags=None, region="us-east-1", enhanced_diagnostics=False):
        return EstimationContext(
            region=region,
            trace_id="test-trace",
            tags=UsageTagReader(tags or {}, trace_id="test-trace"),
            enhanced_diagnostics=enhanced_diagnostics,
        )
    return _make


@pytest.fixture
def client():
    """FastAPI test client."""
    from cloudcost.main import app
    return TestClient(app)
