"""
Main FastAPI application bootstrap.
Configures logging and middleware and includes routers.
"""
import logging

from fastapi import FastAPI

from cloudcost.core.config import config
from cloudcost.api.pricing import router as pricing_router
from cloudcost.middleware.trace_id import TraceIdMiddleware


# Validate configuration on startup
try:
    config.validate()
except ValueError as error:
    # Fail fast with a clear message
    raise RuntimeError(f"Configuration error: {error}") from error

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

logger.info(
    "Serving %s %s for region %s (embodied carbon: %s, enhanced diagnostics: %s)",
    config.PLUGIN_NAME,
    config.PLUGIN_VERSION,
    config.PRICING_REGION,
    config.INCLUDE_EMBODIED_CARBON,
    config.ENHANCED_DIAGNOSTICS,
)


app = FastAPI(
    title="Cloud Cost Estimation",
    description="Embedded-price AWS cost and carbon estimation",
    version=config.PLUGIN_VERSION,
)

app.add_middleware(TraceIdMiddleware)

app.include_router(pricing_router)


@app.get("/health")
async def health() -> dict:
    """Liveness check."""
    return {"status": "ok", "region": config.PRICING_REGION}
