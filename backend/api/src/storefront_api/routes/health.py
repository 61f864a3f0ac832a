"""Health check endpoint."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from storefront import __version__
from storefront.config import AppConfig
from storefront_api.dependencies import get_config
from storefront_api.models.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health(config: AppConfig = Depends(get_config)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        service="storefront-api",
        version=__version__,
        environment=config.environment,
        timestamp=datetime.now(UTC).isoformat(),
    )
