"""Shared dependencies for Progress Service."""

from typing import Optional
import httpx
import structlog
from fastapi import Request

from app.core.config import settings
from app.clients.content_generator import ContentGeneratorClient
from app.services.progression import ProgressionService

logger = structlog.get_logger()

# Global instances
_http_client: Optional[httpx.AsyncClient] = None


async def get_http_client() -> httpx.AsyncClient:
    """Get HTTP client for service communication."""
    global _http_client

    if _http_client is None:
        _http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.CONTENT_GENERATOR_TIMEOUT),
            headers={
                "Content-Type": "application/json",
                "User-Agent": f"{settings.SERVICE_NAME}/{settings.APP_VERSION}"
            }
        )

    return _http_client


async def close_http_client() -> None:
    """Close the shared HTTP client."""
    global _http_client

    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


async def build_progression_service() -> ProgressionService:
    """Create the service wired to the shared HTTP client."""
    client = ContentGeneratorClient(await get_http_client())
    logger.info("Content generator configured", url=client.base_url)
    return ProgressionService(content_client=client)


def get_progression_service(request: Request) -> ProgressionService:
    """Service instance stored on the application at startup."""
    return request.app.state.progression_service
