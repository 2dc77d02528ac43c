"""
Health check API endpoints.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....application.container import Container, IContainer
from ....core.interfaces.lifecycle import IHealthCheckable
from ....infrastructure.config.models import ApplicationConfig
from ..dependencies import get_config, get_container

router = APIRouter()


@router.get("")
async def health_check(config: ApplicationConfig = Depends(get_config)) -> Dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "application": {
            "name": config.name,
            "version": config.version,
            "environment": config.environment
        }
    }


@router.get("/detailed")
async def detailed_health_check(
    container: IContainer = Depends(get_container)
) -> Dict[str, Any]:
    """
    Detailed health check with component status.

    Reports every resolved service that can check its own health.
    """
    components: Dict[str, Any] = {}
    overall_healthy = True

    registrations = container.get_registrations() if isinstance(container, Container) else {}
    seen = set()

    for service_type in registrations:
        component = container.try_resolve(service_type)
        if not isinstance(component, IHealthCheckable) or id(component) in seen:
            continue
        seen.add(id(component))

        try:
            health = await component.check_health()
        except Exception as e:
            health = {"healthy": False, "status": "error", "details": {"error": str(e)}}

        components[type(component).__name__] = health
        if not health.get("healthy", True):
            overall_healthy = False

    return {
        "status": "healthy" if overall_healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": components
    }
