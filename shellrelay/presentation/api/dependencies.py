"""
FastAPI dependency injection utilities.

Works for both HTTP routes and WebSocket endpoints, since both expose the
application through ``HTTPConnection``.
"""

from typing import Any, Type, TypeVar

from fastapi import Depends, HTTPException, status
from starlette.requests import HTTPConnection

from ...application.container import IContainer
from ...core.services.event_hub import SessionEventHub
from ...core.services.session_manager import SessionManager
from ...infrastructure.config.models import ApplicationConfig

T = TypeVar('T')


def get_container(connection: HTTPConnection) -> IContainer:
    """
    Get the dependency injection container from the application state.

    Raises:
        HTTPException: If container is not available
    """
    if not hasattr(connection.app.state, "container"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application container not available"
        )

    return connection.app.state.container  # type: ignore[no-any-return]


def get_config(connection: HTTPConnection) -> ApplicationConfig:
    if not hasattr(connection.app.state, "config"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application configuration not available"
        )

    return connection.app.state.config  # type: ignore[no-any-return]


def get_component(service_type: Type[T]) -> Any:
    """
    Create a dependency function resolving a specific component type.
    """
    def _get_component(container: IContainer = Depends(get_container)) -> T:
        try:
            return container.resolve(service_type)
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Service {service_type.__name__} not available: {str(e)}"
            )

    return _get_component


get_session_manager = get_component(SessionManager)
get_event_hub = get_component(SessionEventHub)
