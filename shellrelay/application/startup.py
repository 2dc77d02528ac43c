"""
Application startup and configuration logic.

Registers the session services with the container and manages the start and
stop sequence of lifecycle components.
"""

import logging
from typing import List, Type

from .container import IContainer
from ..core.interfaces.lifecycle import IComponent
from ..core.interfaces.sessions import IEventSink, ISessionEstablisher, ISessionManager
from ..core.services.event_hub import SessionEventHub
from ..core.services.registry import ConnectionRegistry
from ..core.services.session_manager import SessionManager
from ..infrastructure.config.models import ApplicationConfig
from ..infrastructure.ssh.establisher import AsyncSSHEstablisher

logger = logging.getLogger(__name__)


class ApplicationStartup:
    """
    Manages service registration and the component lifecycle.

    Components listed in the startup order are started in that order and
    stopped in reverse.
    """

    def __init__(self, container: IContainer) -> None:
        self._container = container
        self._started_components: List[IComponent] = []
        self._startup_order: List[Type[IComponent]] = [
            SessionManager,
        ]

    def configure_services(self, config: ApplicationConfig) -> None:
        """
        Register all application services.

        Already registered services are kept, so tests can pre-register fakes
        (for example an ISessionEstablisher) before calling this.
        """
        logger.info("Configuring application services...")
        container = self._container

        container.register_instance(ApplicationConfig, config)

        if not container.is_registered(ConnectionRegistry):
            container.register_factory(ConnectionRegistry, lambda c: ConnectionRegistry())

        if not container.is_registered(SessionEventHub):
            container.register_factory(SessionEventHub, lambda c: SessionEventHub())
        container.register_factory(IEventSink, lambda c: c.resolve(SessionEventHub))  # type: ignore[type-abstract]

        if not container.is_registered(ISessionEstablisher):  # type: ignore[type-abstract]
            container.register_factory(
                ISessionEstablisher,  # type: ignore[type-abstract]
                lambda c: AsyncSSHEstablisher(c.resolve(ApplicationConfig).session)
            )

        container.register_factory(SessionManager, lambda c: SessionManager(
            registry=c.resolve(ConnectionRegistry),
            establisher=c.resolve(ISessionEstablisher),  # type: ignore[type-abstract]
            sink=c.resolve(IEventSink),  # type: ignore[type-abstract]
            reject_duplicate_ids=c.resolve(ApplicationConfig).session.reject_duplicate_ids
        ))
        container.register_factory(ISessionManager, lambda c: c.resolve(SessionManager))  # type: ignore[type-abstract]

        logger.info("Service configuration completed")

    async def start_application(self) -> None:
        """Start lifecycle components in order, rolling back on failure."""
        logger.info("Starting application components...")

        for component_type in self._startup_order:
            component = self._container.resolve(component_type)
            try:
                await component.start()
            except Exception as e:
                logger.error(f"Failed to start component {component.name}: {e}")
                await self.stop_application()
                raise

            self._started_components.append(component)
            logger.info(f"Started component: {component.name}")

        logger.info("Application startup completed successfully")

    async def stop_application(self) -> None:
        """Stop started components in reverse order."""
        if not self._started_components:
            return

        logger.info("Stopping application components...")

        for component in reversed(self._started_components):
            try:
                await component.stop()
                logger.info(f"Stopped component: {component.name}")
            except Exception as e:
                logger.error(f"Error stopping component {component.name}: {e}")

        self._started_components.clear()
        logger.info("Application shutdown completed")
