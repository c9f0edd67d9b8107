"""FastAPI dependencies for dependency injection"""

import logging

from fastapi import HTTPException, Request

from core.config import get_settings
from core.resources import ObjectUrlRegistry
from core.session import ConfiguratorSession

logger = logging.getLogger(__name__)


async def get_current_settings():
    """Get current application settings"""
    return get_settings()


async def get_session(request: Request) -> ConfiguratorSession:
    """Get the configurator session created at application startup"""
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(
            status_code=503,
            detail="Configurator session is not available. Please check the service configuration.",
        )
    return session


async def get_registry(request: Request) -> ObjectUrlRegistry:
    """Get the object URL registry backing the session's loadable references"""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Object URL registry is not available")
    return registry
