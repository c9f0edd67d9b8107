"""System information and health check endpoints"""

import logging
import platform
import time
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter, Depends

from api.dependencies import get_current_settings, get_registry, get_session
from core.resources import ObjectUrlRegistry
from core.session import ConfiguratorSession

router = APIRouter()
logger = logging.getLogger(__name__)

_started_at = time.time()


@router.get("/health", summary="Health check")
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": time.time() - _started_at,
    }


@router.get("/info", summary="System information")
async def system_info(
    settings=Depends(get_current_settings),
    registry: ObjectUrlRegistry = Depends(get_registry),
    session: ConfiguratorSession = Depends(get_session),
):
    """Get system information, including how many object URLs are alive"""
    process = psutil.Process()
    return {
        "system": {
            "platform": platform.platform(),
            "python_version": platform.python_version(),
            "process_memory_rss": process.memory_info().rss,
        },
        "application": {
            "version": "1.0.0",
            "environment": settings.environment,
            "debug": settings.debug,
        },
        "session": {
            "model_loaded": session.current is not None,
            "model_name": session.current.model_name if session.current else None,
            "live_object_urls": len(registry),
            "applied_textures": len(session.applied_textures),
        },
    }
