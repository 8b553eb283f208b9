"""Liveness endpoints for Courier."""

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ..container import ApplicationContainer
from ..dependencies import get_container

health_router = APIRouter(tags=["health"])


@health_router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "Server is running"


@health_router.get("/health")
async def health(container: ApplicationContainer = Depends(get_container)) -> dict[str, Any]:
    """Report database reachability and the number of live realtime connections."""
    assert container.database_manager is not None and container.registry is not None
    database_ok = await container.database_manager.ping()
    return {
        "status": "ok" if database_ok else "degraded",
        "database": {"enabled": container.database_manager.enabled, "reachable": database_ok},
        "realtime": {"connections": container.registry.count()},
    }
