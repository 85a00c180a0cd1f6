"""
API package for the Roadwatch backend.

Ingestion and login keep the unversioned paths the mobile client posts to;
read endpoints are versioned under ``/api/v1`` and require a bearer token.
"""

from fastapi import APIRouter, Depends

from .v1.auth import router as auth_router
from .v1.detections import router as detections_router
from .v1.health import router as health_router
from .v1.ingest import router as ingest_router
from ..core.auth import get_current_user
from ..core.rate_limit import ingest_rate_limit, read_rate_limit

api_router = APIRouter()
protected = [Depends(get_current_user), Depends(read_rate_limit)]
api_router.include_router(ingest_router, dependencies=[Depends(ingest_rate_limit)])
api_router.include_router(auth_router, dependencies=[Depends(ingest_rate_limit)])
api_router.include_router(detections_router, dependencies=protected)
api_router.include_router(health_router)
