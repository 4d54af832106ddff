"""
Main API router that includes all endpoint routers.
"""
from fastapi import APIRouter

from app.api.v1.endpoints import auth, jobs, projects, realtime


# Create main API router
api_router = APIRouter()

# Include all endpoint routers with appropriate tags
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"]
)
api_router.include_router(
    projects.router,
    prefix="/projects",
    tags=["Projects"]
)
api_router.include_router(
    jobs.router,
    prefix="/jobs",
    tags=["Import Jobs"]
)
api_router.include_router(
    realtime.router,
    tags=["Realtime"]
)
