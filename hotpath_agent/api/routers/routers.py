# Central API router include file
from fastapi import APIRouter

# Import domain routers
from hotpath_agent.samples.router import router as samples_router

# Create main API router
api_router = APIRouter()

# Include domain routers
api_router.include_router(samples_router)
