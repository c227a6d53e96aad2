from fastapi import APIRouter

from .endpoints.health import router as health_router
from .endpoints.matches import router as matches_router
from .endpoints.moderation import router as moderation_router
from .endpoints.recommendations import router as recommendations_router
from .endpoints.search import router as search_router

api_router = APIRouter()


@api_router.get("/")
async def root():
    return {"message": "SpaceMatch API is running"}


api_router.include_router(health_router)
api_router.include_router(matches_router)
api_router.include_router(recommendations_router)
api_router.include_router(search_router)
api_router.include_router(moderation_router)
