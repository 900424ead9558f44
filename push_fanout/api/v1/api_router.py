from fastapi import APIRouter

from push_fanout.api.v1.health import router as health_router
from push_fanout.api.v1.push.router import router as push_router

api_router = APIRouter()
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(push_router, prefix="/push", tags=["push"])
