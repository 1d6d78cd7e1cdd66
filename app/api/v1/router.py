from fastapi import APIRouter

from app.api.v1.competitive import router as competitive_router
from app.api.v1.notifications import router as notifications_router
from app.api.v1.rankings import router as rankings_router

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(rankings_router)
api_v1_router.include_router(notifications_router)
api_v1_router.include_router(competitive_router)
