# fraudscore/api/v1/router.py
from fastapi import APIRouter

from fraudscore.api.v1.endpoints.fraud import router as fraud_router
from fraudscore.api.v1.endpoints.health import router as health_router


api_router_v1 = APIRouter(prefix="/api/v1")

api_router_v1.include_router(health_router)
api_router_v1.include_router(fraud_router)
