from fastapi import APIRouter
from app.api.v1.endpoints import activities, certificates, health, verify

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(activities.router)
api_router.include_router(certificates.router)
api_router.include_router(verify.router)
