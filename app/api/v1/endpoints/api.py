from fastapi import APIRouter

from app.api.v1.endpoints import migration, shipments, vessels

api_router = APIRouter()

# Registering specialized controllers
api_router.include_router(vessels.router, prefix="/vessels", tags=["Vessels"])
api_router.include_router(shipments.router, prefix="/shipments", tags=["Logistics"])
api_router.include_router(migration.router, prefix="/migration", tags=["Migration"])
