"""
API Router - JSON Endpoints
"""
from datetime import datetime

from fastapi import APIRouter

from prodtrack.api.auth import router as auth_router
from prodtrack.api.notifications import router as notifications_router
from prodtrack.api.orders import router as orders_router
from prodtrack.api.products import router as products_router
from prodtrack.api.reports import router as reports_router
from prodtrack.api.semi_finished import router as semi_finished_router, production_router
from prodtrack.api.shipments import router as shipments_router
from prodtrack.api.users import router as users_router

api_router = APIRouter(tags=["API"])

# Include sub-routers
api_router.include_router(auth_router)
api_router.include_router(products_router)
api_router.include_router(orders_router)
api_router.include_router(shipments_router)
api_router.include_router(semi_finished_router)
api_router.include_router(production_router)
api_router.include_router(notifications_router)
api_router.include_router(users_router)
api_router.include_router(reports_router)

# ===================== HEALTH & STATUS =====================

@api_router.get("/status")
async def api_status():
    return {"status": "ok", "version": "1.0.0", "timestamp": datetime.now().isoformat()}
