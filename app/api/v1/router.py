from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Warehouse inventory movements
    wms,
)


api_router = APIRouter(prefix="/api/v1")

# ==================== WMS (Putaway / Picking / Inventory) ====================
api_router.include_router(
    wms.router,
    prefix="/wms",
    tags=["WMS (Putaway/Picking/Inventory)"]
)
