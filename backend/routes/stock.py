# backend/routes/stock.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional, List

from database import get_db
from utils.tokenJWT import Principal, get_current_user, staff_required
from utils.audit import write_log, client_ip
from services.inventory import InventoryService
import schemas.stock as stock_schemas

router = APIRouter(tags=["Stock"])


def get_inventory(request: Request, db: Session = Depends(get_db)) -> InventoryService:
    # Threshold comes from the settings the app was built with
    return InventoryService(db, low_stock_threshold=request.app.state.settings.LOW_STOCK_THRESHOLD)


@router.get("/variants/{variant_id}/movements", response_model=stock_schemas.StockMovementPage)
def list_movements(
    variant_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    inventory: InventoryService = Depends(get_inventory),
    current_user: Principal = Depends(staff_required),
):
    items, total = inventory.list_movements(variant_id, page=page, page_size=page_size)
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("/variants/{variant_id}/adjust", response_model=stock_schemas.StockMovementResponse)
def adjust_stock(
    variant_id: int,
    payload: stock_schemas.StockAdjustment,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    movement = get_inventory(request, db).adjust_stock(
        current_user, variant_id, payload.quantity, payload.mode, reason=payload.reason
    )
    write_log(
        db, actor=current_user, action="STOCK_ADJUSTMENT", resource="stock", ip=client_ip(request),
        meta={"id": movement.id, "variant_id": variant_id, "mode": payload.mode, "new_quantity": movement.new_quantity},
    )
    return movement


# Active variants under the threshold, emptiest first
@router.get("/low", response_model=List[stock_schemas.LowStockItem])
def low_stock(
    threshold: Optional[int] = Query(None, ge=0),
    inventory: InventoryService = Depends(get_inventory),
    current_user: Principal = Depends(staff_required),
):
    variants = inventory.list_low_stock(threshold)
    return [
        {
            "variant_id": v.id,
            "sku": v.sku,
            "stock_quantity": v.stock_quantity,
            "product_id": v.product_id,
            "product_name": v.product.name if v.product else "-",
        }
        for v in variants
    ]


@router.get("/stats", response_model=stock_schemas.InventoryStats)
def inventory_stats(
    threshold: Optional[int] = Query(None, ge=0),
    inventory: InventoryService = Depends(get_inventory),
    current_user: Principal = Depends(staff_required),
):
    return inventory.inventory_stats(threshold)
