# backend/routes/orders.py
from typing import List
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from exceptions import AppException
from utils.tokenJWT import Principal, get_current_user
from utils.audit import write_log, client_ip
from services.orders import OrderService
from models.order import Order
from schemas.order import OrderIntentCreate, OrderResponse, OrderItemOut, OrdersPage

router = APIRouter(prefix="/orders", tags=["Orders"])


# Map Order model to OrderResponse schema
def _order_to_out(order: Order) -> OrderResponse:
    items: List[OrderItemOut] = []
    for it in order.items:
        items.append(OrderItemOut(
            variant_id=it.variant_id,
            product_id=it.product_id,
            product_name=it.product.name if it.product else "Deleted product",
            qty=it.qty,
            unit_price=it.unit_price,
            line_total=round(it.qty * it.unit_price, 2),
        ))
    return OrderResponse(
        id=order.id,
        status=order.status,
        subtotal=round(order.subtotal, 2),
        discount_amount=round(order.discount_amount or 0, 2),
        total_amount=round(order.total_amount, 2),
        coupon_code=order.coupon.code if order.coupon else None,
        created_at=order.created_at,
        items=items,
    )


# Reserve stock for every line and redeem the coupon as one transaction
@router.post("", response_model=OrderResponse, status_code=201)
def place_order(
    payload: OrderIntentCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    try:
        order = OrderService(db).place_order_intent(current_user, payload.lines, payload.coupon_code)
    except AppException as exc:
        write_log(
            db, actor=current_user, action="ORDER_PLACE", resource="orders", status="FAIL",
            ip=client_ip(request),
            meta={"error": exc.error_type.value, "lines": len(payload.lines), "coupon": payload.coupon_code},
        )
        raise

    write_log(
        db, actor=current_user, action="ORDER_PLACE", resource="orders", status="SUCCESS",
        ip=client_ip(request), meta={"order_id": order.id, "total": order.total_amount},
    )
    return _order_to_out(order)


@router.get("", response_model=OrdersPage)
def list_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Principal = Depends(get_current_user),
):
    items, total = OrderService(db).list_orders(current_user, page=page, page_size=page_size)
    return {
        "items": [_order_to_out(o) for o in items],
        "total": total, "page": page, "page_size": page_size,
    }


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, db: Session = Depends(get_db), current_user: Principal = Depends(get_current_user)):
    return _order_to_out(OrderService(db).get_order(current_user, order_id))
