import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..models import User
from ..orders import cancel_order, create_order, execute_payment, list_user_orders
from ..schemas import OrderCancel, OrderCreate
from ..security import protect

logger = logging.getLogger("orders")

router = APIRouter()


@router.post("", status_code=201)
async def create(body: OrderCreate, user: User = Depends(protect), db: Session = Depends(get_db)):
    result = await create_order(db, user, body)
    response = {"success": True, "order": result["order"].to_dict()}
    if "paymentUrl" in result:
        response["paymentUrl"] = result["paymentUrl"]
        response["orderId"] = result["order"].id
    return response


@router.get("/execute")
async def execute(
    paymentId: str = Query(...),
    PayerID: str = Query(...),
    user: User = Depends(protect),
    db: Session = Depends(get_db),
):
    try:
        order = await execute_payment(db, paymentId, PayerID)
    except Exception:
        logger.exception("[PAYPAL] Failed to execute payment %s", paymentId)
        return RedirectResponse(f"{config.FRONTEND_URL}/payment/cancel", status_code=302)

    if order.status != "completed":
        return RedirectResponse(f"{config.FRONTEND_URL}/payment/cancel", status_code=302)
    return RedirectResponse(f"{config.FRONTEND_URL}/payment/success", status_code=302)


@router.get("/my-orders")
async def my_orders(
    page: int = 1,
    limit: int = 10,
    user: User = Depends(protect),
    db: Session = Depends(get_db),
):
    return {"success": True, **list_user_orders(db, user.id, page, limit)}


@router.post("/cancel")
async def cancel(body: OrderCancel, user: User = Depends(protect), db: Session = Depends(get_db)):
    cancel_order(db, body.orderId, user.id)
    return {"success": True, "message": "Order cancelled successfully"}
