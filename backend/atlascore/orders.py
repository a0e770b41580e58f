import logging
import math

from fastapi import HTTPException
from sqlalchemy.orm import Session

from . import config, payments
from .currency import CurrencyConversionError, convert_currency
from .delivery import deliver_product
from .models import Order, Product, User
from .payments import PaymentError
from .schemas import OrderCreate

logger = logging.getLogger("orders")

PURCHASE_DESCRIPTION = "Store Purchase"
PAYMENT_METHODS = ("paypal", *payments.SIMULATED_METHODS)


def _finish_order(db: Session, order: Order, status: str, failure_reason: str | None = None) -> bool:
    """
    Move a pending order to its final status. The write only applies while the
    order is still pending, so a finished order is never rewritten or reopened.
    """
    values = {Order.status: status}
    if failure_reason is not None:
        values[Order.failure_reason] = failure_reason
    updated = (
        db.query(Order)
        .filter(Order.id == order.id, Order.status == "pending")
        .update(values, synchronize_session=False)
    )
    db.commit()
    db.refresh(order)
    if updated:
        logger.info("[ORDER] %s -> %s%s", order.id, status, f" ({failure_reason})" if failure_reason else "")
    else:
        logger.warning("[ORDER] %s is %s, refusing to set %s", order.id, order.status, status)
    return bool(updated)


def _reserve_stock(db: Session, items: list[dict]) -> dict | None:
    """
    Decrement stock for every line item inside the current transaction.

    Each decrement is a conditional UPDATE (stock >= quantity), so two orders
    racing for the last unit cannot both succeed. Returns the first item that
    could not be reserved, after rolling back every decrement already made;
    returns None when all items are reserved (still uncommitted).
    """
    for item in items:
        product = db.get(Product, item["productId"])
        if not product:
            db.rollback()
            return item
        if product.stock is None:
            continue

        updated = (
            db.query(Product)
            .filter(Product.id == product.id, Product.stock.isnot(None), Product.stock >= item["quantity"])
            .update({Product.stock: Product.stock - item["quantity"]}, synchronize_session=False)
        )
        if not updated:
            db.rollback()
            return item
    return None


async def fulfil_order(db: Session, order: Order) -> Order:
    failed_item = _reserve_stock(db, order.products)
    if failed_item:
        _finish_order(db, order, "failed", f"Product {failed_item['productId']} is out of stock.")
        name = failed_item.get("name") or failed_item["productId"]
        raise HTTPException(status_code=400, detail=f"Product {name} is out of stock or not found")

    # Stock decrements and the status change commit together
    completed = (
        db.query(Order)
        .filter(Order.id == order.id, Order.status == "pending")
        .update({Order.status: "completed"}, synchronize_session=False)
    )
    if not completed:
        db.rollback()
        db.refresh(order)
        raise HTTPException(status_code=409, detail=f"Order is already {order.status}")
    db.commit()
    db.refresh(order)
    logger.info("[ORDER] %s -> completed", order.id)

    # Delivery failures surface to the caller; the order stays completed
    for item in order.products:
        await deliver_product(db, order.user_id, item["productId"])
    return order


async def create_order(db: Session, user: User, order_in: OrderCreate) -> dict:
    if not order_in.products or not order_in.totalAmount or order_in.totalAmount <= 0 or not order_in.paymentMethod:
        raise HTTPException(status_code=400, detail="Missing required order information.")

    method = order_in.paymentMethod
    if method not in PAYMENT_METHODS:
        raise HTTPException(status_code=400, detail="Invalid payment method")

    currency = (order_in.currency or config.STORE_CURRENCY).upper()
    processed_amount = order_in.totalAmount
    if currency != config.STORE_CURRENCY:
        try:
            processed_amount = await convert_currency(order_in.totalAmount, currency, config.STORE_CURRENCY)
        except CurrencyConversionError as exc:
            raise HTTPException(status_code=502, detail=str(exc))

    order = Order(
        user_id=user.id,
        products=[item.dict() for item in order_in.products],
        total_amount=order_in.totalAmount,
        currency=currency,
        processed_amount=processed_amount,
        processed_currency=config.STORE_CURRENCY,
        status="pending",
        payment_method=method,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info(
        "[ORDER] Created %s for user %s: %.2f %s (%.2f %s) via %s",
        order.id, user.id, order.total_amount, currency, processed_amount, config.STORE_CURRENCY, method,
    )

    if method == "paypal":
        try:
            payment = await payments.create_payment(processed_amount, config.STORE_CURRENCY, PURCHASE_DESCRIPTION, order.id)
        except PaymentError as exc:
            _finish_order(db, order, "failed", str(exc))
            raise HTTPException(status_code=502, detail=str(exc))

        order.payment_intent_id = payment.get("id")
        db.commit()
        return {"order": order, "paymentUrl": payments.approval_url(payment)}

    result = await payments.SIMULATED_METHODS[method](
        processed_amount, config.STORE_CURRENCY, PURCHASE_DESCRIPTION, order.id
    )
    if not result.get("success"):
        message = result.get("message") or "Simulated payment failed."
        _finish_order(db, order, "failed", message)
        raise HTTPException(status_code=400, detail=message)

    await fulfil_order(db, order)
    return {"order": order}


async def execute_payment(db: Session, payment_id: str, payer_id: str) -> Order:
    order = db.query(Order).filter(Order.payment_intent_id == payment_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found for this payment.")
    if order.status != "pending":
        logger.info("[ORDER] Payment %s already settled, order %s is %s", payment_id, order.id, order.status)
        return order

    payment = await payments.execute_payment(payment_id, payer_id)
    paid = payments.paid_amount(payment)
    if f"{paid:.2f}" != f"{order.processed_amount:.2f}":
        logger.error(
            "[ORDER] Amount mismatch on %s: paid %.2f, expected %.2f", order.id, paid, order.processed_amount
        )
        _finish_order(db, order, "failed", "Payment amount mismatch.")
        raise HTTPException(status_code=400, detail="Payment amount mismatch.")

    return await fulfil_order(db, order)


def cancel_order(db: Session, order_id: str, user_id: str) -> Order:
    order = db.query(Order).filter(Order.id == order_id, Order.user_id == user_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if not _finish_order(db, order, "cancelled"):
        raise HTTPException(status_code=400, detail="Only pending orders can be cancelled")
    return order


def list_user_orders(db: Session, user_id: str, page: int = 1, limit: int = 10) -> dict:
    page = max(page, 1)
    limit = max(limit, 1)
    query = db.query(Order).filter(Order.user_id == user_id)
    count = query.count()
    orders = query.order_by(Order.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return {
        "count": count,
        "page": page,
        "pages": math.ceil(count / limit),
        "orders": [o.to_dict() for o in orders],
    }
