import asyncio
import logging

import httpx

from . import config

logger = logging.getLogger("payments")


class PaymentError(RuntimeError):
    pass


def _format_amount(amount: float) -> str:
    return f"{amount:.2f}"


async def _get_access_token(client: httpx.AsyncClient) -> str:
    if not config.PAYPAL_CLIENT_ID or not config.PAYPAL_SECRET:
        raise PaymentError("PAYPAL_CLIENT_ID / PAYPAL_SECRET are not set")

    r = await client.post(
        f"{config.PAYPAL_API_URL}/v1/oauth2/token",
        data={"grant_type": "client_credentials"},
        auth=(config.PAYPAL_CLIENT_ID, config.PAYPAL_SECRET),
        timeout=15,
    )
    if r.status_code == 401:
        raise PaymentError("PayPal authentication failed. Please check your API credentials.")
    r.raise_for_status()
    return r.json()["access_token"]


async def _paypal_request(method: str, path: str, payload: dict | None = None) -> dict:
    try:
        async with httpx.AsyncClient() as client:
            token = await _get_access_token(client)
            headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
            r = await client.request(method, f"{config.PAYPAL_API_URL}{path}", json=payload, headers=headers, timeout=15)
            if r.status_code == 401:
                raise PaymentError("PayPal authentication failed. Please check your API credentials.")
            if r.status_code >= 400:
                logger.error("[PAYPAL] %s %s -> %s %s", method, path, r.status_code, r.text[:500])
                message = r.json().get("message") if r.headers.get("content-type", "").startswith("application/json") else None
                raise PaymentError(message or f"PayPal request failed with status {r.status_code}")
            return r.json()
    except httpx.HTTPError as exc:
        logger.exception("[PAYPAL] %s %s failed", method, path)
        raise PaymentError(f"PayPal request failed: {exc}") from exc


async def create_payment(amount: float, currency: str, description: str, order_id: str) -> dict:
    total = _format_amount(amount)
    payload = {
        "intent": "sale",
        "payer": {"payment_method": "paypal"},
        "redirect_urls": {
            "return_url": f"{config.FRONTEND_URL}/payment/success",
            "cancel_url": f"{config.FRONTEND_URL}/payment/cancel?transaction_id={order_id}",
        },
        "transactions": [
            {
                "item_list": {
                    "items": [
                        {"name": description, "sku": "item", "price": total, "currency": currency, "quantity": 1}
                    ]
                },
                "amount": {"currency": currency, "total": total},
                "description": description,
                "invoice_number": order_id,
            }
        ],
    }
    payment = await _paypal_request("POST", "/v1/payments/payment", payload)
    logger.info("[PAYPAL] Created payment %s for order %s (%s %s)", payment.get("id"), order_id, total, currency)
    return payment


async def execute_payment(payment_id: str, payer_id: str) -> dict:
    return await _paypal_request("POST", f"/v1/payments/payment/{payment_id}/execute", {"payer_id": payer_id})


async def get_payment_details(payment_id: str) -> dict:
    return await _paypal_request("GET", f"/v1/payments/payment/{payment_id}")


def approval_url(payment: dict) -> str | None:
    for link in payment.get("links") or []:
        if link.get("rel") == "approval_url":
            return link.get("href")
    return None


def paid_amount(payment: dict) -> float:
    return float(payment["transactions"][0]["amount"]["total"])


async def process_bank_transfer(amount: float, currency: str, description: str, order_id: str) -> dict:
    logger.info("[PAYMENT] Simulating bank transfer for %.2f %s (order %s)", amount, currency, order_id)
    await asyncio.sleep(config.SIMULATED_PAYMENT_DELAY)
    return {"success": True, "message": "Bank transfer simulated successfully."}


async def process_crypto_payment(amount: float, currency: str, description: str, order_id: str) -> dict:
    logger.info("[PAYMENT] Simulating crypto payment for %.2f %s (order %s)", amount, currency, order_id)
    await asyncio.sleep(config.SIMULATED_PAYMENT_DELAY)
    return {"success": True, "message": "Crypto payment simulated successfully."}


async def process_credit_card(amount: float, currency: str, description: str, order_id: str) -> dict:
    # No card gateway is wired in; the charge is accepted as-is.
    logger.warning("[PAYMENT] Accepting credit-card payment for order %s without a gateway call", order_id)
    return {"success": True, "message": "Credit card payment accepted."}


SIMULATED_METHODS = {
    "credit-card": process_credit_card,
    "bank-transfer": process_bank_transfer,
    "crypto": process_crypto_payment,
}
