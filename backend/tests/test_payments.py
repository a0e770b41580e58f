import asyncio
import json

import httpx
import pytest

from atlascore import config, payments
from atlascore.currency import CurrencyConversionError, convert_currency


@pytest.fixture
def paypal_api(monkeypatch):
    monkeypatch.setattr(config, "PAYPAL_CLIENT_ID", "client")
    monkeypatch.setattr(config, "PAYPAL_SECRET", "secret")
    requests = []
    real_client = httpx.AsyncClient

    def handler(request):
        requests.append(request)
        if request.url.path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "A21", "token_type": "Bearer"})
        if request.url.path == "/v1/payments/payment":
            return httpx.Response(
                201,
                json={
                    "id": "PAYID-1",
                    "state": "created",
                    "links": [
                        {"rel": "self", "href": "https://api-m.sandbox.paypal.com/v1/payments/payment/PAYID-1"},
                        {"rel": "approval_url", "href": "https://www.sandbox.paypal.com/checkoutnow?token=EC-1"},
                    ],
                },
            )
        return httpx.Response(400, json={"message": "Payment has already been done"})

    monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: real_client(transport=httpx.MockTransport(handler)))
    return requests


def test_create_payment_builds_sale(paypal_api):
    payment = asyncio.run(payments.create_payment(22.0, "USD", "Store Purchase", "order-1"))

    assert payments.approval_url(payment) == "https://www.sandbox.paypal.com/checkoutnow?token=EC-1"
    token_request, payment_request = paypal_api
    assert token_request.url.path == "/v1/oauth2/token"
    assert payment_request.headers["Authorization"] == "Bearer A21"
    body = json.loads(payment_request.content)
    assert body["intent"] == "sale"
    assert body["transactions"][0]["amount"] == {"currency": "USD", "total": "22.00"}
    assert body["transactions"][0]["invoice_number"] == "order-1"


def test_paypal_errors_become_payment_errors(paypal_api):
    with pytest.raises(payments.PaymentError, match="already been done"):
        asyncio.run(payments.execute_payment("PAYID-1", "PAYER"))


def test_missing_credentials(monkeypatch):
    monkeypatch.setattr(config, "PAYPAL_CLIENT_ID", None)

    with pytest.raises(payments.PaymentError):
        asyncio.run(payments.create_payment(1.0, "USD", "Store Purchase", "order-1"))


def test_paid_amount_reads_first_transaction():
    payment = {"transactions": [{"amount": {"total": "9.99", "currency": "USD"}}]}

    assert payments.paid_amount(payment) == 9.99


def test_simulated_methods_succeed():
    for method in ("credit-card", "bank-transfer", "crypto"):
        result = asyncio.run(payments.SIMULATED_METHODS[method](5.0, "USD", "Store Purchase", "order-1"))
        assert result["success"] is True


def test_conversion_without_rate_fails(monkeypatch):
    async def rates(base):
        return {"EUR": 0.9}

    monkeypatch.setattr("atlascore.currency.fetch_rates", rates)

    with pytest.raises(CurrencyConversionError, match="Could not process currency conversion."):
        asyncio.run(convert_currency(10, "USD", "JPY"))
