import logging

import httpx

from . import config

logger = logging.getLogger("currency")


class CurrencyConversionError(RuntimeError):
    pass


async def fetch_rates(base: str) -> dict:
    async with httpx.AsyncClient() as client:
        r = await client.get(f"{config.FX_API_URL}/{base.upper()}", timeout=config.FX_TIMEOUT)
        r.raise_for_status()
        return r.json().get("rates") or {}


async def convert_currency(amount: float, from_currency: str, to_currency: str) -> float:
    """
    Convert `amount` from one currency to another using the live rate table.
    Any failure is reported as a single CurrencyConversionError, there is no retry.
    """
    try:
        rates = await fetch_rates(from_currency)
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("[FX] Rate lookup for %s failed: %s", from_currency, exc)
        raise CurrencyConversionError("Could not process currency conversion.") from exc

    rate = rates.get(to_currency.upper())
    if not rate:
        logger.error("[FX] No %s -> %s rate in response", from_currency, to_currency)
        raise CurrencyConversionError("Could not process currency conversion.")
    return amount * float(rate)
