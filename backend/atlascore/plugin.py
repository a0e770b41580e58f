import logging

import httpx

from . import config

logger = logging.getLogger("plugin")


class PluginError(RuntimeError):
    def __init__(self, message: str, status: int = 500):
        super().__init__(message)
        self.message = message
        self.status = status


async def call_plugin(endpoint: str, payload: dict) -> dict:
    """POST `payload` to the Minecraft plugin webhook and return its JSON body."""
    if not config.WEBHOOK_SECRET:
        logger.error("[PLUGIN] WEBHOOK_SECRET is not configured")
        raise PluginError("Server configuration error.", 500)

    headers = {
        "Authorization": f"Bearer {config.WEBHOOK_SECRET}",
        "Content-Type": "application/json",
    }

    try:
        async with httpx.AsyncClient() as client:
            r = await client.post(
                f"{config.PLUGIN_API_URL}{endpoint}",
                json=payload,
                headers=headers,
                timeout=config.PLUGIN_TIMEOUT,
            )
    except (httpx.ConnectError, httpx.TimeoutException) as exc:
        logger.error("[PLUGIN] %s unreachable: %s", endpoint, exc)
        raise PluginError("Could not connect to the game server. It may be offline or starting up.", 503) from exc
    except httpx.HTTPError as exc:
        logger.error("[PLUGIN] %s failed: %s", endpoint, exc)
        raise PluginError(f"Failed to communicate with Minecraft server: {exc}", 500) from exc

    try:
        data = r.json()
    except ValueError:
        logger.error("[PLUGIN] Invalid JSON from %s: %s", endpoint, r.text[:200])
        data = {}

    if r.status_code >= 400:
        logger.warning("[PLUGIN] %s returned %s: %s", endpoint, r.status_code, data)
        raise PluginError(data.get("message") or "Failed to communicate with the game server.", r.status_code)
    return data
