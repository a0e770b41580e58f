import logging

from sqlalchemy.orm import Session

from .models import Product, User
from .plugin import PluginError, call_plugin

logger = logging.getLogger("delivery")


class DeliveryError(RuntimeError):
    pass


def _player_context(user: User) -> dict:
    return {
        "playerName": user.username,
        "uuid": user.minecraft_uuid or "N/A",
        "username": user.username or "N/A",
    }


async def _execute_command(command: str, user: User, product: Product) -> bool:
    if not command or not command.strip():
        logger.warning("[DELIVERY] Skipping empty command for product %s", product.name)
        return False

    # The plugin resolves {player}-style placeholders itself, so the raw template is sent
    try:
        await call_plugin("/execute-command", {"command": command, "playerContext": _player_context(user)})
    except PluginError as exc:
        logger.error(
            "[DELIVERY] Failed to send command %r to plugin for user %s (status %s): %s",
            command, user.username, exc.status, exc.message,
        )
        return False

    logger.info("[DELIVERY] Dispatched command for user %s: %r", user.username, command)
    return True


async def deliver_product(db: Session, user_id: str, product_id: str) -> int:
    """
    Run every in-game command configured on a product for the buyer.

    Returns the number of commands the plugin accepted. A failing command does
    not stop the remaining ones. Buyers without a linked Minecraft account are
    skipped (nothing is queued for later).
    """
    user = db.get(User, user_id)
    product = db.get(Product, product_id)
    if not user or not product:
        raise DeliveryError(f"Invalid user (ID: {user_id}) or product (ID: {product_id}) for delivery.")

    if not user.minecraft_uuid:
        logger.warning(
            "[DELIVERY] User %s (ID: %s) has no linked Minecraft account. Skipping delivery of %s.",
            user.username, user_id, product.name,
        )
        return 0

    commands = list(product.in_game_commands or [])
    if not commands:
        logger.info("[DELIVERY] Product %s has no in-game commands", product.name)
        return 0

    logger.info("[DELIVERY] Executing %s command(s) for %s, product %s", len(commands), user.username, product.name)
    dispatched = 0
    for command in commands:
        if await _execute_command(command, user, product):
            dispatched += 1
    return dispatched
