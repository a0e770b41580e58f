import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..admin_reports import activity_feed
from ..database import get_db
from ..models import User
from ..plugin import PluginError, call_plugin
from ..security import protect

logger = logging.getLogger("profile")

router = APIRouter()


@router.get("")
async def character_profile(user: User = Depends(protect), db: Session = Depends(get_db)):
    feed = activity_feed(db, user.id)
    if not user.minecraft_uuid:
        return {"success": True, "data": {"playerStats": None, "activityFeed": feed}}

    stats = None
    error = None
    try:
        resp = await call_plugin("/player-stats", {"uuid": user.minecraft_uuid})
        if resp.get("success"):
            stats = resp.get("stats")
        else:
            error = resp.get("message") or "Failed to retrieve player stats."
    except PluginError as exc:
        error = exc.message

    if error:
        logger.warning("[PROFILE] No player stats for %s: %s", user.username, error)
    return {"success": True, "data": {"playerStats": stats, "activityFeed": feed}, "error": error}
