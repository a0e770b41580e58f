from fastapi import APIRouter, Depends, HTTPException

from ..models import User
from ..plugin import PluginError, call_plugin
from ..security import protect

router = APIRouter()


@router.post("")
async def player_stats(user: User = Depends(protect)):
    if not user.minecraft_uuid:
        raise HTTPException(status_code=404, detail="A linked Minecraft account is required to fetch stats.")
    try:
        return await call_plugin("/player-stats", {"uuid": user.minecraft_uuid})
    except PluginError as exc:
        raise HTTPException(status_code=exc.status, detail=exc.message)
