import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..models import DailyStats, ServerStats, User
from ..schemas import ServerStatsIn
from ..security import authorize_admin, verify_secret_key
from ..utils import as_utc, now_utc

logger = logging.getLogger("server")

router = APIRouter()

OFFLINE_STATS = {"onlinePlayers": 0, "maxPlayers": 0, "newPlayersToday": 0, "serverStatus": "offline"}


def save_server_stats(db: Session, body: ServerStatsIn) -> ServerStats:
    """Upsert the live stats row and today's new-player count."""
    now = now_utc()
    stats = db.get(ServerStats, "stats")
    if not stats:
        stats = ServerStats(id="stats")
        db.add(stats)
    stats.online_players = int(body.onlinePlayers)
    stats.max_players = int(body.maxPlayers)
    stats.new_players_today = int(body.newPlayersToday)
    stats.server_status = "online"
    stats.last_updated = now

    day = now.date().isoformat()
    daily = db.get(DailyStats, day)
    if not daily:
        daily = DailyStats(date=day)
        db.add(daily)
    daily.new_players_today = int(body.newPlayersToday)

    db.commit()
    logger.info("[STATS] %s/%s online, %s new today", stats.online_players, stats.max_players, daily.new_players_today)
    return stats


@router.get("/stats")
async def get_stats(admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    stats = db.get(ServerStats, "stats")
    return {"success": True, "data": stats.to_dict() if stats else dict(OFFLINE_STATS)}


@router.get("/public-stats")
async def public_stats(db: Session = Depends(get_db)):
    stats = db.get(ServerStats, "stats")
    last_updated = as_utc(stats.last_updated) if stats else None
    if not last_updated or (now_utc() - last_updated).total_seconds() > config.SERVER_OFFLINE_AFTER:
        return {"success": True, "data": {"onlinePlayers": 0, "serverStatus": "offline"}}
    return {"success": True, "data": {"onlinePlayers": stats.online_players, "serverStatus": "online"}}


@router.post("/stats", dependencies=[Depends(verify_secret_key)])
async def update_stats(body: ServerStatsIn, db: Session = Depends(get_db)):
    save_server_stats(db, body)
    return {"success": True, "message": "Stats updated successfully."}
