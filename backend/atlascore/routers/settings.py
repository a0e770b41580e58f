import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Setting, User
from ..schemas import SettingIn, SettingsUpdate
from ..security import authorize_admin

logger = logging.getLogger("settings")

router = APIRouter()


def upsert_setting(db: Session, entry: SettingIn) -> Setting:
    setting = db.query(Setting).filter(Setting.key == entry.key).first()
    if setting:
        setting.value = entry.value
    else:
        setting = Setting(key=entry.key, value=entry.value)
        db.add(setting)
    return setting


@router.get("")
async def public_settings(db: Session = Depends(get_db)):
    return {s.key: s.value for s in db.query(Setting).all()}


@router.get("/admin")
async def admin_settings(admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    return [s.to_dict() for s in db.query(Setting).all()]


@router.put("/admin")
async def update_settings(body: SettingsUpdate, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    if not isinstance(body.settings, list):
        raise HTTPException(status_code=400, detail="Invalid settings format. Expected an array.")

    try:
        entries = [SettingIn(**s) for s in body.settings]
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Each setting needs a key.")

    for entry in entries:
        upsert_setting(db, entry)
    db.commit()
    logger.info("[SETTINGS] %s updated %d settings", admin.username, len(entries))
    return {"success": True, "message": "Settings updated successfully"}
