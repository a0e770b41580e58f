from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..admin_reports import activity_feed
from ..database import get_db
from ..models import User
from ..schemas import UserUpdate
from ..security import authorize_admin, protect

router = APIRouter()

USER_REQUIRED = {"username", "email", "is_verified"}


def apply_user_update(db: Session, user_id: str, body: UserUpdate) -> User:
    """Admin edit of a user; the password is not part of the accepted fields."""
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    for key, value in body.dict(exclude_unset=True).items():
        if value is None and key in USER_REQUIRED:
            continue
        setattr(user, key, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Username or email is already in use.")
    db.refresh(user)
    return user


# Must stay above /{user_id} so "activity" is not taken for an id
@router.get("/activity")
async def activity(user: User = Depends(protect), db: Session = Depends(get_db)):
    return {"success": True, "activity": activity_feed(db, user.id)}


@router.get("")
async def list_users(admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    users = db.query(User).order_by(User.created_at.asc()).all()
    return {"success": True, "count": len(users), "users": [u.to_admin_dict() for u in users]}


@router.get("/{user_id}")
async def get_user(user_id: str, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "user": user.to_admin_dict()}


@router.put("/{user_id}")
async def update_user(
    user_id: str, body: UserUpdate, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)
):
    apply_user_update(db, user_id, body)
    return {"success": True, "message": "User updated"}


@router.delete("/{user_id}")
async def delete_user(user_id: str, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    db.delete(user)
    db.commit()
    return {"success": True, "message": "User deleted successfully"}
