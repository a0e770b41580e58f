import hashlib
import logging
import secrets
from datetime import timedelta

import jwt
from fastapi import Depends, Header, HTTPException, Request
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import config
from .database import get_db
from .models import User
from .utils import now_utc

logger = logging.getLogger("auth")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        return False


def create_access_token(user: User) -> str:
    now = now_utc()
    payload = {
        "id": user.id,
        "isAdmin": user.is_admin == 1,
        "iat": now,
        "exp": now + timedelta(days=config.JWT_EXPIRE_DAYS),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])


def new_reset_token() -> tuple[str, str]:
    """Return (token sent to the user, sha256 digest stored in the database)."""
    token = secrets.token_hex(20)
    return token, hash_reset_token(token)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


async def protect(authorization: str | None = Header(None), db: Session = Depends(get_db)) -> User:
    token = _bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Not authorized to access this route")

    try:
        payload = decode_token(token)
    except jwt.PyJWTError as exc:
        logger.warning("[AUTH] Rejected token: %s", exc)
        raise HTTPException(status_code=401, detail="Not authorized, token failed")

    user = db.get(User, payload.get("id"))
    if not user:
        raise HTTPException(status_code=401, detail="Not authorized, user not found")
    return user


async def identify_user(authorization: str | None = Header(None), db: Session = Depends(get_db)) -> User | None:
    token = _bearer_token(authorization)
    if not token:
        return None
    try:
        payload = decode_token(token)
    except jwt.PyJWTError:
        return None
    return db.get(User, payload.get("id"))


async def authorize_admin(user: User = Depends(protect)) -> User:
    if user.is_admin != 1:
        raise HTTPException(status_code=403, detail="User is not authorized to access this route")
    return user


async def verify_secret_key(request: Request) -> None:
    try:
        data = await request.json()
    except ValueError:
        data = None
    secret = data.get("secret") if isinstance(data, dict) else None

    if not config.STATS_SECRET:
        logger.error("[AUTH] STATS_SECRET is not configured")
        raise HTTPException(status_code=500, detail="Server configuration error.")
    if not isinstance(secret, str) or not secrets.compare_digest(secret, config.STATS_SECRET):
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid secret key.")
