import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..models import User
from ..plugin import PluginError, call_plugin
from ..schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerificationCodeRequest,
    VerifyLinkRequest,
)
from ..security import (
    create_access_token,
    hash_password,
    hash_reset_token,
    new_reset_token,
    protect,
    verify_password,
)
from ..utils import now_utc

logger = logging.getLogger("auth")

router = APIRouter()

RESET_MESSAGE = "If a user with that email exists, a password reset link has been sent."


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    if not body.username or not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Please provide a username, email, and password.")
    if db.query(User).filter(User.email == body.email).first():
        raise HTTPException(status_code=400, detail="An account with this email already exists.")
    if db.query(User).filter(User.username == body.username).first():
        raise HTTPException(status_code=400, detail="An account with this username already exists.")

    user = User(username=body.username, email=body.email, password=hash_password(body.password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("[AUTH] Registered user %s", user.username)
    return {"success": True, "token": create_access_token(user), "user": user.to_dict()}


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    if not body.identifier or not body.password:
        raise HTTPException(status_code=400, detail="Please provide an identifier and password.")

    field = User.email if "@" in body.identifier else User.username
    user = db.query(User).filter(field == body.identifier).first()
    if not user or not verify_password(body.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    return {"success": True, "token": create_access_token(user), "user": user.to_dict()}


@router.get("/me")
async def me(user: User = Depends(protect)):
    return {"success": True, "user": user.to_dict()}


@router.post("/forgot-password")
async def forgot_password(body: ForgotPasswordRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email).first() if body.email else None
    if user:
        token, digest = new_reset_token()
        user.reset_password_token = digest
        user.reset_password_expire = now_utc() + timedelta(minutes=config.RESET_TOKEN_MINUTES)
        db.commit()
        # No mailer is configured; the token is only written to the log
        logger.info("[AUTH] Password reset token for %s: %s", user.email, token)
    return {"success": True, "message": RESET_MESSAGE}


@router.post("/reset-password")
async def reset_password(body: ResetPasswordRequest, db: Session = Depends(get_db)):
    if not body.token or not body.password:
        raise HTTPException(status_code=400, detail="Please provide a token and a new password.")

    user = (
        db.query(User)
        .filter(User.reset_password_token == hash_reset_token(body.token), User.reset_password_expire > now_utc())
        .first()
    )
    if not user:
        raise HTTPException(status_code=400, detail="Invalid or expired token.")

    user.password = hash_password(body.password)
    user.reset_password_token = None
    user.reset_password_expire = None
    db.commit()
    return {"success": True, "message": "Password has been reset successfully."}


@router.post("/send-verification-code")
async def send_verification_code(body: VerificationCodeRequest, user: User = Depends(protect)):
    if not body.username:
        raise HTTPException(status_code=400, detail="Minecraft username is required.")
    try:
        resp = await call_plugin("/generate-and-send-code", {"username": body.username})
    except PluginError as exc:
        raise HTTPException(status_code=exc.status, detail=exc.message)

    if not resp.get("success"):
        raise HTTPException(
            status_code=resp.get("status") or 500,
            detail=resp.get("message") or "Failed to send verification code in-game.",
        )
    return {"success": True, "message": "Verification code sent to player in-game."}


@router.post("/verify-minecraft-link")
async def verify_minecraft_link(body: VerifyLinkRequest, user: User = Depends(protect), db: Session = Depends(get_db)):
    if not body.username or not body.code:
        raise HTTPException(status_code=400, detail="Minecraft username and verification code are required.")
    try:
        resp = await call_plugin("/verify-code", {"username": body.username, "code": body.code})
    except PluginError as exc:
        raise HTTPException(status_code=exc.status, detail=exc.message)

    if not resp.get("success") or not resp.get("uuid"):
        raise HTTPException(
            status_code=resp.get("status") or 400,
            detail=resp.get("message") or "Invalid or expired verification code.",
        )

    user.minecraft_uuid = resp["uuid"]
    user.is_verified = True
    db.commit()
    logger.info("[AUTH] Linked %s to Minecraft account %s", user.username, resp["uuid"])
    return {"success": True, "message": "Minecraft account linked successfully.", "user": user.to_dict()}


@router.put("/unlink-minecraft")
async def unlink_minecraft(user: User = Depends(protect), db: Session = Depends(get_db)):
    user.minecraft_uuid = ""
    user.is_verified = False
    db.commit()
    return {"success": True, "message": "Minecraft account unlinked successfully.", "user": user.to_dict()}
