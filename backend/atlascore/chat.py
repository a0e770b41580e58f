import logging

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import Chat, ChatSession, User
from .utils import now_utc, iso
from .websocket import notify_session

logger = logging.getLogger("chat")


def _append_message(db: Session, session: ChatSession, message: str, sender: str) -> Chat:
    # Each row keeps a copy of the session state at the time it was written
    chat = Chat(
        user_id=session.session_key,
        message=message,
        sender=sender,
        status=session.status,
        claimed_by=session.claimed_by,
        claimed_by_username=session.claimed_by_username,
        timestamp=now_utc(),
    )
    session.last_message = message
    session.last_message_at = chat.timestamp
    db.add(chat)
    return chat


def _get_or_create_session(db: Session, session_key: str) -> ChatSession:
    session = db.get(ChatSession, session_key)
    if session:
        return session
    session = ChatSession(session_key=session_key, status="active")
    db.add(session)
    try:
        db.flush()
    except IntegrityError:
        # Another request opened the same session first
        db.rollback()
        session = db.get(ChatSession, session_key)
    return session


async def _publish(chat: Chat, session: ChatSession):
    await notify_session(session.session_key, {"type": "message", "message": chat.to_dict()})
    await notify_session(
        session.session_key,
        {
            "type": "status",
            "status": session.status,
            "claimedBy": session.claimed_by,
            "claimedByUsername": session.claimed_by_username,
        },
    )


def resolve_session_key(user: User | None, user_id: str | None, guest_id: str | None) -> str | None:
    if user and user.is_admin == 1 and user_id:
        return user_id
    if user:
        return user.id
    return guest_id


async def send_message(
    db: Session, user: User | None, message: str | None, target_user_id: str | None, guest_id: str | None
) -> Chat:
    if not message or not message.strip():
        raise HTTPException(status_code=400, detail="Message content cannot be empty.")

    if user and user.is_admin == 1:
        sender = "admin"
        session_key = target_user_id
        if not session_key:
            raise HTTPException(status_code=400, detail="Target user ID is required for admin replies.")
    elif user:
        sender = "user"
        session_key = user.id
    else:
        sender = "user"
        session_key = guest_id
        if not session_key:
            raise HTTPException(status_code=400, detail="Guest ID is required for unauthenticated users.")
        if db.get(User, session_key):
            raise HTTPException(status_code=403, detail="Guest ID is not valid.")

    session = _get_or_create_session(db, session_key)

    # A user writing into a closed ticket reopens it; admin replies never do
    if sender == "user" and session.status == "closed":
        session.status = "active"
        session.claimed_by = None
        session.claimed_by_username = None
        logger.info("[CHAT] Session %s reopened by user", session_key)

    chat = _append_message(db, session, message, sender)
    db.commit()
    db.refresh(chat)
    await _publish(chat, session)
    return chat


async def claim_session(db: Session, session_key: str | None, admin: User) -> ChatSession:
    if not session_key:
        raise HTTPException(status_code=400, detail="Session user ID is required to claim a chat.")

    session = db.get(ChatSession, session_key)
    if not session:
        session = ChatSession(
            session_key=session_key,
            status="claimed",
            claimed_by=admin.id,
            claimed_by_username=admin.username,
        )
        db.add(session)
        chat = _append_message(db, session, f"{admin.username} has initiated and claimed this chat.", "system")
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            return await claim_session(db, session_key, admin)
        logger.info("[CHAT] Session %s initiated and claimed by %s", session_key, admin.username)
        await _publish(chat, session)
        return session

    updated = (
        db.query(ChatSession)
        .filter(
            ChatSession.session_key == session_key,
            or_(ChatSession.status != "claimed", ChatSession.claimed_by == admin.id),
        )
        .update(
            {
                ChatSession.status: "claimed",
                ChatSession.claimed_by: admin.id,
                ChatSession.claimed_by_username: admin.username,
            },
            synchronize_session=False,
        )
    )
    if not updated:
        db.rollback()
        db.refresh(session)
        holder = session.claimed_by_username or "another admin"
        raise HTTPException(status_code=409, detail=f"Chat already claimed by {holder}.")

    db.refresh(session)
    chat = _append_message(db, session, f"{admin.username} has claimed this chat.", "system")
    db.commit()
    logger.info("[CHAT] Session %s claimed by %s", session_key, admin.username)
    await _publish(chat, session)
    return session


async def close_session(db: Session, session_key: str | None, admin: User) -> ChatSession:
    if not session_key:
        raise HTTPException(status_code=400, detail="Session user ID is required to close a chat.")

    session = db.get(ChatSession, session_key)
    if not session:
        raise HTTPException(status_code=404, detail="Chat session not found.")

    updated = (
        db.query(ChatSession)
        .filter(
            ChatSession.session_key == session_key,
            or_(ChatSession.status != "claimed", ChatSession.claimed_by == admin.id),
        )
        .update(
            {ChatSession.status: "closed", ChatSession.claimed_by: None, ChatSession.claimed_by_username: None},
            synchronize_session=False,
        )
    )
    if not updated:
        db.rollback()
        db.refresh(session)
        holder = session.claimed_by_username or "another admin"
        raise HTTPException(
            status_code=403,
            detail=f"This chat is claimed by {holder}. Only the claiming admin can close it.",
        )

    db.refresh(session)
    chat = _append_message(db, session, f"{admin.username} has closed this chat.", "system")
    db.commit()
    logger.info("[CHAT] Session %s closed by %s", session_key, admin.username)
    await _publish(chat, session)
    return session


def get_history(db: Session, session_key: str) -> list[Chat]:
    return db.query(Chat).filter(Chat.user_id == session_key).order_by(Chat.timestamp.asc()).all()


def list_sessions(db: Session) -> list[dict]:
    sessions = db.query(ChatSession).order_by(ChatSession.last_message_at.desc()).all()
    keys = [s.session_key for s in sessions]
    users = {u.id: u for u in db.query(User).filter(User.id.in_(keys)).all()} if keys else {}

    result = []
    for s in sessions:
        user = users.get(s.session_key)
        result.append({
            "userId": s.session_key,
            "username": user.username if user else f"Guest ({s.session_key[:6]})",
            "lastMessage": s.last_message,
            "lastMessageTimestamp": iso(s.last_message_at),
            "isGuest": user is None,
            "status": s.status,
            "claimedBy": s.claimed_by,
            "claimedByUsername": s.claimed_by_username,
        })
    return result
