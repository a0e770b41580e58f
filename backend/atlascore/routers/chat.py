from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from ..chat import claim_session, close_session, get_history, list_sessions, resolve_session_key, send_message
from ..database import get_db
from ..models import User
from ..schemas import ChatSend, ChatSessionAction
from ..security import authorize_admin, identify_user
from ..websocket import connect_ws, disconnect_ws

router = APIRouter()


@router.get("/history")
async def history(
    userId: str | None = None,
    guestId: str | None = None,
    user: User | None = Depends(identify_user),
    db: Session = Depends(get_db),
):
    session_key = resolve_session_key(user, userId, guestId)
    if not session_key:
        raise HTTPException(status_code=400, detail="User or guest ID is required.")
    if user is None and db.get(User, session_key):
        raise HTTPException(status_code=403, detail="Guest ID is not valid.")
    return {"success": True, "messages": [m.to_dict() for m in get_history(db, session_key)]}


@router.post("/send", status_code=201)
async def send(body: ChatSend, user: User | None = Depends(identify_user), db: Session = Depends(get_db)):
    chat = await send_message(db, user, body.message, body.userId, body.guestId)
    return {"success": True, "message": chat.to_dict()}


@router.get("/sessions")
async def sessions(admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    return {"success": True, "sessions": list_sessions(db)}


@router.post("/claim")
async def claim(body: ChatSessionAction, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    session = await claim_session(db, body.userId, admin)
    return {
        "success": True,
        "message": "Chat session claimed successfully.",
        "claimedBy": session.claimed_by,
        "status": session.status,
    }


@router.post("/close")
async def close(body: ChatSessionAction, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    session = await close_session(db, body.userId, admin)
    return {"success": True, "message": "Chat session closed successfully.", "status": session.status}


@router.websocket("/ws/{session_key}")
async def chat_ws(websocket: WebSocket, session_key: str, token: str | None = None, db: Session = Depends(get_db)):
    # Sessions of registered users are only visible to that user or an admin
    try:
        allowed = True
        if db.get(User, session_key):
            viewer = await identify_user(f"Bearer {token}" if token else None, db)
            allowed = viewer is not None and (viewer.id == session_key or viewer.is_admin == 1)
    finally:
        # The socket may stay open for hours; it must not hold a pooled connection
        db.close()

    if not allowed:
        await websocket.close(code=1008)
        return

    await connect_ws(session_key, websocket)
    try:
        while True:
            # Clients only listen; anything they send is ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        await disconnect_ws(session_key, websocket)
