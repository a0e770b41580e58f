from sqlalchemy import Column, String, Integer, Float, DateTime, Boolean, Text, JSON

from .database import Base
from .utils import now_utc, new_id, iso


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True, default=new_id)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    minecraft_uuid = Column(String, default="")
    is_admin = Column(Integer, default=0)
    is_verified = Column(Boolean, default=False)
    reset_password_token = Column(String, nullable=True, index=True)
    reset_password_expire = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "isAdmin": self.is_admin == 1,
            "isVerified": bool(self.is_verified),
            "minecraft_uuid": self.minecraft_uuid or "",
        }

    def to_admin_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "is_admin": self.is_admin,
            "is_verified": bool(self.is_verified),
            "minecraft_uuid": self.minecraft_uuid or "",
            "created_at": iso(self.created_at),
        }


class Category(Base):
    __tablename__ = "categories"

    id = Column(String, primary_key=True, index=True, default=new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


class Product(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True, index=True, default=new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    stock = Column(Integer, nullable=True)  # NULL = unlimited
    category = Column(String, nullable=True, index=True)
    image_url = Column(String, nullable=True)
    in_game_commands = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
            "category": self.category,
            "imageUrl": self.image_url,
            "in_game_commands": list(self.in_game_commands or []),
        }


class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True, index=True, default=new_id)
    user_id = Column(String, index=True, nullable=False)
    products = Column(JSON, nullable=False)
    total_amount = Column(Float, nullable=False)
    currency = Column(String, default="USD")
    processed_amount = Column(Float, nullable=True)
    processed_currency = Column(String, nullable=True)
    status = Column(String, default="pending", index=True)
    payment_method = Column(String, nullable=False)
    payment_intent_id = Column(String, nullable=True, index=True)
    failure_reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "products": self.products,
            "totalAmount": self.total_amount,
            "currency": self.currency,
            "processedAmount": self.processed_amount,
            "processedCurrency": self.processed_currency,
            "status": self.status,
            "paymentMethod": self.payment_method,
            "paymentIntentId": self.payment_intent_id,
            "failure_reason": self.failure_reason,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class ChatSession(Base):
    __tablename__ = "chat_sessions"

    session_key = Column(String, primary_key=True, index=True)
    status = Column(String, default="active")
    claimed_by = Column(String, nullable=True)
    claimed_by_username = Column(String, nullable=True)
    last_message = Column(Text, nullable=True)
    last_message_at = Column(DateTime(timezone=True), default=now_utc, index=True)


class Chat(Base):
    __tablename__ = "chats"

    id = Column(String, primary_key=True, index=True, default=new_id)
    user_id = Column(String, index=True, nullable=False)
    message = Column(Text, nullable=False)
    sender = Column(String, nullable=False)  # user, admin, system
    status = Column(String, default="active")
    claimed_by = Column(String, nullable=True)
    claimed_by_username = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=now_utc, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "message": self.message,
            "sender": self.sender,
            "status": self.status,
            "claimedBy": self.claimed_by,
            "claimedByUsername": self.claimed_by_username,
            "timestamp": iso(self.timestamp),
        }


class Setting(Base):
    __tablename__ = "settings"

    id = Column(String, primary_key=True, default=new_id)
    key = Column(String, unique=True, index=True, nullable=False)
    value = Column(JSON, nullable=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "key": self.key, "value": self.value}


class WikiCategory(Base):
    __tablename__ = "wiki_categories"

    id = Column(String, primary_key=True, index=True, default=new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    parent_id = Column(String, nullable=True, index=True)
    content = Column(Text, default="")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "parentId": self.parent_id,
            "content": self.content or "",
        }


class WikiPage(Base):
    __tablename__ = "wiki_pages"

    id = Column(String, primary_key=True, index=True, default=new_id)
    title = Column(String, nullable=False)
    content = Column(Text, default="")
    category_id = Column(String, default="uncategorized", index=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "content": self.content, "categoryId": self.category_id}


class ServerStats(Base):
    __tablename__ = "server_stats"

    id = Column(String, primary_key=True, default="stats")
    online_players = Column(Integer, default=0)
    max_players = Column(Integer, default=0)
    new_players_today = Column(Integer, default=0)
    server_status = Column(String, default="offline")
    last_updated = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "onlinePlayers": self.online_players,
            "maxPlayers": self.max_players,
            "newPlayersToday": self.new_players_today,
            "serverStatus": self.server_status,
            "lastUpdated": iso(self.last_updated),
        }


class DailyStats(Base):
    __tablename__ = "daily_stats"

    date = Column(String, primary_key=True)  # YYYY-MM-DD, UTC
    new_players_today = Column(Integer, default=0)
