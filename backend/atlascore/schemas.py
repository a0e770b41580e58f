from typing import Any, List, Optional

from pydantic import BaseModel, Field, root_validator


class OrderItem(BaseModel):
    productId: str
    name: Optional[str] = None
    price: float = 0
    quantity: int = Field(1, ge=1)


class OrderCreate(BaseModel):
    products: List[OrderItem] = []
    totalAmount: Optional[float] = None
    paymentMethod: Optional[str] = None
    currency: str = "USD"


class OrderCancel(BaseModel):
    orderId: str


class RegisterRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    identifier: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None


class VerificationCodeRequest(BaseModel):
    username: Optional[str] = None


class VerifyLinkRequest(BaseModel):
    username: Optional[str] = None
    code: Optional[str] = None


class ChatSend(BaseModel):
    message: Optional[str] = None
    userId: Optional[str] = None
    guestId: Optional[str] = None


class ChatSessionAction(BaseModel):
    userId: Optional[str] = None


class ProductIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    stock: Optional[Any] = None
    category: Optional[str] = None
    imageUrl: Optional[str] = None
    in_game_commands: Optional[List[str]] = None

    @root_validator(skip_on_failure=True)
    def normalize_stock(cls, values):
        # Empty string or null both mean unlimited stock
        stock = values.get("stock")
        if stock == "" or stock is None:
            values["stock"] = None
        else:
            try:
                values["stock"] = int(stock)
            except (TypeError, ValueError):
                raise ValueError("stock must be an integer or empty for unlimited")
            if values["stock"] < 0:
                raise ValueError("stock cannot be negative")
        return values


class CategoryIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class AdminStatusUpdate(BaseModel):
    is_admin: Any = None


class UserUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    minecraft_uuid: Optional[str] = None
    is_verified: Optional[bool] = None


class ServerStatsIn(BaseModel):
    onlinePlayers: Any = None
    maxPlayers: Any = None
    newPlayersToday: Any = None

    @root_validator(skip_on_failure=True)
    def require_numbers(cls, values):
        for key in ("onlinePlayers", "maxPlayers", "newPlayersToday"):
            value = values.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError("Invalid stats data format")
        return values


class SettingIn(BaseModel):
    key: str
    value: Any = None


class SettingsUpdate(BaseModel):
    settings: Any = None


class WikiCategoryIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    parentId: Optional[str] = None


class WikiPageIn(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    categoryId: Optional[str] = None
