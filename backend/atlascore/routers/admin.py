import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..admin_reports import build_dashboard, new_player_trends, registration_trends
from ..database import get_db
from ..models import Category, Product, User
from ..schemas import AdminStatusUpdate, CategoryIn, ProductIn, ServerStatsIn, UserUpdate
from ..security import authorize_admin, verify_secret_key
from .server import save_server_stats
from .users import apply_user_update

logger = logging.getLogger("admin")

router = APIRouter()

PRODUCT_REQUIRED = {"name", "price", "in_game_commands"}


@router.get("/dashboard")
async def dashboard(admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    return {"success": True, "data": build_dashboard(db)}


@router.get("/trends/registrations")
async def trends_registrations(admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    return {"success": True, "data": registration_trends(db)}


@router.get("/trends/new-players")
async def trends_new_players(admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    return {"success": True, "data": new_player_trends(db)}


# Products

@router.post("/products", status_code=201)
async def create_product(body: ProductIn, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    if not body.name or body.price is None:
        raise HTTPException(status_code=400, detail="Product name and price are required.")
    product = Product(
        name=body.name,
        description=body.description,
        price=body.price,
        stock=body.stock,
        category=body.category,
        image_url=body.imageUrl,
        in_game_commands=body.in_game_commands or [],
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("[ADMIN] %s created product %s", admin.username, product.id)
    return {"success": True, "product": product.to_dict()}


@router.put("/products/{product_id}")
async def update_product(
    product_id: str, body: ProductIn, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)
):
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    # An explicit empty stock switches the product to unlimited stock
    mapping = {"imageUrl": "image_url"}
    for key, value in body.dict(exclude_unset=True).items():
        if value is None and key in PRODUCT_REQUIRED:
            continue
        setattr(product, mapping.get(key, key), value)
    db.commit()
    db.refresh(product)
    return {"success": True, "product": product.to_dict()}


@router.delete("/products/{product_id}")
async def delete_product(product_id: str, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    db.delete(product)
    db.commit()
    return {"success": True, "message": "Product deleted"}


# Categories

@router.get("/categories")
async def list_categories(admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    categories = db.query(Category).all()
    return {"success": True, "count": len(categories), "categories": [c.to_dict() for c in categories]}


@router.post("/categories", status_code=201)
async def create_category(body: CategoryIn, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    if not body.name:
        raise HTTPException(status_code=400, detail="Category name is required.")
    category = Category(name=body.name, description=body.description)
    db.add(category)
    db.commit()
    db.refresh(category)
    return {"success": True, "category": category.to_dict()}


@router.put("/categories/{category_id}")
async def update_category(
    category_id: str, body: CategoryIn, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)
):
    category = db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    for key, value in body.dict(exclude_unset=True).items():
        if value is None and key == "name":
            continue
        setattr(category, key, value)
    db.commit()
    db.refresh(category)
    return {"success": True, "category": category.to_dict()}


@router.delete("/categories/{category_id}")
async def delete_category(category_id: str, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    category = db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    db.delete(category)
    db.commit()
    return {"success": True, "message": "Category deleted"}


# Users

@router.get("/users")
async def list_users(admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    users = db.query(User).order_by(User.created_at.asc()).all()
    return {"success": True, "count": len(users), "users": [u.to_admin_dict() for u in users]}


@router.get("/users/{user_id}")
async def get_user(user_id: str, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "user": user.to_admin_dict()}


@router.put("/users/{user_id}")
async def update_user(
    user_id: str, body: UserUpdate, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)
):
    apply_user_update(db, user_id, body)
    return {"success": True, "message": "User updated"}


@router.delete("/users/{user_id}")
async def delete_user(user_id: str, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    db.delete(user)
    db.commit()
    return {"success": True, "message": "User deleted"}


@router.put("/users/{user_id}/admin-status")
async def update_admin_status(
    user_id: str, body: AdminStatusUpdate, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)
):
    if isinstance(body.is_admin, bool) or body.is_admin not in (0, 1):
        raise HTTPException(status_code=400, detail="Invalid is_admin value")
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    user.is_admin = body.is_admin
    db.commit()
    logger.info("[ADMIN] %s set is_admin=%s on %s", admin.username, body.is_admin, user.username)
    return {"success": True, "message": "User admin status updated"}


# Called by the Minecraft plugin with the shared secret, not a JWT

@router.post("/stats", dependencies=[Depends(verify_secret_key)])
async def update_stats(body: ServerStatsIn, db: Session = Depends(get_db)):
    save_server_stats(db, body)
    return {"success": True, "message": "Stats updated successfully."}
