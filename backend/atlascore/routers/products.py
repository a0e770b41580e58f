from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Category, Product

router = APIRouter()


@router.get("")
async def list_products(db: Session = Depends(get_db)):
    categories = db.query(Category).all()
    grouped = {c.name: [] for c in categories}
    names = {c.id: c.name for c in categories}

    for product in db.query(Product).order_by(Product.created_at.asc()).all():
        name = names.get(product.category)
        if name is not None:
            grouped[name].append(product.to_dict())
    return {"success": True, "products": grouped}


@router.get("/{product_id}")
async def get_product(product_id: str, db: Session = Depends(get_db)):
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": True, "product": product.to_dict()}
