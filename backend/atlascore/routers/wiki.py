from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User, WikiCategory, WikiPage
from ..schemas import WikiCategoryIn, WikiPageIn
from ..security import authorize_admin

router = APIRouter()


def build_category_tree(categories: list[WikiCategory]) -> list[dict]:
    nodes = {c.id: {**c.to_dict(), "children": []} for c in categories}
    roots = []
    for c in categories:
        parent = nodes.get(c.parent_id) if c.parent_id else None
        if parent is not None:
            parent["children"].append(nodes[c.id])
        else:
            # Unknown parents are shown at the top level
            roots.append(nodes[c.id])
    return roots


@router.get("/categories")
async def categories(db: Session = Depends(get_db)):
    return {"success": True, "categories": build_category_tree(db.query(WikiCategory).all())}


@router.get("/categories/{category_id}")
async def get_category(category_id: str, db: Session = Depends(get_db)):
    category = db.get(WikiCategory, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return {"success": True, "category": category.to_dict()}


@router.get("/pages/by-category/{category_id}")
async def pages_by_category(category_id: str, db: Session = Depends(get_db)):
    query = db.query(WikiPage)
    if category_id != "all":
        query = query.filter(WikiPage.category_id == category_id)
    return {"success": True, "pages": [p.to_dict() for p in query.all()]}


@router.get("/pages/{page_id}")
async def get_page(page_id: str, db: Session = Depends(get_db)):
    page = db.get(WikiPage, page_id)
    if not page:
        raise HTTPException(status_code=404, detail="Page not found")
    return {"success": True, "page": page.to_dict()}


@router.post("/categories", status_code=201)
async def create_category(body: WikiCategoryIn, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    if not body.name:
        raise HTTPException(status_code=400, detail="Category name is required.")
    category = WikiCategory(
        name=body.name,
        description=body.description,
        content=body.content or "",
        parent_id=body.parentId or None,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return {"success": True, "category": category.to_dict()}


@router.put("/categories/{category_id}")
async def update_category(
    category_id: str, body: WikiCategoryIn, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)
):
    category = db.get(WikiCategory, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    if body.parentId == category_id:
        raise HTTPException(status_code=400, detail="A category cannot be its own parent.")

    category.name = body.name or category.name
    category.description = body.description
    category.content = body.content or ""
    # Empty parent means top level
    category.parent_id = body.parentId or None
    db.commit()
    db.refresh(category)
    return {"success": True, "category": category.to_dict()}


@router.delete("/categories/{category_id}")
async def delete_category(category_id: str, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    category = db.get(WikiCategory, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    db.query(WikiPage).filter(WikiPage.category_id == category_id).delete(synchronize_session=False)
    db.delete(category)
    db.commit()
    return {"success": True, "message": "Category and its pages deleted"}


@router.post("/pages", status_code=201)
async def create_page(body: WikiPageIn, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    if not body.title:
        raise HTTPException(status_code=400, detail="Page title is required.")
    page = WikiPage(title=body.title, content=body.content or "", category_id=body.categoryId or "uncategorized")
    db.add(page)
    db.commit()
    db.refresh(page)
    return {"success": True, "page": page.to_dict()}


@router.put("/pages/{page_id}")
async def update_page(
    page_id: str, body: WikiPageIn, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)
):
    page = db.get(WikiPage, page_id)
    if not page:
        raise HTTPException(status_code=404, detail="Page not found")
    page.title = body.title or page.title
    page.content = body.content or ""
    page.category_id = body.categoryId or "uncategorized"
    db.commit()
    db.refresh(page)
    return {"success": True, "page": page.to_dict()}


@router.delete("/pages/{page_id}")
async def delete_page(page_id: str, admin: User = Depends(authorize_admin), db: Session = Depends(get_db)):
    page = db.get(WikiPage, page_id)
    if not page:
        raise HTTPException(status_code=404, detail="Page not found")
    db.delete(page)
    db.commit()
    return {"success": True, "message": "Page deleted"}
