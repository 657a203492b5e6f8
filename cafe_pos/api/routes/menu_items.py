"""Menu item routes.

Price changes apply to future orders only; existing order lines keep the
price they were created with.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from cafe_pos.api.deps import MenuEditor
from cafe_pos.core.rate_limit import limiter
from cafe_pos.core.rbac import CurrentUser
from cafe_pos.core.responses import list_response, paginated_response
from cafe_pos.db.session import DbSession
from cafe_pos.models.menu import Category, MenuItem
from cafe_pos.models.order import OrderItem
from cafe_pos.schemas.menu import MenuItemCreate, MenuItemResponse, MenuItemUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_item_or_404(db, item_id: int) -> MenuItem:
    item = db.get(MenuItem, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Menu item not found")
    return item


def _require_category(db, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise HTTPException(status_code=422, detail=f"Category {category_id} not found")
    return category


def _serialize(items) -> list:
    return [MenuItemResponse.model_validate(i).model_dump(mode="json") for i in items]


@router.get("/")
@limiter.limit("60/minute")
def list_menu_items(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    available: Optional[bool] = None,
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List menu items by name, optionally only those currently available."""
    query = db.query(MenuItem)
    if available is not None:
        query = query.filter(MenuItem.is_available.is_(available))
    if search:
        query = query.filter(MenuItem.name.ilike(f"%{search.strip()}%"))
    total = query.count()
    items = query.order_by(MenuItem.name, MenuItem.id).offset(skip).limit(limit).all()
    return paginated_response(_serialize(items), total, skip, limit)


@router.get("/category/{category_id}")
@limiter.limit("60/minute")
def list_menu_items_by_category(request: Request, db: DbSession, current_user: CurrentUser, category_id: int):
    if db.get(Category, category_id) is None:
        raise HTTPException(status_code=404, detail="Category not found")
    items = (
        db.query(MenuItem)
        .filter(MenuItem.category_id == category_id)
        .order_by(MenuItem.name, MenuItem.id)
        .all()
    )
    return list_response(_serialize(items))


@router.get("/{item_id}", response_model=MenuItemResponse)
@limiter.limit("60/minute")
def get_menu_item(request: Request, db: DbSession, current_user: CurrentUser, item_id: int):
    return _get_item_or_404(db, item_id)


@router.post("/", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_menu_item(request: Request, db: DbSession, current_user: MenuEditor, data: MenuItemCreate):
    _require_category(db, data.category_id)
    item = MenuItem(
        name=data.name,
        description=data.description,
        price=data.price,
        category_id=data.category_id,
        is_available=data.is_available,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info(f"Menu item '{item.name}' ({item.price}) created by user {current_user.user_id}")
    return item


@router.put("/{item_id}", response_model=MenuItemResponse)
@limiter.limit("30/minute")
def update_menu_item(
    request: Request, db: DbSession, current_user: MenuEditor, item_id: int, data: MenuItemUpdate
):
    item = _get_item_or_404(db, item_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "category_id" in changes:
        _require_category(db, changes["category_id"])
    if "price" in changes and changes["price"] != item.price:
        logger.info(f"Menu item {item.id} price {item.price} -> {changes['price']}")
    for field, value in changes.items():
        setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_menu_item(request: Request, db: DbSession, current_user: MenuEditor, item_id: int):
    """Delete a menu item that was never ordered. Ordered items can be marked unavailable instead."""
    item = _get_item_or_404(db, item_id)
    ordered = db.query(OrderItem.id).filter(OrderItem.menu_item_id == item.id).first() is not None
    if ordered:
        raise HTTPException(
            status_code=409,
            detail="Menu item appears on orders; mark it unavailable instead",
        )
    db.delete(item)
    db.commit()
    logger.info(f"Menu item {item_id} deleted by user {current_user.user_id}")
