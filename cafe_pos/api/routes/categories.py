"""Menu category routes."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy import func

from cafe_pos.api.deps import MenuEditor
from cafe_pos.core.rate_limit import limiter
from cafe_pos.core.rbac import CurrentUser
from cafe_pos.core.responses import list_response
from cafe_pos.db.session import DbSession
from cafe_pos.models.menu import Category
from cafe_pos.schemas.menu import (
    CategoryCreate,
    CategoryDetailResponse,
    CategoryResponse,
    CategoryUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _name_taken(db, name: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Category.id).filter(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    return query.first() is not None


@router.get("/")
@limiter.limit("60/minute")
def list_categories(request: Request, db: DbSession, current_user: CurrentUser, active_only: bool = False):
    query = db.query(Category)
    if active_only:
        query = query.filter(Category.is_active.is_(True))
    categories = query.order_by(Category.name).all()
    return list_response(
        [CategoryResponse.model_validate(c).model_dump(mode="json") for c in categories]
    )


@router.get("/{category_id}", response_model=CategoryDetailResponse)
@limiter.limit("60/minute")
def get_category(request: Request, db: DbSession, current_user: CurrentUser, category_id: int):
    """A category with its menu items."""
    category = db.get(Category, category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_category(request: Request, db: DbSession, current_user: MenuEditor, data: CategoryCreate):
    if _name_taken(db, data.name):
        raise HTTPException(status_code=409, detail="Category with this name already exists")
    category = Category(name=data.name, description=data.description, is_active=True)
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info(f"Category '{category.name}' created by user {current_user.user_id}")
    return category


@router.put("/{category_id}", response_model=CategoryResponse)
@limiter.limit("30/minute")
def update_category(
    request: Request, db: DbSession, current_user: MenuEditor, category_id: int, data: CategoryUpdate
):
    category = db.get(Category, category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes and _name_taken(db, changes["name"], exclude_id=category.id):
        raise HTTPException(status_code=409, detail="Category with this name already exists")
    for field, value in changes.items():
        setattr(category, field, value)
    db.commit()
    db.refresh(category)
    return category
