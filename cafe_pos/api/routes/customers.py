"""Customer management routes."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from sqlalchemy import or_

from cafe_pos.api.deps import CustomerEditor, CustomerViewer
from cafe_pos.core.rate_limit import limiter
from cafe_pos.core.responses import paginated_response
from cafe_pos.db.session import DbSession
from cafe_pos.models.customer import Customer
from cafe_pos.models.order import Order
from cafe_pos.schemas.customer import CustomerCreate, CustomerResponse, CustomerUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_customer_or_404(db, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


def _ensure_unique(db, phone: Optional[str], email: Optional[str], exclude_id: Optional[int] = None):
    """Phone and email each identify at most one customer."""
    for column, value in (("phone", phone), ("email", email)):
        if value is None:
            continue
        query = db.query(Customer.id).filter(getattr(Customer, column) == value)
        if exclude_id is not None:
            query = query.filter(Customer.id != exclude_id)
        if query.first() is not None:
            raise HTTPException(
                status_code=409, detail=f"Customer with this {column} already exists"
            )


@router.get("/")
@limiter.limit("60/minute")
def list_customers(
    request: Request,
    db: DbSession,
    current_user: CustomerViewer,
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    """List customers, newest first. ``search`` matches name, phone or email."""
    query = db.query(Customer)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Customer.name.ilike(pattern),
            Customer.phone.ilike(pattern),
            Customer.email.ilike(pattern),
        ))
    total = query.count()
    customers = (
        query.order_by(Customer.created_at.desc(), Customer.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return paginated_response(
        [CustomerResponse.model_validate(c).model_dump(mode="json") for c in customers],
        total, skip, limit,
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
@limiter.limit("60/minute")
def get_customer(request: Request, db: DbSession, current_user: CustomerViewer, customer_id: int):
    return _get_customer_or_404(db, customer_id)


@router.post("/", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_customer(request: Request, db: DbSession, current_user: CustomerEditor, data: CustomerCreate):
    """Register a customer."""
    _ensure_unique(db, data.phone, data.email)
    customer = Customer(name=data.name, phone=data.phone, email=data.email)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    logger.info(f"Customer {customer.id} created by user {current_user.user_id}")
    return customer


@router.put("/{customer_id}", response_model=CustomerResponse)
@limiter.limit("30/minute")
def update_customer(
    request: Request, db: DbSession, current_user: CustomerEditor, customer_id: int, data: CustomerUpdate
):
    customer = _get_customer_or_404(db, customer_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("name") is None:
        changes.pop("name", None)
    _ensure_unique(db, changes.get("phone"), changes.get("email"), exclude_id=customer.id)
    for field, value in changes.items():
        setattr(customer, field, value)
    db.commit()
    db.refresh(customer)
    return customer


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_customer(request: Request, db: DbSession, current_user: CustomerEditor, customer_id: int):
    """Delete a customer. Customers with orders are kept for the order history."""
    customer = _get_customer_or_404(db, customer_id)
    has_orders = db.query(Order.id).filter(Order.customer_id == customer.id).first() is not None
    if has_orders:
        raise HTTPException(status_code=409, detail="Customer has orders and cannot be deleted")
    db.delete(customer)
    db.commit()
    logger.info(f"Customer {customer_id} deleted by user {current_user.user_id}")
