"""Shared FastAPI dependencies for route modules."""

from typing import Annotated

from fastapi import Depends, Request

from cafe_pos.core.rbac import Permission, TokenData, require_permission
from cafe_pos.db.session import DbSession
from cafe_pos.services.analytics_service import AnalyticsService
from cafe_pos.services.events import EventBus, EventLog
from cafe_pos.services.order_service import OrderService
from cafe_pos.services.payment_service import PaymentService


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_event_log(request: Request) -> EventLog:
    return request.app.state.event_log


Events = Annotated[EventBus, Depends(get_event_bus)]
EventHistory = Annotated[EventLog, Depends(get_event_log)]


def get_order_service(db: DbSession, events: Events) -> OrderService:
    return OrderService(db, events)


def get_payment_service(db: DbSession, events: Events) -> PaymentService:
    return PaymentService(db, events)


def get_analytics_service(db: DbSession) -> AnalyticsService:
    return AnalyticsService(db)


Orders = Annotated[OrderService, Depends(get_order_service)]
Payments = Annotated[PaymentService, Depends(get_payment_service)]
Analytics = Annotated[AnalyticsService, Depends(get_analytics_service)]


# Permission-gated current user, one alias per endpoint permission
CustomerViewer = Annotated[TokenData, Depends(require_permission(Permission.CUSTOMER_VIEW))]
CustomerEditor = Annotated[TokenData, Depends(require_permission(Permission.CUSTOMER_EDIT))]
MenuEditor = Annotated[TokenData, Depends(require_permission(Permission.MENU_EDIT))]
OrderCreator = Annotated[TokenData, Depends(require_permission(Permission.ORDER_CREATE))]
OrderViewer = Annotated[TokenData, Depends(require_permission(Permission.ORDER_VIEW))]
OrderOperator = Annotated[TokenData, Depends(require_permission(Permission.ORDER_STATUS))]
KitchenViewer = Annotated[TokenData, Depends(require_permission(Permission.KITCHEN_VIEW))]
PaymentViewer = Annotated[TokenData, Depends(require_permission(Permission.PAYMENT_VIEW))]
PaymentProcessor = Annotated[TokenData, Depends(require_permission(Permission.PAYMENT_PROCESS))]
PaymentRefunder = Annotated[TokenData, Depends(require_permission(Permission.PAYMENT_REFUND))]
UserManager = Annotated[TokenData, Depends(require_permission(Permission.USER_MANAGE))]
EventViewer = Annotated[TokenData, Depends(require_permission(Permission.EVENTS_VIEW))]
