# Services module

from cafe_pos.services.order_service import OrderService, get_order_service
from cafe_pos.services.payment_service import PaymentService, get_payment_service
from cafe_pos.services.analytics_service import AnalyticsService, get_analytics_service
from cafe_pos.services.events import EventBus, EventLog, RedisEventRelay
