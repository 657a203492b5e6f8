"""Prometheus-compatible metrics for the POS backend."""

import logging
import threading
import time
from typing import Dict, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


class MetricsCollector:
    """Collects HTTP and order lifecycle counters in Prometheus exposition format."""

    MAX_SAMPLES = 1000

    def __init__(self):
        self._lock = threading.Lock()
        self.request_count: Dict[str, int] = {}
        self.request_duration: Dict[str, List[float]] = {}
        self.error_count: Dict[int, int] = {}
        self.active_requests: int = 0
        self.order_transitions: Dict[Tuple[str, str], int] = {}
        self.order_conflicts: Dict[str, int] = {}
        self.orders_created: int = 0
        self.payments: Dict[str, int] = {}
        self.refunds: int = 0

    def record_request(self, method: str, path: str, status: int, duration: float):
        key = f"{method} {self._normalize_path(path)}"
        with self._lock:
            self.request_count[key] = self.request_count.get(key, 0) + 1
            durations = self.request_duration.setdefault(key, [])
            durations.append(duration)
            if len(durations) > self.MAX_SAMPLES:
                self.request_duration[key] = durations[-self.MAX_SAMPLES:]
            if status >= 400:
                self.error_count[status] = self.error_count.get(status, 0) + 1

    def track_active(self, delta: int):
        with self._lock:
            self.active_requests += delta

    def record_order_created(self):
        with self._lock:
            self.orders_created += 1

    def record_transition(self, from_status: str, to_status: str):
        key = (from_status, to_status)
        with self._lock:
            self.order_transitions[key] = self.order_transitions.get(key, 0) + 1

    def record_conflict(self, kind: str):
        with self._lock:
            self.order_conflicts[kind] = self.order_conflicts.get(kind, 0) + 1

    def record_payment(self, method: str):
        with self._lock:
            self.payments[method] = self.payments.get(method, 0) + 1

    def record_refund(self):
        with self._lock:
            self.refunds += 1

    @staticmethod
    def _normalize_path(path: str) -> str:
        """Collapse numeric path segments so /orders/7 and /orders/8 share a series."""
        return "/".join(":id" if p.isdigit() else p for p in path.split("/"))

    @staticmethod
    def _family(lines: List[str], name: str, kind: str, help_text: str, samples) -> None:
        lines.append(f"# HELP {name} {help_text}")
        lines.append(f"# TYPE {name} {kind}")
        for labels, value in samples:
            label_str = ",".join(f'{k}="{v}"' for k, v in labels)
            lines.append(f"{name}{{{label_str}}} {value}" if label_str else f"{name} {value}")

    def get_prometheus_metrics(self) -> str:
        lines: List[str] = []
        with self._lock:
            routes = {key: key.split(" ", 1) for key in self.request_count}
            self._family(lines, "http_requests_total", "counter", "API requests by route", [
                ((("method", routes[k][0]), ("path", routes[k][1])), n)
                for k, n in sorted(self.request_count.items())
            ])
            self._family(lines, "http_errors_total", "counter", "Responses with status >= 400", [
                ((("status", code),), n) for code, n in sorted(self.error_count.items())
            ])
            self._family(lines, "http_active_requests", "gauge", "Requests in flight", [
                ((), self.active_requests)
            ])

            latency = []
            for key, durations in sorted(self.request_duration.items()):
                if not durations:
                    continue
                method, path = key.split(" ", 1)
                ordered = sorted(durations)
                for q in (0.5, 0.99):
                    value = ordered[min(int(len(ordered) * q), len(ordered) - 1)]
                    latency.append(((("method", method), ("path", path), ("quantile", q)), f"{value:.4f}"))
            self._family(lines, "http_request_duration_seconds", "summary", "Request latency", latency)

            self._family(lines, "pos_orders_created_total", "counter", "Orders created", [
                ((), self.orders_created)
            ])
            self._family(lines, "pos_order_transitions_total", "counter", "Applied order status transitions", [
                ((("from", src), ("to", dst)), n) for (src, dst), n in sorted(self.order_transitions.items())
            ])
            self._family(lines, "pos_order_conflicts_total", "counter", "Rejected order writes by reason", [
                ((("reason", kind),), n) for kind, n in sorted(self.order_conflicts.items())
            ])
            self._family(lines, "pos_payments_total", "counter", "Payments taken by method", [
                ((("method", m),), n) for m, n in sorted(self.payments.items())
            ])
            self._family(lines, "pos_refunds_total", "counter", "Payments refunded", [((), self.refunds)])

        return "\n".join(lines) + "\n"


metrics = MetricsCollector()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Times every request except scrapes of /metrics itself."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        metrics.track_active(1)
        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            metrics.record_request(request.method, request.url.path, status, time.perf_counter() - started)
            metrics.track_active(-1)
