"""Performance monitoring utilities using Prometheus metrics."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Gauge, Histogram


lottery_draws_total = Counter("ballerevents_lottery_draws_total", "Lottery draws that selected winners")
lottery_winners_total = Counter("ballerevents_lottery_winners_total", "Entrants moved to the chosen set")
notifications_sent_total = Counter(
    "ballerevents_notifications_sent_total", "Notifications created", labelnames=("type",)
)
dispatch_failures_total = Counter("ballerevents_dispatch_failures_total", "Winner dispatches that failed")
entrant_transitions_total = Counter(
    "ballerevents_entrant_transitions_total", "Entrant set changes", labelnames=("action",)
)
batch_write_duration = Histogram("ballerevents_batch_write_seconds", "Atomic batch write duration")
db_connections = Gauge("ballerevents_db_connection_pool_size", "DB connection pool size")


class PerformanceMonitor:
    def __init__(self) -> None:
        self.metrics = {
            "lottery_draws_total": lottery_draws_total,
            "lottery_winners_total": lottery_winners_total,
            "notifications_sent_total": notifications_sent_total,
            "dispatch_failures_total": dispatch_failures_total,
            "entrant_transitions_total": entrant_transitions_total,
            "batch_write_duration": batch_write_duration,
            "db_connections": db_connections,
        }

    @contextmanager
    def track_batch(self) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            batch_write_duration.observe(time.perf_counter() - start)

    def record_draw(self, winners_count: int) -> None:
        lottery_draws_total.inc()
        lottery_winners_total.inc(winners_count)

    def record_notifications(self, notification_type: str, count: int) -> None:
        if count:
            notifications_sent_total.labels(type=notification_type).inc(count)

    def record_dispatch_failure(self) -> None:
        dispatch_failures_total.inc()

    def record_transition(self, action: str) -> None:
        entrant_transitions_total.labels(action=action).inc()

    def record_db_pool(self, pool_size: int) -> None:
        db_connections.set(pool_size)
