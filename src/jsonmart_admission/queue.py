# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Admin review queue.

Entries are recomputed on every build; time-left, expiry and approvability
all depend on ``now`` and are never read from stored state.
"""
from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel

from jsonmart_admission.models import Order
from jsonmart_admission.orders.machine import effective_order
from jsonmart_admission.risk.classifier import format_time_left
from jsonmart_admission.types import CRITICAL_TIME_LEFT, OrderStatus, RiskLevel, as_utc


class QueueEntry(BaseModel, frozen=True):
    """
    One order as an administrator sees it.

    Attributes:
        order: The order with expiry and time-left applied.
        time_left_label: ``'EXPIRED'`` or ``'{h}h {m}m'``.
        is_expired: The capture deadline has passed.
        is_critical: Less than an hour left, not yet expired.
        can_approve: Pending, not expired, and consent is GREEN.
        capture_failed: The last capture attempt failed and can be retried.
    """

    order: Order
    time_left_label: str
    is_expired: bool
    is_critical: bool
    can_approve: bool
    capture_failed: bool


def build_entry(order: Order, now: datetime | None = None) -> QueueEntry:
    current = as_utc(now)
    view = effective_order(order, current)
    deadline = order.payment.capture_deadline
    label = format_time_left(deadline, current)
    is_expired = current > deadline
    pending = view.status == OrderStatus.PROCUREMENT_PENDING
    return QueueEntry(
        order=view,
        time_left_label=label,
        is_expired=is_expired,
        is_critical=not is_expired and deadline - current < CRITICAL_TIME_LEFT,
        can_approve=pending and not is_expired and view.risks.consent == RiskLevel.GREEN,
        capture_failed=pending and view.payment.last_error is not None,
    )


def build_queue(orders: Iterable[Order], now: datetime | None = None) -> list[QueueEntry]:
    """
    Build queue entries for ``orders``, most urgent deadline first.

    Every order passed in gets an entry; callers choose which orders to show.
    """
    current = as_utc(now)
    entries = [build_entry(order, current) for order in orders]
    entries.sort(key=lambda entry: entry.order.payment.capture_deadline)
    return entries
