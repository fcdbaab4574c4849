# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum

# Authorization hold window applied to every admitted order. Not configurable.
CAPTURE_HOLD = timedelta(hours=24)

# Less than this much time before the capture deadline is a RED time-left risk.
CRITICAL_TIME_LEFT = timedelta(hours=1)


class Category(str, Enum):
    """Product categories an agent policy can allow."""

    CONSUMABLES = "CONSUMABLES"
    MRO = "MRO"
    OFFICE = "OFFICE"
    IT_EQUIPMENT = "IT_EQUIPMENT"
    KITCHEN = "KITCHEN"
    SAFETY = "SAFETY"
    HYGIENE = "HYGIENE"


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    UNKNOWN = "unknown"


class ReviewVerdict(str, Enum):
    """Verdict a peer agent attaches to a structured review."""

    ENDORSE = "ENDORSE"
    WARN = "WARN"
    BLOCKLIST = "BLOCKLIST"


class LogLevel(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class RiskLevel(str, Enum):
    """
    Traffic-light level for a single risk dimension.

    ``YELLOW`` is part of the vocabulary but only the stock dimension
    currently produces it.
    """

    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


class OrderStatus(str, Enum):
    """
    Procurement lifecycle of an admitted order.

    ``VOIDED`` and ``DELIVERED`` are terminal.
    """

    ORDER_CREATED = "ORDER_CREATED"
    PAYMENT_AUTHORIZED = "PAYMENT_AUTHORIZED"
    PROCUREMENT_PENDING = "PROCUREMENT_PENDING"
    PROCUREMENT_SENT = "PROCUREMENT_SENT"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    VOIDED = "VOIDED"

    def is_terminal(self) -> bool:
        """Return True for states no transition may leave."""
        return self in TERMINAL_STATUSES

    def is_pre_shipment(self) -> bool:
        """Return True while the order can still be voided."""
        return self in PRE_SHIPMENT_STATUSES


class PaymentStatus(str, Enum):
    AUTHORIZED = "AUTHORIZED"
    CAPTURED = "CAPTURED"
    VOIDED = "VOIDED"


class AdmissionOutcome(str, Enum):
    """Possible outcomes of a single admission attempt."""

    ADMITTED = "ADMITTED"
    REJECTED = "REJECTED"
    NO_CANDIDATE = "NO_CANDIDATE"
    INVALID_POLICY = "INVALID_POLICY"


TERMINAL_STATUSES = frozenset({OrderStatus.VOIDED, OrderStatus.DELIVERED})

PRE_SHIPMENT_STATUSES = frozenset(
    {
        OrderStatus.ORDER_CREATED,
        OrderStatus.PAYMENT_AUTHORIZED,
        OrderStatus.PROCUREMENT_PENDING,
        OrderStatus.PROCUREMENT_SENT,
    }
)


def as_utc(moment: datetime | None = None) -> datetime:
    """
    Return ``moment`` as a timezone-aware datetime, or the current UTC time.

    Naive datetimes are taken to be UTC.
    """
    if moment is None:
        return datetime.now(tz=timezone.utc)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
