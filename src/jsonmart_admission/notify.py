# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Best-effort order event notifications.

Delivery is fire-and-forget. A failing or slow sink is logged and ignored;
it never rolls back the order transition that produced the event.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger("jsonmart.admission.events")

ORDER_CREATED = "order.created"
ORDER_APPROVED = "order.approved"
ORDER_CAPTURE_FAILED = "order.capture_failed"
ORDER_REJECTED = "order.rejected"
ORDER_EXPIRED = "order.expired"
ORDER_SHIPPED = "order.shipped"
ORDER_DELIVERED = "order.delivered"


class Notifier(ABC):
    """Sink for order lifecycle events (webhooks, queues, chat ops...)."""

    @abstractmethod
    async def emit(self, event_type: str, payload: dict[str, Any]) -> None:
        ...


class LoggingNotifier(Notifier):
    """Write each event as an INFO record on the ``jsonmart.admission.events`` logger."""

    async def emit(self, event_type: str, payload: dict[str, Any]) -> None:
        logger.info(event_type, extra={"event_type": event_type, "payload": payload})


class NullNotifier(Notifier):
    async def emit(self, event_type: str, payload: dict[str, Any]) -> None:
        return None


async def emit_safely(
    notifier: Notifier,
    event_type: str,
    payload: dict[str, Any],
    timeout_seconds: float,
) -> bool:
    """
    Emit an event, swallowing and logging any delivery failure.

    Returns:
        True if the notifier accepted the event, False otherwise.
    """
    try:
        await asyncio.wait_for(notifier.emit(event_type, payload), timeout_seconds)
    except Exception:
        logger.warning(
            "notification_failed",
            exc_info=True,
            extra={"event_type": event_type, "order_id": payload.get("order_id")},
        )
        return False
    return True
