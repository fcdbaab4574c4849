# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Order admission lifecycle.

::

    ORDER_CREATED -> PROCUREMENT_PENDING -> PROCUREMENT_SENT -> SHIPPED -> DELIVERED
                              |                   |
                              +--> VOIDED <-------+   (reject, or expiry while pending)

Every write is a compare-and-set on ``(status, version)`` through the
:class:`~jsonmart_admission.storage.OrderStore`. Losing that race raises
:class:`~jsonmart_admission.errors.ConcurrentTransitionConflict`; the
machine never overwrites a state it did not read.

Expiry is a pure function of ``(capture_deadline, now)``. :meth:`read`
applies it as a view, :meth:`sweep_expired` makes the stored status catch
up, and neither depends on a timer.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from jsonmart_admission.audit.logger import AuditLog
from jsonmart_admission.audit.record import AuditEvent, AuditOutcome
from jsonmart_admission.backend import call_backend
from jsonmart_admission.config import AdmissionConfig
from jsonmart_admission.errors import (
    BackendUnavailableError,
    ConcurrentTransitionConflict,
    ConsentBlockedError,
    InvalidTransitionError,
    OrderNotFoundError,
    PaymentCancelFailure,
    PaymentCaptureFailure,
)
from jsonmart_admission.models import (
    ConsentFlags,
    Order,
    OrderItem,
    PaymentHold,
    ProductOffer,
    RiskVector,
    StatusChange,
)
from jsonmart_admission.notify import (
    ORDER_APPROVED,
    ORDER_CAPTURE_FAILED,
    ORDER_CREATED,
    ORDER_DELIVERED,
    ORDER_EXPIRED,
    ORDER_REJECTED,
    ORDER_SHIPPED,
    Notifier,
    NullNotifier,
    emit_safely,
)
from jsonmart_admission.payment import CancelRequest, CaptureRequest, PaymentCollaborator
from jsonmart_admission.risk.classifier import refresh_time_left
from jsonmart_admission.storage.interface import OrderStore
from jsonmart_admission.trace.recorder import DecisionTrace
from jsonmart_admission.types import CAPTURE_HOLD, OrderStatus, PaymentStatus, RiskLevel, as_utc

logger = logging.getLogger("jsonmart.admission.orders")

SYSTEM_ACTOR = "system"


def new_order(
    policy_id: str,
    offer: ProductOffer,
    qty: int,
    reason_codes: Iterable[str],
    risks: RiskVector,
    consent: ConsentFlags,
    agent_id: str | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Build a freshly admitted order, not yet persisted.

    The order passes through ``ORDER_CREATED`` and lands in
    ``PROCUREMENT_PENDING`` with the payment authorized for
    ``offer.price * qty`` and a capture deadline 24 hours out.
    """
    created_at = as_utc(now)
    deadline = created_at + CAPTURE_HOLD
    return Order(
        created_at=created_at,
        status=OrderStatus.PROCUREMENT_PENDING,
        items=(OrderItem(sku=offer.sku, qty=qty, reason_codes=tuple(reason_codes)),),
        payment=PaymentHold(
            status=PaymentStatus.AUTHORIZED,
            authorized_amount=offer.price * qty,
            capture_deadline=deadline,
        ),
        risks=refresh_time_left(risks, deadline, created_at),
        consent=consent,
        policy_id=policy_id,
        agent_id=agent_id,
        history=(
            StatusChange(
                from_status=None,
                to_status=OrderStatus.ORDER_CREATED,
                actor=SYSTEM_ACTOR,
                at=created_at,
            ),
            StatusChange(
                from_status=OrderStatus.ORDER_CREATED,
                to_status=OrderStatus.PROCUREMENT_PENDING,
                actor=SYSTEM_ACTOR,
                at=created_at,
                note="payment authorized",
            ),
        ),
    )


def effective_order(order: Order, now: datetime | None = None) -> Order:
    """
    Return the order as any reader must see it at ``now``.

    A pending order past its capture deadline is shown as ``VOIDED`` even if
    the stored status has not caught up yet, and the time-left risk is
    recomputed. The stored version is left untouched.
    """
    current = as_utc(now)
    risks = refresh_time_left(order.risks, order.payment.capture_deadline, current)
    if order.is_expired(current):
        return order.model_copy(
            update={
                "status": OrderStatus.VOIDED,
                "payment": order.payment.model_copy(update={"status": PaymentStatus.VOIDED}),
                "risks": risks,
            }
        )
    if order.status.is_terminal():
        return order
    return order.model_copy(update={"risks": risks})


def _event_payload(order: Order, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "order_id": order.order_id,
        "status": order.status.value,
        "payment_status": order.payment.status.value,
        "authorized_amount": order.payment.authorized_amount,
    }
    payload.update(extra)
    return payload


class OrderStateMachine:
    """
    Applies lifecycle transitions to stored orders.

    The machine holds no order state of its own; every call reads the store,
    decides, and writes back with a guarded update.

    Example::

        machine = OrderStateMachine(MemoryOrderStore(), SandboxPaymentGateway())
        await machine.create(order, trace)
        await machine.approve(order.order_id)
    """

    def __init__(
        self,
        store: OrderStore,
        payment: PaymentCollaborator,
        notifier: Notifier | None = None,
        config: AdmissionConfig | None = None,
        audit: AuditLog | None = None,
    ) -> None:
        self._config = config or AdmissionConfig()
        self._store = store
        self._payment = payment
        self._notifier = notifier or NullNotifier()
        self._audit = audit or AuditLog(self._config.audit)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def create(self, order: Order, trace: DecisionTrace) -> Order:
        """
        Persist an admitted order with its decision trace.

        Raises:
            ValueError: If the order is not a fresh pending order or the
                trace belongs to a different order.
            BackendUnavailableError: If the store write fails; nothing is
                persisted in that case.
        """
        if order.status != OrderStatus.PROCUREMENT_PENDING or order.version != 0:
            raise ValueError(
                f"Order '{order.order_id}' must be a new PROCUREMENT_PENDING order."
            )
        if trace.order_id != order.order_id:
            raise ValueError(
                f"Trace '{trace.trace_id}' belongs to order {trace.order_id!r}, "
                f"not '{order.order_id}'."
            )
        await self._backend("order_store.create_order", self._store.create_order(order, trace))
        logger.info(
            "order_created",
            extra={
                "order_id": order.order_id,
                "policy_id": order.policy_id,
                "authorized_amount": order.payment.authorized_amount,
                "capture_deadline": order.payment.capture_deadline.isoformat(),
            },
        )
        await self._emit(ORDER_CREATED, _event_payload(order, trace_id=trace.trace_id))
        return order

    async def read(self, order_id: str, now: datetime | None = None) -> Order:
        """
        Read an order with expiry and time-left applied as of ``now``.

        Raises:
            OrderNotFoundError: If the order does not exist.
        """
        return effective_order(await self._load(order_id), now)

    async def read_trace(self, order_id: str) -> DecisionTrace:
        """Return the decision trace persisted with ``order_id``."""
        trace = await self._backend(
            "order_store.read_trace", self._store.read_trace(order_id)
        )
        if trace is None:
            raise OrderNotFoundError(order_id)
        return trace

    async def approve(
        self,
        order_id: str,
        now: datetime | None = None,
        actor: str = "admin",
    ) -> Order:
        """
        Capture payment and release the order to procurement.

        Capture is requested exactly once per call; the machine never
        retries it.

        Raises:
            InvalidTransitionError: If the order is not pending, including
                when it has just expired (the expiry is persisted first).
            ConsentBlockedError: If the order's consent risk is RED.
            PaymentCaptureFailure: If the gateway refused or failed. The
                order stays pending with its authorization intact and the
                failed attempt recorded on ``payment``.
            ConcurrentTransitionConflict: If another actor changed the order
                while capture was in flight. A successful capture is
                cancelled before this is raised.
        """
        current = as_utc(now)
        order = await self._load(order_id)

        if order.is_expired(current):
            await self._expire_stored(order, current)
            self._refuse(AuditEvent.APPROVE, order, "expired")
            raise InvalidTransitionError(order_id, OrderStatus.VOIDED.value, "approve")
        if order.status != OrderStatus.PROCUREMENT_PENDING:
            self._refuse(AuditEvent.APPROVE, order, "invalid_status")
            raise InvalidTransitionError(order_id, order.status.value, "approve")
        if order.risks.consent == RiskLevel.RED:
            self._refuse(AuditEvent.APPROVE, order, "consent.missing")
            raise ConsentBlockedError(order_id)

        request = CaptureRequest(
            order_id=order_id,
            amount=order.payment.authorized_amount,
            description=", ".join(f"{item.sku} x{item.qty}" for item in order.items),
        )
        try:
            result = await self._backend(
                "payment.request_capture", self._payment.request_capture(request)
            )
        except BackendUnavailableError as exc:
            await self._record_capture_failure(order, exc.message, current, actor)
            raise PaymentCaptureFailure(order_id, exc.message) from exc

        if not result.success:
            await self._record_capture_failure(order, result.error_message, current, actor)
            raise PaymentCaptureFailure(order_id, result.error_message)

        approved = self._transition(
            order,
            OrderStatus.PROCUREMENT_SENT,
            actor=actor,
            at=current,
            payment_update={
                "status": PaymentStatus.CAPTURED,
                "reference_id": result.reference_id,
                "capture_attempts": order.payment.capture_attempts + 1,
                "last_error": None,
            },
        )
        if not await self._try_write(approved, order):
            await self._compensate_capture(order_id, result.reference_id)
            self._refuse(AuditEvent.APPROVE, order, "concurrent_transition")
            raise ConcurrentTransitionConflict(order_id, order.status.value, order.version)

        logger.info(
            "order_approved",
            extra={"order_id": order_id, "reference_id": result.reference_id, "actor": actor},
        )
        self._audit.log(
            AuditEvent.APPROVE,
            AuditOutcome.APPLIED,
            order_id=order_id,
            policy_id=order.policy_id,
            detail=f"captured {order.payment.authorized_amount:g}",
        )
        await self._emit(ORDER_APPROVED, _event_payload(approved, reference_id=result.reference_id))
        return approved

    async def reject(
        self,
        order_id: str,
        reason: str = "",
        now: datetime | None = None,
        actor: str = "admin",
    ) -> Order:
        """
        Void an order at any point before shipment.

        A payment that was already captured is cancelled through the payment
        collaborator before the order is voided.

        Raises:
            InvalidTransitionError: If the order is terminal or shipped.
            PaymentCancelFailure: If a captured payment could not be
                cancelled. The order is left unchanged.
            ConcurrentTransitionConflict: If the order changed concurrently.
        """
        current = as_utc(now)
        order = await self._load(order_id)

        if order.status.is_terminal() or not order.status.is_pre_shipment():
            self._refuse(AuditEvent.REJECT, order, "invalid_status")
            raise InvalidTransitionError(order_id, order.status.value, "reject")

        if order.payment.status == PaymentStatus.CAPTURED:
            await self._cancel_captured(order, reason or "rejected by administrator")

        voided = self._transition(
            order,
            OrderStatus.VOIDED,
            actor=actor,
            at=current,
            note=reason or None,
            payment_update={"status": PaymentStatus.VOIDED},
        )
        await self._write(voided, order, AuditEvent.REJECT)

        logger.info("order_rejected", extra={"order_id": order_id, "actor": actor, "reason": reason})
        self._audit.log(
            AuditEvent.REJECT,
            AuditOutcome.APPLIED,
            order_id=order_id,
            policy_id=order.policy_id,
            detail=reason,
        )
        await self._emit(ORDER_REJECTED, _event_payload(voided, reason=reason))
        return voided

    async def expire(self, order_id: str, now: datetime | None = None) -> Order:
        """
        Void a single pending order whose capture deadline has passed.

        Raises:
            InvalidTransitionError: If the order is not pending or its
                deadline has not passed yet.
            ConcurrentTransitionConflict: If the order changed concurrently.
        """
        current = as_utc(now)
        order = await self._load(order_id)
        if not order.is_expired(current):
            self._refuse(AuditEvent.EXPIRE, order, "not_expired")
            raise InvalidTransitionError(order_id, order.status.value, "expire")
        expired = self._transition(
            order,
            OrderStatus.VOIDED,
            actor=SYSTEM_ACTOR,
            at=current,
            note="capture deadline passed",
            payment_update={"status": PaymentStatus.VOIDED},
        )
        await self._write(expired, order, AuditEvent.EXPIRE)
        await self._after_expiry(order, expired)
        return expired

    async def sweep_expired(self, now: datetime | None = None) -> list[str]:
        """
        Make stored status catch up with every lapsed authorization hold.

        Safe to call from any scheduler at any frequency: orders that are
        already voided are not pending and are skipped without events, and
        an order another actor wins the race for is skipped.

        Returns:
            IDs of the orders this sweep voided.
        """
        current = as_utc(now)
        pending = await self._backend(
            "order_store.list_orders",
            self._store.list_orders(OrderStatus.PROCUREMENT_PENDING),
        )
        expired_ids: list[str] = []
        for order in pending:
            if not order.is_expired(current):
                continue
            expired = await self._expire_stored(order, current)
            if expired is not None:
                expired_ids.append(order.order_id)
        if expired_ids:
            logger.info("expiry_sweep", extra={"expired": len(expired_ids), "scanned": len(pending)})
        return expired_ids

    async def mark_shipped(
        self,
        order_id: str,
        now: datetime | None = None,
        actor: str = SYSTEM_ACTOR,
    ) -> Order:
        """Move a procured order to ``SHIPPED``."""
        return await self._advance(
            order_id,
            from_status=OrderStatus.PROCUREMENT_SENT,
            to_status=OrderStatus.SHIPPED,
            event=AuditEvent.SHIP,
            event_type=ORDER_SHIPPED,
            now=now,
            actor=actor,
        )

    async def mark_delivered(
        self,
        order_id: str,
        now: datetime | None = None,
        actor: str = SYSTEM_ACTOR,
    ) -> Order:
        """Move a shipped order to the terminal ``DELIVERED`` state."""
        return await self._advance(
            order_id,
            from_status=OrderStatus.SHIPPED,
            to_status=OrderStatus.DELIVERED,
            event=AuditEvent.DELIVER,
            event_type=ORDER_DELIVERED,
            now=now,
            actor=actor,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _backend(self, operation: str, awaitable: Any) -> Any:
        return await call_backend(operation, awaitable, self._config.backend_timeout_seconds)

    async def _load(self, order_id: str) -> Order:
        order = await self._backend("order_store.read_order", self._store.read_order(order_id))
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    @staticmethod
    def _transition(
        order: Order,
        to_status: OrderStatus,
        actor: str,
        at: datetime,
        note: str | None = None,
        payment_update: dict[str, Any] | None = None,
    ) -> Order:
        update: dict[str, Any] = {"version": order.version + 1}
        if to_status != order.status:
            update["status"] = to_status
            update["history"] = order.history + (
                StatusChange(
                    from_status=order.status,
                    to_status=to_status,
                    actor=actor,
                    at=at,
                    note=note,
                ),
            )
        if payment_update:
            update["payment"] = order.payment.model_copy(update=payment_update)
        return order.model_copy(update=update)

    async def _try_write(self, updated: Order, expected: Order) -> bool:
        return await self._backend(
            "order_store.update_order",
            self._store.update_order(updated, expected.status, expected.version),
        )

    async def _write(self, updated: Order, expected: Order, event: AuditEvent) -> None:
        if not await self._try_write(updated, expected):
            self._refuse(event, expected, "concurrent_transition")
            raise ConcurrentTransitionConflict(
                expected.order_id, expected.status.value, expected.version
            )

    async def _expire_stored(self, order: Order, now: datetime) -> Order | None:
        """Void a lapsed order; return None if another actor got there first."""
        expired = self._transition(
            order,
            OrderStatus.VOIDED,
            actor=SYSTEM_ACTOR,
            at=now,
            note="capture deadline passed",
            payment_update={"status": PaymentStatus.VOIDED},
        ).model_copy(
            update={"risks": refresh_time_left(order.risks, order.payment.capture_deadline, now)}
        )
        if not await self._try_write(expired, order):
            logger.info("expiry_skipped_concurrent", extra={"order_id": order.order_id})
            return None
        await self._after_expiry(order, expired)
        return expired

    async def _after_expiry(self, order: Order, expired: Order) -> None:
        logger.info(
            "order_expired",
            extra={
                "order_id": order.order_id,
                "capture_deadline": order.payment.capture_deadline.isoformat(),
            },
        )
        self._audit.log(
            AuditEvent.EXPIRE,
            AuditOutcome.APPLIED,
            order_id=order.order_id,
            policy_id=order.policy_id,
        )
        await self._emit(ORDER_EXPIRED, _event_payload(expired))

    async def _record_capture_failure(
        self,
        order: Order,
        error_message: str | None,
        now: datetime,
        actor: str,
    ) -> None:
        failed = self._transition(
            order,
            order.status,
            actor=actor,
            at=now,
            payment_update={
                "capture_attempts": order.payment.capture_attempts + 1,
                "last_error": error_message or "capture failed",
            },
        )
        try:
            written = await self._try_write(failed, order)
        except BackendUnavailableError:
            logger.warning("capture_failure_not_recorded", exc_info=True, extra={"order_id": order.order_id})
            written = False

        logger.warning(
            "payment_capture_failed",
            extra={"order_id": order.order_id, "error": error_message, "recorded": written},
        )
        self._audit.log(
            AuditEvent.APPROVE,
            AuditOutcome.FAILED,
            order_id=order.order_id,
            policy_id=order.policy_id,
            reason_codes=("payment.capture_failed",),
            detail=error_message or "",
        )
        await self._emit(
            ORDER_CAPTURE_FAILED,
            _event_payload(failed if written else order, error=error_message),
        )

    async def _compensate_capture(self, order_id: str, reference_id: str | None) -> None:
        if reference_id is None:
            return
        request = CancelRequest(reference_id=reference_id, reason="order changed during capture")
        try:
            result = await self._backend("payment.cancel", self._payment.cancel(request))
        except BackendUnavailableError:
            logger.error(
                "capture_compensation_failed",
                exc_info=True,
                extra={"order_id": order_id, "reference_id": reference_id},
            )
            return
        if not result.success:
            logger.error(
                "capture_compensation_failed",
                extra={
                    "order_id": order_id,
                    "reference_id": reference_id,
                    "error": result.error_message,
                },
            )

    async def _cancel_captured(self, order: Order, reason: str) -> None:
        if order.payment.reference_id is None:
            self._refuse(AuditEvent.REJECT, order, "payment.cancel_failed")
            raise PaymentCancelFailure(order.order_id, "captured payment has no gateway reference")
        request = CancelRequest(reference_id=order.payment.reference_id, reason=reason)
        try:
            result = await self._backend("payment.cancel", self._payment.cancel(request))
        except BackendUnavailableError as exc:
            self._refuse(AuditEvent.REJECT, order, "payment.cancel_failed")
            raise PaymentCancelFailure(order.order_id, exc.message) from exc
        if not result.success:
            self._refuse(AuditEvent.REJECT, order, "payment.cancel_failed")
            raise PaymentCancelFailure(order.order_id, result.error_message)

    async def _advance(
        self,
        order_id: str,
        from_status: OrderStatus,
        to_status: OrderStatus,
        event: AuditEvent,
        event_type: str,
        now: datetime | None,
        actor: str,
    ) -> Order:
        current = as_utc(now)
        order = await self._load(order_id)
        if order.status != from_status:
            self._refuse(event, order, "invalid_status")
            raise InvalidTransitionError(order_id, order.status.value, event.value)
        advanced = self._transition(order, to_status, actor=actor, at=current)
        await self._write(advanced, order, event)
        logger.info("order_advanced", extra={"order_id": order_id, "status": to_status.value})
        self._audit.log(event, AuditOutcome.APPLIED, order_id=order_id, policy_id=order.policy_id)
        await self._emit(event_type, _event_payload(advanced))
        return advanced

    def _refuse(self, event: AuditEvent, order: Order, code: str) -> None:
        logger.info(
            "transition_refused",
            extra={"order_id": order.order_id, "event": event.value, "reason": code},
        )
        self._audit.log(
            event,
            AuditOutcome.REFUSED,
            order_id=order.order_id,
            policy_id=order.policy_id,
            reason_codes=(code,),
        )

    async def _emit(self, event_type: str, payload: dict[str, Any]) -> None:
        if not self._config.notifications.enabled:
            return
        await emit_safely(
            self._notifier,
            event_type,
            payload,
            self._config.notifications.timeout_seconds,
        )
