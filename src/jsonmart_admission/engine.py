# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from jsonmart_admission.audit.logger import AuditLog
from jsonmart_admission.audit.record import AuditEvent, AuditOutcome
from jsonmart_admission.backend import call_backend
from jsonmart_admission.config import AdmissionConfig
from jsonmart_admission.errors import (
    AdmissionError,
    AdmissionRejectedError,
    NoCandidateError,
    PolicyParseError,
)
from jsonmart_admission.models import (
    AgentPolicy,
    ConsentFlags,
    Order,
    ProductOffer,
    RiskVector,
    parse_policy,
)
from jsonmart_admission.notify import Notifier
from jsonmart_admission.orders.machine import OrderStateMachine, new_order
from jsonmart_admission.payment import PaymentCollaborator
from jsonmart_admission.policy.evaluator import evaluate_policy
from jsonmart_admission.queue import QueueEntry, build_queue
from jsonmart_admission.risk.classifier import admission_gate, classify_risk
from jsonmart_admission.selection import search_candidates, select_candidate
from jsonmart_admission.storage.interface import CatalogStore, OrderStore
from jsonmart_admission.trace.recorder import (
    DecisionTrace,
    StepStatus,
    TraceStep,
    TraceStepType,
    record_decision,
)
from jsonmart_admission.trust.aggregator import aggregate_trust
from jsonmart_admission.types import AdmissionOutcome, OrderStatus, RiskLevel, as_utc

logger = logging.getLogger("jsonmart.admission")

__all__ = [
    "AdmissionEngine",
    "AdmissionResult",
    "aggregate_trust",
    "classify_risk",
    "evaluate_policy",
]

_AUDIT_OUTCOMES: dict[AdmissionOutcome, AuditOutcome] = {
    AdmissionOutcome.ADMITTED: AuditOutcome.ADMITTED,
    AdmissionOutcome.REJECTED: AuditOutcome.REJECTED,
    AdmissionOutcome.NO_CANDIDATE: AuditOutcome.NO_CANDIDATE,
    AdmissionOutcome.INVALID_POLICY: AuditOutcome.INVALID_POLICY,
}


class AdmissionResult(BaseModel):
    """
    The result of one admission attempt.

    Business outcomes (bad policy, nothing to buy, gate refusal) are
    returned here rather than raised; backend faults still raise.

    Attributes:
        outcome: The :class:`~jsonmart_admission.types.AdmissionOutcome`.
        admitted: True when an order was created.
        order: The created order, only when admitted.
        trace: The decision trace. None only when the policy could not be
            parsed.
        risks: The risk vector of the evaluated candidate, if one was.
        error: The typed error describing a non-admitted outcome.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    outcome: AdmissionOutcome
    order: Order | None = None
    trace: DecisionTrace | None = None
    risks: RiskVector | None = None
    error: AdmissionError | None = None

    @property
    def admitted(self) -> bool:
        return self.outcome == AdmissionOutcome.ADMITTED

    @property
    def reason_codes(self) -> tuple[str, ...]:
        return self.trace.reason_codes if self.trace is not None else ()

    def raise_for_outcome(self) -> Order:
        """
        Return the admitted order, or raise the error behind any other outcome.

        Raises:
            PolicyParseError: For ``INVALID_POLICY``.
            NoCandidateError: For ``NO_CANDIDATE``.
            AdmissionRejectedError: For ``REJECTED``.
        """
        if self.error is not None:
            raise self.error
        assert self.order is not None
        return self.order


class AdmissionEngine:
    """
    Runs the admission pipeline and fronts the order lifecycle.

    Pipeline per attempt, all sequential:

    1. Parse the agent policy (re-parsed every time).
    2. Search the catalog and policy-evaluate every candidate.
    3. Aggregate peer reviews for the selected SKU.
    4. Classify risk and apply the admission gate.
    5. On a pass, create the order together with its decision trace.

    Nothing is persisted before step 5, so an attempt cancelled earlier
    leaves no state behind.

    Example::

        engine = AdmissionEngine(
            catalog=MemoryCatalogStore(offers),
            orders=MemoryOrderStore(),
            payment=SandboxPaymentGateway(),
        )
        result = await engine.admit_order(
            {"policyId": "p-1", "maxBudget": 20000, "allowedCategories": ["CONSUMABLES"],
             "maxDeliveryDays": 3, "minSellerTrust": 80},
            consent={"thirdPartySharing": True},
        )
        if result.admitted:
            await engine.approve_order(result.order.order_id)
    """

    def __init__(
        self,
        catalog: CatalogStore,
        orders: OrderStore,
        payment: PaymentCollaborator,
        notifier: Notifier | None = None,
        config: AdmissionConfig | None = None,
    ) -> None:
        cfg = config or AdmissionConfig()
        self._config = cfg
        self._catalog = catalog
        self._orders = orders
        self.audit = AuditLog(cfg.audit)
        self.machine = OrderStateMachine(
            orders, payment, notifier=notifier, config=cfg, audit=self.audit
        )

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    async def admit_order(
        self,
        policy: AgentPolicy | Mapping[str, Any],
        sku: str | None = None,
        qty: int = 1,
        consent: ConsentFlags | Mapping[str, Any] | None = None,
        agent_id: str | None = None,
        now: datetime | None = None,
    ) -> AdmissionResult:
        """
        Decide whether an agent's purchase request becomes an order.

        Args:
            policy: The agent policy, raw (wire or attribute names) or parsed.
            sku: A specific SKU to buy. When omitted the cheapest admissible
                offer in the allowed categories is chosen.
            qty: Units to order; the authorized amount is ``price * qty``.
            consent: The agent's consent flags. Missing consent does not
                block admission, only approval.
            agent_id: The requesting agent, stored on the order.
            now: Decision time. Defaults to the current UTC time.

        Returns:
            An :class:`AdmissionResult`.

        Raises:
            ValueError: If ``qty`` is not positive.
            BackendUnavailableError: If a catalog or order store call fails
                or times out.
        """
        if qty < 1:
            raise ValueError(f"qty must be >= 1; got {qty}.")
        current = as_utc(now)
        flags = _coerce_consent(consent)

        try:
            parsed = parse_policy(policy)
        except PolicyParseError as exc:
            logger.warning("policy_invalid", extra={"fields": list(exc.fields)})
            self.audit.log(
                AuditEvent.ADMISSION,
                AuditOutcome.INVALID_POLICY,
                sku=sku,
                reason_codes=("policy.invalid",),
                detail=exc.message,
            )
            return AdmissionResult(outcome=AdmissionOutcome.INVALID_POLICY, error=exc)

        steps: list[TraceStep] = [
            TraceStep(
                type=TraceStepType.POLICY_LOAD,
                status=StepStatus.PASS,
                details=(
                    f"Policy {parsed.policy_id}: budget {parsed.max_budget:g}, "
                    f"{len(parsed.allowed_categories)} categories, "
                    f"ETA <= {parsed.max_delivery_days}d, "
                    f"seller trust >= {parsed.min_seller_trust:g}"
                ),
            )
        ]

        candidates = search_candidates(parsed, await self._fetch_offers(parsed, sku), sku)
        if not candidates:
            error = NoCandidateError(parsed.policy_id, sku)
            steps.append(
                TraceStep(
                    type=TraceStepType.CATALOG_SEARCH,
                    status=StepStatus.FAIL,
                    details=error.message,
                )
            )
            steps.append(_final_step(StepStatus.FAIL, "No candidate to evaluate."))
            trace = self._record(parsed, 0, None, (), steps, None, current)
            return self._finish(AdmissionOutcome.NO_CANDIDATE, parsed, trace, error=error)

        steps.append(
            TraceStep(
                type=TraceStepType.CATALOG_SEARCH,
                status=StepStatus.PASS,
                details=f"{len(candidates)} candidate(s) found",
                data={"skus": [offer.sku for offer in candidates]},
            )
        )

        selection = select_candidate(parsed, candidates, qty)
        assert selection.selected is not None
        offer = selection.selected.offer
        policy_result = selection.selected.result
        steps.append(
            TraceStep(
                type=TraceStepType.CANDIDATE_EVAL,
                status=StepStatus.PASS if policy_result.admissible else StepStatus.FAIL,
                details=(
                    f"{offer.sku} selected; {selection.admissible_count} of "
                    f"{len(selection.evaluations)} admissible"
                ),
                data={check.dimension: check.detail for check in policy_result.checks},
            )
        )

        reviews = await call_backend(
            "catalog.fetch_reviews",
            self._catalog.fetch_reviews(offer.sku),
            self._config.backend_timeout_seconds,
        )
        trust = aggregate_trust(reviews, offer.sku)
        if not trust.trust_verified:
            crosscheck_status = StepStatus.FAIL
        elif trust.reviews_considered == 0:
            crosscheck_status = StepStatus.WARN
        else:
            crosscheck_status = StepStatus.PASS
        steps.append(
            TraceStep(
                type=TraceStepType.A2A_CROSSCHECK,
                status=crosscheck_status,
                details=trust.reason,
                data={
                    "endorse": trust.endorse_count,
                    "warn": trust.warn_count,
                    "blocklist": trust.block_count,
                },
            )
        )

        risks = classify_risk(policy_result, trust, offer, flags, now=current)
        gate = admission_gate(risks, trust)
        steps.append(
            TraceStep(
                type=TraceStepType.RISK_ASSESS,
                status=StepStatus.PASS if gate.passed else StepStatus.FAIL,
                details=", ".join(f"{name}={level.value}" for name, level in risks)
                + ("" if gate.passed else f"; gate failed: {', '.join(gate.failures)}"),
                data={"red": risks.red_dimensions()},
            )
        )

        reason_codes = [
            *policy_result.codes(),
            trust.reason_code,
            f"stock.{offer.stock_status.value}",
            *gate.failures,
        ]

        if not gate.passed:
            violated = [
                *policy_result.violations,
                *([trust.reason_code] if not trust.trust_verified else []),
                *gate.failures,
            ]
            steps.append(_final_step(StepStatus.FAIL, f"{offer.sku} rejected by admission gate."))
            trace = self._record(
                parsed, len(selection.evaluations), offer, reason_codes, steps, None, current
            )
            return self._finish(
                AdmissionOutcome.REJECTED,
                parsed,
                trace,
                risks=risks,
                error=AdmissionRejectedError(offer.sku, dict.fromkeys(violated)),
            )

        order = new_order(
            parsed.policy_id,
            offer,
            qty,
            reason_codes,
            risks,
            flags,
            agent_id=agent_id,
            now=current,
        )
        final_status = StepStatus.PASS if risks.consent == RiskLevel.GREEN else StepStatus.WARN
        steps.append(
            _final_step(
                final_status,
                f"Order {order.order_id} created for {offer.sku} x{qty}; awaiting approval.",
            )
        )
        trace = self._record(
            parsed,
            len(selection.evaluations),
            offer,
            reason_codes,
            steps,
            order.order_id,
            current,
        )
        await self.machine.create(order, trace)
        return self._finish(
            AdmissionOutcome.ADMITTED, parsed, trace, order=order, risks=order.risks
        )

    def admit_order_sync(
        self,
        policy: AgentPolicy | Mapping[str, Any],
        sku: str | None = None,
        qty: int = 1,
        consent: ConsentFlags | Mapping[str, Any] | None = None,
        agent_id: str | None = None,
        now: datetime | None = None,
    ) -> AdmissionResult:
        """
        Synchronous wrapper for :meth:`admit_order`.

        Uses :func:`asyncio.run` when no event loop is running; inside a
        running loop (Jupyter, some web frameworks) the call runs on a new
        loop in a worker thread.
        """
        coroutine = self.admit_order(
            policy, sku=sku, qty=qty, consent=consent, agent_id=agent_id, now=now
        )
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None and loop.is_running():
            import concurrent.futures

            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
                future = executor.submit(asyncio.run, coroutine)
                return future.result()

        return asyncio.run(coroutine)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    async def approve_order(
        self, order_id: str, now: datetime | None = None, actor: str = "admin"
    ) -> Order:
        """Capture payment and release the order. See :meth:`OrderStateMachine.approve`."""
        return await self.machine.approve(order_id, now=now, actor=actor)

    async def reject_order(
        self,
        order_id: str,
        reason: str = "",
        now: datetime | None = None,
        actor: str = "admin",
    ) -> Order:
        """Void the order before shipment. See :meth:`OrderStateMachine.reject`."""
        return await self.machine.reject(order_id, reason=reason, now=now, actor=actor)

    async def sweep_expired(self, now: datetime | None = None) -> list[str]:
        return await self.machine.sweep_expired(now)

    async def mark_shipped(self, order_id: str, now: datetime | None = None) -> Order:
        return await self.machine.mark_shipped(order_id, now=now)

    async def mark_delivered(self, order_id: str, now: datetime | None = None) -> Order:
        return await self.machine.mark_delivered(order_id, now=now)

    async def read_order(self, order_id: str, now: datetime | None = None) -> Order:
        return await self.machine.read(order_id, now)

    async def read_trace(self, order_id: str) -> DecisionTrace:
        return await self.machine.read_trace(order_id)

    async def admin_queue(self, now: datetime | None = None) -> list[QueueEntry]:
        """
        Return the pending orders awaiting an administrator, most urgent first.

        Orders whose hold has lapsed but which the sweep has not voided yet
        are included and flagged ``is_expired``.
        """
        pending = await call_backend(
            "order_store.list_orders",
            self._orders.list_orders(OrderStatus.PROCUREMENT_PENDING),
            self._config.backend_timeout_seconds,
        )
        return build_queue(pending, now)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _fetch_offers(self, policy: AgentPolicy, sku: str | None) -> list[ProductOffer]:
        timeout = self._config.backend_timeout_seconds
        if sku is not None:
            return await call_backend("catalog.fetch_offers", self._catalog.fetch_offers(), timeout)
        offers: list[ProductOffer] = []
        for category in sorted(policy.allowed_categories, key=lambda item: item.value):
            offers.extend(
                await call_backend(
                    "catalog.fetch_offers", self._catalog.fetch_offers(category), timeout
                )
            )
        return offers

    def _record(
        self,
        policy: AgentPolicy,
        candidates_evaluated: int,
        selected: ProductOffer | None,
        reason_codes: list[str] | tuple[str, ...],
        steps: list[TraceStep],
        order_id: str | None,
        now: datetime,
    ) -> DecisionTrace:
        return record_decision(
            policy,
            candidates_evaluated,
            selected,
            reason_codes,
            steps=steps,
            order_id=order_id,
            config=self._config.trace,
            created_at=now,
        )

    def _finish(
        self,
        outcome: AdmissionOutcome,
        policy: AgentPolicy,
        trace: DecisionTrace,
        order: Order | None = None,
        risks: RiskVector | None = None,
        error: AdmissionError | None = None,
    ) -> AdmissionResult:
        logger.info(
            "admission_decided",
            extra={
                "outcome": outcome.value,
                "policy_id": policy.policy_id,
                "sku": trace.selected_sku,
                "order_id": trace.order_id,
                "trace_id": trace.trace_id,
            },
        )
        self.audit.log(
            AuditEvent.ADMISSION,
            _AUDIT_OUTCOMES[outcome],
            order_id=trace.order_id,
            policy_id=policy.policy_id,
            sku=trace.selected_sku,
            reason_codes=trace.reason_codes,
            detail=error.message if error is not None else "",
            extra={"trace_id": trace.trace_id},
        )
        return AdmissionResult(outcome=outcome, order=order, trace=trace, risks=risks, error=error)


def _coerce_consent(consent: ConsentFlags | Mapping[str, Any] | None) -> ConsentFlags:
    if consent is None:
        return ConsentFlags()
    if isinstance(consent, ConsentFlags):
        return consent
    return ConsentFlags.model_validate(dict(consent))


def _final_step(status: StepStatus, details: str) -> TraceStep:
    return TraceStep(type=TraceStepType.FINAL_DECISION, status=status, details=details)
