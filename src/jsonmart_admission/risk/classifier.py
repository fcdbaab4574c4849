# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from jsonmart_admission.models import ConsentFlags, ProductOffer, RiskVector
from jsonmart_admission.policy.evaluator import PolicyResult
from jsonmart_admission.trust.aggregator import TrustSignal
from jsonmart_admission.types import CRITICAL_TIME_LEFT, RiskLevel, StockStatus, as_utc

EXPIRED_LABEL = "EXPIRED"

# Gate failure codes, reported in the order the gate evaluates them.
GATE_STOCK_CODE = "gate.stock_unavailable"
GATE_POLICY_CODE = "gate.policy_violation"
GATE_TRUST_CODE = "gate.trust_unverified"

_STOCK_LEVELS: dict[StockStatus, RiskLevel] = {
    StockStatus.IN_STOCK: RiskLevel.GREEN,
    StockStatus.UNKNOWN: RiskLevel.YELLOW,
    StockStatus.OUT_OF_STOCK: RiskLevel.RED,
}


class GateResult(BaseModel, frozen=True):
    """
    Outcome of the automatic admission gate.

    Attributes:
        passed: True when stock is not RED, policy is GREEN and trust is
            verified, all at once.
        failures: Gate failure codes for each failing conjunct.
    """

    passed: bool
    failures: tuple[str, ...] = ()


def hours_remaining(capture_deadline: datetime, now: datetime | None = None) -> float:
    """Return the hours left until ``capture_deadline`` (negative once past)."""
    current = as_utc(now)
    return (capture_deadline - current).total_seconds() / 3_600.0


def time_left_level(
    capture_deadline: datetime | None,
    now: datetime | None = None,
) -> RiskLevel:
    """
    Classify the time left on an authorization hold.

    Two-state: RED when less than one hour remains (expired included),
    GREEN otherwise. Without a deadline (no order yet) the dimension is
    GREEN.
    """
    if capture_deadline is None:
        return RiskLevel.GREEN
    current = as_utc(now)
    if capture_deadline - current < CRITICAL_TIME_LEFT:
        return RiskLevel.RED
    return RiskLevel.GREEN


def format_time_left(capture_deadline: datetime, now: datetime | None = None) -> str:
    """
    Render the remaining hold time the way the admin queue shows it.

    Returns ``'EXPIRED'`` once ``now`` is past the deadline (the same rule
    as order expiry), otherwise ``'{hours}h {minutes}m'``.
    """
    current = as_utc(now)
    if current > capture_deadline:
        return EXPIRED_LABEL
    seconds = int((capture_deadline - current).total_seconds())
    hours, rest = divmod(seconds, 3_600)
    return f"{hours}h {rest // 60}m"


def classify_risk(
    policy_result: PolicyResult,
    trust_signal: TrustSignal,
    offer: ProductOffer,
    consent: ConsentFlags,
    capture_deadline: datetime | None = None,
    now: datetime | None = None,
) -> RiskVector:
    """
    Combine the evaluation results into a per-dimension risk vector.

    ``trust_signal`` does not colour any dimension; it only feeds
    :func:`admission_gate`. It is accepted here so callers hand the full
    evaluation context to a single function.

    Args:
        policy_result: Result of :func:`~jsonmart_admission.policy.evaluate_policy`.
        trust_signal: Result of :func:`~jsonmart_admission.trust.aggregate_trust`.
        offer: The evaluated offer snapshot.
        consent: The agent's consent flags.
        capture_deadline: The order's capture deadline, once an order exists.
        now: Evaluation time. Defaults to the current UTC time.

    Returns:
        A frozen :class:`~jsonmart_admission.models.RiskVector`.
    """
    return RiskVector(
        stock=_STOCK_LEVELS[offer.stock_status],
        price=RiskLevel.GREEN if policy_result.price_ok else RiskLevel.RED,
        policy=RiskLevel.GREEN if policy_result.admissible else RiskLevel.RED,
        consent=RiskLevel.GREEN if consent.third_party_sharing else RiskLevel.RED,
        time_left=time_left_level(capture_deadline, now),
    )


def refresh_time_left(
    risks: RiskVector,
    capture_deadline: datetime,
    now: datetime | None = None,
) -> RiskVector:
    """Return ``risks`` with only the time-left dimension recomputed."""
    return risks.model_copy(
        update={"time_left": time_left_level(capture_deadline, now)}
    )


def admission_gate(risks: RiskVector, trust_signal: TrustSignal) -> GateResult:
    """
    Decide whether an order may be created without human intervention.

    Consent and time-left are deliberately outside this predicate; consent
    is enforced at approval time instead.
    """
    failures: list[str] = []
    if risks.stock == RiskLevel.RED:
        failures.append(GATE_STOCK_CODE)
    if risks.policy != RiskLevel.GREEN:
        failures.append(GATE_POLICY_CODE)
    if not trust_signal.trust_verified:
        failures.append(GATE_TRUST_CODE)
    return GateResult(passed=not failures, failures=tuple(failures))
