# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from pydantic import BaseModel

from jsonmart_admission.models import AgentPolicy, ProductOffer

# Reason codes emitted by each policy check: (dimension, pass code, violation code).
CATEGORY_CHECK = ("category", "elig.category_allowed", "policy.category_not_allowed")
BUDGET_CHECK = ("budget", "elig.within_budget", "policy.budget_exceeded")
DELIVERY_CHECK = ("delivery", "elig.within_sla", "policy.sla_exceeded")
SELLER_TRUST_CHECK = (
    "seller_trust",
    "elig.seller_trusted",
    "policy.seller_trust_too_low",
)

POLICY_CHECKS = (CATEGORY_CHECK, BUDGET_CHECK, DELIVERY_CHECK, SELLER_TRUST_CHECK)


class PolicyCheck(BaseModel, frozen=True):
    """
    Outcome of one policy dimension.

    Attributes:
        dimension: Name of the checked dimension (e.g. ``'budget'``).
        passed: Whether the candidate satisfied the constraint.
        code: The reason code (on pass) or violation code (on failure).
        detail: Human-readable comparison, e.g. ``'18900 <= 20000'``.
    """

    dimension: str
    passed: bool
    code: str
    detail: str


class PolicyResult(BaseModel, frozen=True):
    """
    Result of evaluating one candidate offer against an agent policy.

    Attributes:
        sku: The evaluated offer.
        admissible: True iff no check failed.
        reason_codes: Pass codes, in check order.
        violations: Violation codes, in check order.
        checks: One :class:`PolicyCheck` per dimension, in check order.
    """

    sku: str
    admissible: bool
    reason_codes: tuple[str, ...]
    violations: tuple[str, ...]
    checks: tuple[PolicyCheck, ...]

    @property
    def price_ok(self) -> bool:
        """True when the budget check passed."""
        return self.check("budget").passed

    def check(self, dimension: str) -> PolicyCheck:
        """Return the check for ``dimension``."""
        for item in self.checks:
            if item.dimension == dimension:
                return item
        raise KeyError(dimension)

    def codes(self) -> tuple[str, ...]:
        """Return every emitted code (pass or violation) in check order."""
        return tuple(item.code for item in self.checks)


def evaluate_policy(
    policy: AgentPolicy,
    candidate: ProductOffer,
    qty: int = 1,
) -> PolicyResult:
    """
    Validate a candidate purchase against an agent's declared policy.

    All four checks always run, in the fixed order category, budget,
    delivery SLA, seller trust, so the resulting trace is complete even when
    an early check fails. This is a pure function.

    Args:
        policy: The parsed :class:`AgentPolicy`.
        candidate: The :class:`ProductOffer` under consideration.
        qty: Units requested. The budget covers the order total,
            ``candidate.price * qty``.

    Returns:
        A frozen :class:`PolicyResult`.
    """
    if qty < 1:
        raise ValueError(f"qty must be >= 1; got {qty}.")
    total = candidate.price * qty
    budget_detail = f"{total:g} <= {policy.max_budget:g}"
    if qty > 1:
        budget_detail = f"{candidate.price:g} x {qty} = {budget_detail}"

    outcomes = (
        (
            CATEGORY_CHECK,
            candidate.category in policy.allowed_categories,
            f"{candidate.category.value} in "
            f"{sorted(category.value for category in policy.allowed_categories)}",
        ),
        (
            BUDGET_CHECK,
            total <= policy.max_budget,
            budget_detail,
        ),
        (
            DELIVERY_CHECK,
            candidate.eta_days <= policy.max_delivery_days,
            f"{candidate.eta_days}d <= {policy.max_delivery_days}d",
        ),
        (
            SELLER_TRUST_CHECK,
            candidate.seller_trust >= policy.min_seller_trust,
            f"{candidate.seller_trust:g} >= {policy.min_seller_trust:g}",
        ),
    )

    checks: list[PolicyCheck] = []
    for (dimension, pass_code, fail_code), passed, detail in outcomes:
        checks.append(
            PolicyCheck(
                dimension=dimension,
                passed=passed,
                code=pass_code if passed else fail_code,
                detail=detail,
            )
        )

    reason_codes = tuple(item.code for item in checks if item.passed)
    violations = tuple(item.code for item in checks if not item.passed)

    return PolicyResult(
        sku=candidate.sku,
        admissible=not violations,
        reason_codes=reason_codes,
        violations=violations,
        checks=tuple(checks),
    )
