# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel

from jsonmart_admission.models import AgentPolicy, ProductOffer
from jsonmart_admission.policy.evaluator import PolicyResult, evaluate_policy
from jsonmart_admission.types import StockStatus


class CandidateEvaluation(BaseModel, frozen=True):
    offer: ProductOffer
    result: PolicyResult


class SelectionResult(BaseModel, frozen=True):
    """
    Outcome of evaluating a candidate set against a policy.

    Attributes:
        evaluations: Every candidate with its policy result, in input order.
        selected: The chosen evaluation. When nothing is admissible this is
            the closest miss, so a rejection can name concrete violations.
    """

    evaluations: tuple[CandidateEvaluation, ...]
    selected: CandidateEvaluation | None

    @property
    def admissible_count(self) -> int:
        return sum(1 for item in self.evaluations if item.result.admissible)


def search_candidates(
    policy: AgentPolicy,
    offers: Iterable[ProductOffer],
    sku: str | None = None,
) -> list[ProductOffer]:
    """
    Narrow the catalog to the offers worth evaluating.

    With an explicit ``sku`` the agent has already chosen, so only that offer
    is returned whatever its category or stock; the policy checks and the
    admission gate judge it. Without one, offers outside the allowed
    categories or out of stock are dropped.
    """
    if sku is not None:
        return [offer for offer in offers if offer.sku == sku]
    return [
        offer
        for offer in offers
        if offer.category in policy.allowed_categories
        and offer.stock_status != StockStatus.OUT_OF_STOCK
    ]


def _admissible_rank(item: CandidateEvaluation) -> tuple[float, float, str]:
    return (item.offer.price, -item.offer.seller_trust, item.offer.sku)


def _closest_miss_rank(item: CandidateEvaluation) -> tuple[int, float, str]:
    return (len(item.result.violations), item.offer.price, item.offer.sku)


def select_candidate(
    policy: AgentPolicy,
    candidates: Iterable[ProductOffer],
    qty: int = 1,
) -> SelectionResult:
    """
    Policy-evaluate every candidate for ``qty`` units and pick one.

    The cheapest admissible offer wins; ties go to the higher seller trust,
    then to the lower SKU so the choice is deterministic.
    """
    evaluations = tuple(
        CandidateEvaluation(offer=offer, result=evaluate_policy(policy, offer, qty))
        for offer in candidates
    )
    admissible = [item for item in evaluations if item.result.admissible]
    if admissible:
        selected = min(admissible, key=_admissible_rank)
    elif evaluations:
        selected = min(evaluations, key=_closest_miss_rank)
    else:
        selected = None
    return SelectionResult(evaluations=evaluations, selected=selected)
