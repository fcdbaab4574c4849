# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Tests for policy parsing, offer snapshots and the policy evaluator."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from pydantic import ValidationError

from jsonmart_admission.errors import PolicyParseError
from jsonmart_admission.models import AgentPolicy, ProductOffer, parse_policy
from jsonmart_admission.policy.evaluator import evaluate_policy
from jsonmart_admission.types import Category, StockStatus


# ---------------------------------------------------------------------------
# TestParsePolicy
# ---------------------------------------------------------------------------


class TestParsePolicy:
    def test_wire_names_are_accepted(self, policy_raw: dict[str, Any]) -> None:
        policy = parse_policy(policy_raw)
        assert policy.policy_id == "policy-consumables"
        assert policy.max_budget == 20000
        assert policy.allowed_categories == frozenset({Category.CONSUMABLES})
        assert policy.max_delivery_days == 3
        assert policy.min_seller_trust == 80

    def test_attribute_names_are_accepted(self) -> None:
        policy = parse_policy(
            {
                "policy_id": "p-2",
                "max_budget": 500.0,
                "allowed_categories": ["OFFICE", "MRO"],
                "max_delivery_days": 5,
                "min_seller_trust": 60,
            }
        )
        assert policy.allowed_categories == frozenset({Category.OFFICE, Category.MRO})

    def test_parsed_policy_is_returned_unchanged(self, policy: AgentPolicy) -> None:
        assert parse_policy(policy) is policy

    def test_missing_field_is_reported(self, policy_raw: dict[str, Any]) -> None:
        del policy_raw["maxBudget"]
        with pytest.raises(PolicyParseError) as exc_info:
            parse_policy(policy_raw)
        assert exc_info.value.fields == ("maxBudget",)
        assert exc_info.value.code == "POLICY_PARSE_ERROR"

    def test_non_numeric_budget_is_reported(self, policy_raw: dict[str, Any]) -> None:
        policy_raw["maxBudget"] = "a lot"
        with pytest.raises(PolicyParseError) as exc_info:
            parse_policy(policy_raw)
        assert "maxBudget" in exc_info.value.fields

    def test_unknown_category_is_reported(self, policy_raw: dict[str, Any]) -> None:
        policy_raw["allowedCategories"] = ["CONSUMABLES", "WEAPONS"]
        with pytest.raises(PolicyParseError) as exc_info:
            parse_policy(policy_raw)
        assert any(field.startswith("allowedCategories") for field in exc_info.value.fields)

    def test_out_of_range_trust_is_reported(self, policy_raw: dict[str, Any]) -> None:
        policy_raw["minSellerTrust"] = 101
        with pytest.raises(PolicyParseError) as exc_info:
            parse_policy(policy_raw)
        assert exc_info.value.fields == ("minSellerTrust",)

    def test_non_mapping_payload_is_rejected(self) -> None:
        with pytest.raises(PolicyParseError):
            parse_policy(["not", "a", "policy"])  # type: ignore[arg-type]

    def test_several_problems_are_all_listed(self) -> None:
        with pytest.raises(PolicyParseError) as exc_info:
            parse_policy({"policyId": "p-3"})
        assert set(exc_info.value.fields) == {
            "maxBudget",
            "allowedCategories",
            "maxDeliveryDays",
            "minSellerTrust",
        }


# ---------------------------------------------------------------------------
# TestProductOffer
# ---------------------------------------------------------------------------


class TestProductOffer:
    def test_from_product_pack_reads_nested_fields(self) -> None:
        offer = ProductOffer.from_product_pack(
            {
                "sku": "SKU-GLOVE-100",
                "category": "SAFETY",
                "title": "Nitrile gloves, box of 100",
                "offer": {"price": 12900, "stockStatus": "in_stock", "stockQty": 40, "etaDays": 1},
                "qualitySignals": {"sellerTrust": 88, "aiReadinessScore": 0.92},
                "attributes": {"size": "L"},
            }
        )
        assert offer.sku == "SKU-GLOVE-100"
        assert offer.category == Category.SAFETY
        assert offer.price == 12900
        assert offer.stock_status == StockStatus.IN_STOCK
        assert offer.stock_qty == 40
        assert offer.eta_days == 1
        assert offer.seller_trust == 88
        assert offer.ai_readiness_score == pytest.approx(0.92)

    def test_missing_stock_status_defaults_to_unknown(self) -> None:
        offer = ProductOffer.from_product_pack(
            {
                "sku": "SKU-1",
                "category": "OFFICE",
                "offer": {"price": 10, "etaDays": 2},
                "qualitySignals": {"sellerTrust": 70},
            }
        )
        assert offer.stock_status == StockStatus.UNKNOWN

    def test_offer_is_frozen(self, make_offer: Callable[..., ProductOffer]) -> None:
        offer = make_offer()
        with pytest.raises(ValidationError):
            offer.price = 1  # type: ignore[misc]


# ---------------------------------------------------------------------------
# TestEvaluatePolicy
# ---------------------------------------------------------------------------


class TestEvaluatePolicy:
    def test_in_policy_candidate_is_admissible(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        result = evaluate_policy(policy, make_offer())
        assert result.admissible is True
        assert result.violations == ()
        assert result.reason_codes == (
            "elig.category_allowed",
            "elig.within_budget",
            "elig.within_sla",
            "elig.seller_trusted",
        )

    def test_over_budget_candidate_is_not_admissible(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        result = evaluate_policy(policy, make_offer(price=32000))
        assert result.admissible is False
        assert result.violations == ("policy.budget_exceeded",)
        assert result.price_ok is False

    def test_price_equal_to_budget_passes(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        assert evaluate_policy(policy, make_offer(price=20000)).price_ok is True

    def test_budget_covers_order_total(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        offer = make_offer(price=18900)
        assert evaluate_policy(policy, offer, qty=1).price_ok is True
        result = evaluate_policy(policy, offer, qty=2)
        assert result.violations == ("policy.budget_exceeded",)
        assert result.check("budget").detail == "18900 x 2 = 37800 <= 20000"
        assert evaluate_policy(policy, make_offer(price=10000), qty=2).price_ok is True

    def test_quantity_must_be_positive(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        with pytest.raises(ValueError, match="qty"):
            evaluate_policy(policy, make_offer(), qty=0)

    def test_every_check_runs_even_after_a_failure(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        result = evaluate_policy(
            policy,
            make_offer(category=Category.OFFICE, price=99999, eta_days=10, seller_trust=10),
        )
        assert len(result.checks) == 4
        assert result.violations == (
            "policy.category_not_allowed",
            "policy.budget_exceeded",
            "policy.sla_exceeded",
            "policy.seller_trust_too_low",
        )
        assert result.reason_codes == ()

    def test_exactly_one_code_per_check_in_fixed_order(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        result = evaluate_policy(policy, make_offer(eta_days=5))
        assert [check.dimension for check in result.checks] == [
            "category",
            "budget",
            "delivery",
            "seller_trust",
        ]
        assert result.codes() == (
            "elig.category_allowed",
            "elig.within_budget",
            "policy.sla_exceeded",
            "elig.seller_trusted",
        )

    def test_check_detail_describes_comparison(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        result = evaluate_policy(policy, make_offer())
        assert result.check("budget").detail == "18900 <= 20000"

    def test_unknown_dimension_raises_key_error(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        with pytest.raises(KeyError):
            evaluate_policy(policy, make_offer()).check("colour")

    def test_evaluation_is_deterministic(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        offer = make_offer(seller_trust=79.5)
        assert evaluate_policy(policy, offer) == evaluate_policy(policy, offer)
