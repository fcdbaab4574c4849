# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Tests for risk classification, the admission gate and time-left helpers."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from jsonmart_admission.models import AgentPolicy, ConsentFlags, ProductOffer, RiskVector
from jsonmart_admission.policy.evaluator import evaluate_policy
from jsonmart_admission.risk.classifier import (
    GATE_POLICY_CODE,
    GATE_STOCK_CODE,
    GATE_TRUST_CODE,
    admission_gate,
    classify_risk,
    format_time_left,
    hours_remaining,
    refresh_time_left,
    time_left_level,
)
from jsonmart_admission.trust.aggregator import TrustSignal
from jsonmart_admission.types import RiskLevel, StockStatus

CONSENTED = ConsentFlags(third_party_sharing=True)


def _trust(verified: bool = True) -> TrustSignal:
    return TrustSignal(
        sku="SKU-TISSUE-24",
        block_count=0 if verified else 1,
        trust_verified=verified,
    )


# ---------------------------------------------------------------------------
# TestClassifyRisk
# ---------------------------------------------------------------------------


class TestClassifyRisk:
    @pytest.mark.parametrize(
        ("stock_status", "expected"),
        [
            (StockStatus.IN_STOCK, RiskLevel.GREEN),
            (StockStatus.UNKNOWN, RiskLevel.YELLOW),
            (StockStatus.OUT_OF_STOCK, RiskLevel.RED),
        ],
    )
    def test_stock_dimension(
        self,
        policy: AgentPolicy,
        make_offer: Callable[..., ProductOffer],
        stock_status: StockStatus,
        expected: RiskLevel,
    ) -> None:
        offer = make_offer(stock_status=stock_status)
        risks = classify_risk(evaluate_policy(policy, offer), _trust(), offer, CONSENTED)
        assert risks.stock == expected

    def test_over_budget_is_red_on_price_and_policy(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        offer = make_offer(price=32000)
        risks = classify_risk(evaluate_policy(policy, offer), _trust(), offer, CONSENTED)
        assert risks.price == RiskLevel.RED
        assert risks.policy == RiskLevel.RED

    def test_sla_violation_is_red_on_policy_only(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        offer = make_offer(eta_days=7)
        risks = classify_risk(evaluate_policy(policy, offer), _trust(), offer, CONSENTED)
        assert risks.price == RiskLevel.GREEN
        assert risks.policy == RiskLevel.RED

    def test_missing_consent_is_red(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        offer = make_offer()
        risks = classify_risk(evaluate_policy(policy, offer), _trust(), offer, ConsentFlags())
        assert risks.consent == RiskLevel.RED
        assert risks.red_dimensions() == ["consent"]

    def test_time_left_is_green_without_a_deadline(
        self, policy: AgentPolicy, make_offer: Callable[..., ProductOffer]
    ) -> None:
        offer = make_offer()
        risks = classify_risk(evaluate_policy(policy, offer), _trust(), offer, CONSENTED)
        assert risks.time_left == RiskLevel.GREEN

    def test_time_left_follows_the_deadline(
        self,
        policy: AgentPolicy,
        make_offer: Callable[..., ProductOffer],
        now: datetime,
    ) -> None:
        offer = make_offer()
        risks = classify_risk(
            evaluate_policy(policy, offer),
            _trust(),
            offer,
            CONSENTED,
            capture_deadline=now + timedelta(minutes=30),
            now=now,
        )
        assert risks.time_left == RiskLevel.RED


# ---------------------------------------------------------------------------
# TestTimeLeft
# ---------------------------------------------------------------------------


class TestTimeLeft:
    @pytest.mark.parametrize(
        ("remaining", "expected"),
        [
            (timedelta(hours=24), RiskLevel.GREEN),
            (timedelta(hours=1), RiskLevel.GREEN),
            (timedelta(minutes=59), RiskLevel.RED),
            (timedelta(0), RiskLevel.RED),
            (timedelta(hours=-1), RiskLevel.RED),
        ],
    )
    def test_two_state_level(
        self, now: datetime, remaining: timedelta, expected: RiskLevel
    ) -> None:
        assert time_left_level(now + remaining, now) == expected

    def test_hours_remaining_goes_negative(self, now: datetime) -> None:
        assert hours_remaining(now - timedelta(minutes=90), now) == pytest.approx(-1.5)

    def test_format_time_left(self, now: datetime) -> None:
        assert format_time_left(now + timedelta(hours=5, minutes=7, seconds=30), now) == "5h 7m"
        assert format_time_left(now + timedelta(seconds=30), now) == "0h 0m"

    def test_format_expired_only_after_deadline(self, now: datetime) -> None:
        assert format_time_left(now, now) == "0h 0m"
        assert format_time_left(now - timedelta(microseconds=1), now) == "EXPIRED"
        assert format_time_left(now - timedelta(hours=2), now) == "EXPIRED"

    def test_refresh_only_touches_time_left(self, now: datetime) -> None:
        risks = RiskVector(
            stock=RiskLevel.YELLOW,
            price=RiskLevel.GREEN,
            policy=RiskLevel.GREEN,
            consent=RiskLevel.RED,
        )
        refreshed = refresh_time_left(risks, now - timedelta(hours=1), now)
        assert refreshed.time_left == RiskLevel.RED
        assert refreshed.model_copy(update={"time_left": RiskLevel.GREEN}) == risks


# ---------------------------------------------------------------------------
# TestAdmissionGate
# ---------------------------------------------------------------------------


class TestAdmissionGate:
    def _risks(self, stock: RiskLevel = RiskLevel.GREEN, policy: RiskLevel = RiskLevel.GREEN) -> RiskVector:
        return RiskVector(
            stock=stock,
            price=RiskLevel.GREEN,
            policy=policy,
            consent=RiskLevel.RED,
        )

    def test_passes_when_every_conjunct_holds(self) -> None:
        gate = admission_gate(self._risks(), _trust())
        assert gate.passed is True
        assert gate.failures == ()

    def test_unknown_stock_does_not_block(self) -> None:
        assert admission_gate(self._risks(stock=RiskLevel.YELLOW), _trust()).passed is True

    def test_consent_is_outside_the_gate(self) -> None:
        assert self._risks().consent == RiskLevel.RED
        assert admission_gate(self._risks(), _trust()).passed is True

    def test_each_failure_is_reported_in_order(self) -> None:
        gate = admission_gate(
            self._risks(stock=RiskLevel.RED, policy=RiskLevel.RED), _trust(verified=False)
        )
        assert gate.passed is False
        assert gate.failures == (GATE_STOCK_CODE, GATE_POLICY_CODE, GATE_TRUST_CODE)

    def test_unverified_trust_alone_blocks(self) -> None:
        gate = admission_gate(self._risks(), _trust(verified=False))
        assert gate.failures == (GATE_TRUST_CODE,)
