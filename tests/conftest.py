# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Shared fixtures for jsonmart-admission tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from jsonmart_admission.engine import AdmissionEngine
from jsonmart_admission.models import (
    AgentPolicy,
    AgentReview,
    Order,
    ProductOffer,
    ReviewMetrics,
    StructuredLogEntry,
    parse_policy,
)
from jsonmart_admission.payment import SandboxPaymentGateway
from jsonmart_admission.storage.memory import MemoryCatalogStore, MemoryOrderStore
from jsonmart_admission.types import Category, LogLevel, ReviewVerdict, StockStatus

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def policy_raw() -> dict[str, Any]:
    """The sandbox policy shared by the admission tests, in wire form."""
    return {
        "policyId": "policy-consumables",
        "maxBudget": 20000,
        "allowedCategories": ["CONSUMABLES"],
        "maxDeliveryDays": 3,
        "minSellerTrust": 80,
    }


@pytest.fixture
def policy(policy_raw: dict[str, Any]) -> AgentPolicy:
    return parse_policy(policy_raw)


@pytest.fixture
def make_offer() -> Callable[..., ProductOffer]:
    def _make(
        sku: str = "SKU-TISSUE-24",
        price: float = 18900,
        category: Category = Category.CONSUMABLES,
        eta_days: int = 2,
        seller_trust: float = 95,
        stock_status: StockStatus = StockStatus.IN_STOCK,
    ) -> ProductOffer:
        return ProductOffer(
            sku=sku,
            category=category,
            price=price,
            eta_days=eta_days,
            seller_trust=seller_trust,
            stock_status=stock_status,
        )

    return _make


@pytest.fixture
def make_review() -> Callable[..., AgentReview]:
    counter = {"n": 0}

    def _make(
        sku: str = "SKU-TISSUE-24",
        verdict: ReviewVerdict = ReviewVerdict.ENDORSE,
        spec_compliance: float = 1.0,
        api_latency_ms: int = 120,
        fulfillment_delta: float = 0.0,
        errors: int = 0,
    ) -> AgentReview:
        counter["n"] += 1
        return AgentReview(
            review_id=f"REV-{counter['n']:03d}",
            target_sku=sku,
            reviewer_agent_id=f"agent-{counter['n']}",
            timestamp=NOW - timedelta(days=counter["n"]),
            metrics=ReviewMetrics(
                fulfillment_delta=fulfillment_delta,
                spec_compliance=spec_compliance,
                api_latency_ms=api_latency_ms,
            ),
            structured_log=tuple(
                StructuredLogEntry(event="delivery_check", level=LogLevel.ERROR, details="late")
                for _ in range(errors)
            ),
            verdict=verdict,
        )

    return _make


@pytest.fixture
def catalog(make_offer: Callable[..., ProductOffer]) -> MemoryCatalogStore:
    """Catalog holding the in-policy tissue offer only."""
    return MemoryCatalogStore(offers=[make_offer()])


@pytest.fixture
def order_store() -> MemoryOrderStore:
    return MemoryOrderStore()


@pytest.fixture
def gateway() -> SandboxPaymentGateway:
    return SandboxPaymentGateway()


@pytest.fixture
def engine(
    catalog: MemoryCatalogStore,
    order_store: MemoryOrderStore,
    gateway: SandboxPaymentGateway,
) -> AdmissionEngine:
    return AdmissionEngine(catalog, order_store, gateway)


@pytest.fixture
def admit(
    engine: AdmissionEngine, policy_raw: dict[str, Any]
) -> Callable[..., Order]:
    """Admit an order for the tissue offer and return it."""

    def _admit(consent: bool = True, now: datetime = NOW, **kwargs: Any) -> Order:
        result = asyncio.run(
            engine.admit_order(
                policy_raw,
                consent={"thirdPartySharing": consent},
                now=now,
                **kwargs,
            )
        )
        return result.raise_for_outcome()

    return _admit
