# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Records exchanged with agents, stores and administrators.

Every model accepts both the camelCase wire names used by the marketplace
API (``maxBudget``, ``captureDeadline``) and the snake_case attribute names,
and dumps to JSON-compatible data with ``model_dump(mode="json", by_alias=True)``.
"""
from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from jsonmart_admission.errors import PolicyParseError
from jsonmart_admission.types import (
    Category,
    LogLevel,
    OrderStatus,
    PaymentStatus,
    ReviewVerdict,
    RiskLevel,
    StockStatus,
    as_utc,
)


class _Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


# ─── Agent policy ─────────────────────────────────────────────────────────────


class AgentPolicy(_Record):
    """
    A buyer agent's purchasing constraints for one admission run.

    Attributes:
        policy_id: Opaque identifier of the policy.
        max_budget: Maximum total price the agent may commit to.
        allowed_categories: Categories the agent may buy from.
        max_delivery_days: Longest acceptable delivery ETA in days.
        min_seller_trust: Minimum seller trust score (0-100).
    """

    policy_id: Annotated[str, Field(min_length=1)]
    max_budget: Annotated[float, Field(ge=0, allow_inf_nan=False)]
    allowed_categories: frozenset[Category]
    max_delivery_days: Annotated[int, Field(ge=0)]
    min_seller_trust: Annotated[float, Field(ge=0, le=100)]


def parse_policy(raw: AgentPolicy | Mapping[str, Any]) -> AgentPolicy:
    """
    Parse an untrusted policy payload.

    Policies are re-parsed for every admission attempt; nothing is cached.

    Args:
        raw: A mapping using either wire or attribute names, or an
            already-parsed :class:`AgentPolicy` (returned unchanged).

    Returns:
        A frozen :class:`AgentPolicy`.

    Raises:
        PolicyParseError: If a required field is missing or a value is
            malformed.
    """
    if isinstance(raw, AgentPolicy):
        return raw
    if not isinstance(raw, Mapping):
        raise PolicyParseError([], detail=f"expected a mapping, got {type(raw).__name__}")
    try:
        return AgentPolicy.model_validate(dict(raw))
    except ValidationError as exc:
        fields = [
            ".".join(str(part) for part in error["loc"]) or "<root>"
            for error in exc.errors()
        ]
        detail = "; ".join(error["msg"] for error in exc.errors())
        raise PolicyParseError(fields, detail=detail) from exc


# ─── Catalog ──────────────────────────────────────────────────────────────────


class ProductOffer(_Record):
    """
    Read-only snapshot of a product offer taken at evaluation time.

    Attributes:
        sku: Stock keeping unit.
        category: Product category.
        price: Unit price, same currency as the policy budget.
        stock_status: Availability signal from the seller.
        stock_qty: Units on hand, when the seller reports it.
        eta_days: Delivery ETA in days.
        seller_trust: Seller trust score (0-100).
        ai_readiness_score: Catalog data quality score.
        title: Display title, informational only.
    """

    sku: Annotated[str, Field(min_length=1)]
    category: Category
    price: Annotated[float, Field(ge=0)]
    stock_status: StockStatus = StockStatus.UNKNOWN
    stock_qty: Annotated[int, Field(ge=0)] | None = None
    eta_days: Annotated[int, Field(ge=0)]
    seller_trust: Annotated[float, Field(ge=0, le=100)]
    ai_readiness_score: float = 0.0
    title: str | None = None

    @classmethod
    def from_product_pack(cls, pack: Mapping[str, Any]) -> ProductOffer:
        """
        Build an offer from the nested ProductPack shape served by the catalog.

        Only the fields relevant to admission are read; everything else in
        the pack is ignored.
        """
        offer = pack.get("offer") or {}
        signals = pack.get("qualitySignals") or {}
        return cls(
            sku=pack.get("sku"),
            category=pack.get("category"),
            title=pack.get("title"),
            price=offer.get("price"),
            stock_status=offer.get("stockStatus", StockStatus.UNKNOWN),
            stock_qty=offer.get("stockQty"),
            eta_days=offer.get("etaDays"),
            seller_trust=signals.get("sellerTrust"),
            ai_readiness_score=signals.get("aiReadinessScore", 0.0),
        )


# ─── Peer reviews ─────────────────────────────────────────────────────────────


class ReviewMetrics(_Record):
    """
    Attributes:
        fulfillment_delta: Hours between promised and actual delivery.
        spec_compliance: Fraction of advertised product attributes that matched (1.0 is perfect).
        api_latency_ms: Seller API latency observed by the reviewer.
    """

    fulfillment_delta: float = 0.0
    spec_compliance: Annotated[float, Field(ge=0.0, le=1.0)] = 1.0
    api_latency_ms: Annotated[int, Field(ge=0)] = 0


class StructuredLogEntry(_Record):
    event: str
    level: LogLevel = LogLevel.INFO
    details: str = ""


class AgentReview(_Record):
    """
    A structured attestation from a peer agent after fulfillment.

    Reviews are immutable once created and are only ever read by the
    trust aggregator.
    """

    review_id: str
    target_sku: str
    reviewer_agent_id: str
    timestamp: datetime
    metrics: ReviewMetrics = Field(default_factory=ReviewMetrics)
    structured_log: tuple[StructuredLogEntry, ...] = ()
    verdict: ReviewVerdict


# ─── Risk & consent ───────────────────────────────────────────────────────────


class RiskVector(_Record):
    """Per-dimension risk levels attached to an order for human review."""

    stock: RiskLevel
    price: RiskLevel
    policy: RiskLevel
    consent: RiskLevel
    time_left: RiskLevel = RiskLevel.GREEN

    def red_dimensions(self) -> list[str]:
        """Return the names of dimensions currently at RED."""
        return [
            name
            for name, level in (
                ("stock", self.stock),
                ("price", self.price),
                ("policy", self.policy),
                ("consent", self.consent),
                ("time_left", self.time_left),
            )
            if level == RiskLevel.RED
        ]


class ConsentFlags(_Record):
    third_party_sharing: bool = False


# ─── Orders ───────────────────────────────────────────────────────────────────


class OrderItem(_Record):
    sku: str
    qty: Annotated[int, Field(gt=0)] = 1
    reason_codes: tuple[str, ...] = ()


class PaymentHold(_Record):
    """
    Payment side of an order.

    Attributes:
        status: Authorization state.
        authorized_amount: Amount reserved at admission.
        capture_deadline: UTC time after which the hold lapses.
        reference_id: Gateway reference returned by a successful capture.
        capture_attempts: Number of capture requests made so far.
        last_error: Error message from the most recent failed capture.
    """

    status: PaymentStatus = PaymentStatus.AUTHORIZED
    authorized_amount: Annotated[float, Field(ge=0)]
    capture_deadline: datetime
    reference_id: str | None = None
    capture_attempts: Annotated[int, Field(ge=0)] = 0
    last_error: str | None = None

    @field_validator("capture_deadline")
    @classmethod
    def deadline_is_aware(cls, value: datetime) -> datetime:
        return as_utc(value)


class StatusChange(_Record):
    """One entry in an order's transition history."""

    from_status: OrderStatus | None
    to_status: OrderStatus
    actor: str
    at: datetime
    note: str | None = None

    @field_validator("at")
    @classmethod
    def at_is_aware(cls, value: datetime) -> datetime:
        return as_utc(value)


class Order(_Record):
    """
    The authoritative admission record.

    Orders are never deleted; terminal orders are retained for audit.
    ``version`` increases by one on every stored write and backs the
    optimistic concurrency guard.
    """

    order_id: str = Field(
        default_factory=lambda: f"ORD-{datetime.now(tz=timezone.utc):%Y%m%d}-"
        f"{uuid.uuid4().hex[:5].upper()}"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    status: OrderStatus
    items: tuple[OrderItem, ...]
    payment: PaymentHold
    risks: RiskVector
    consent: ConsentFlags = Field(default_factory=ConsentFlags)
    policy_id: str
    agent_id: str | None = None
    version: Annotated[int, Field(ge=0)] = 0
    history: tuple[StatusChange, ...] = ()

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, value: tuple[OrderItem, ...]) -> tuple[OrderItem, ...]:
        if not value:
            raise ValueError("an order needs at least one item")
        return value

    @field_validator("created_at")
    @classmethod
    def created_at_is_aware(cls, value: datetime) -> datetime:
        return as_utc(value)

    def is_expired(self, now: datetime | None = None) -> bool:
        """
        Return True if the authorization hold has lapsed without admin action.

        Only a pending order can expire; any other status is unaffected by
        the deadline.
        """
        current = as_utc(now)
        return (
            self.status == OrderStatus.PROCUREMENT_PENDING
            and current > self.payment.capture_deadline
        )
