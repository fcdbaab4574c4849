# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Explainable, replayable decision traces.

A trace is built once per admission attempt and persisted with the order
it produced. The human-readable logic trace shown on receipts is a view
re-derived from the stored reason codes, never stored separately.
"""
from __future__ import annotations

import hashlib
import json
import uuid
from collections.abc import Iterable
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from jsonmart_admission.config import TraceConfig
from jsonmart_admission.models import AgentPolicy, ProductOffer
from jsonmart_admission.types import as_utc


class TraceStepType(str, Enum):
    POLICY_LOAD = "POLICY_LOAD"
    CATALOG_SEARCH = "CATALOG_SEARCH"
    CANDIDATE_EVAL = "CANDIDATE_EVAL"
    A2A_CROSSCHECK = "A2A_CROSSCHECK"
    RISK_ASSESS = "RISK_ASSESS"
    FINAL_DECISION = "FINAL_DECISION"


class StepStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    WARN = "WARN"
    SKIP = "SKIP"


class TraceStep(BaseModel, frozen=True):
    """One stage of the admission pipeline as it was executed."""

    type: TraceStepType
    status: StepStatus
    details: str
    data: dict[str, Any] = Field(default_factory=dict)


class DecisionTrace(BaseModel, frozen=True):
    """
    Immutable record of why an order was (or was not) admitted.

    Attributes:
        trace_id: Unique identifier of the trace.
        order_id: The order this trace belongs to, once one exists.
        policy_id: The policy the candidate was evaluated against.
        candidates_evaluated: Number of offers that went through policy
            evaluation.
        selected_sku: The SKU the decision is about, or None when the
            catalog search produced nothing.
        reason_codes: Ordered, de-duplicated reason and violation codes.
        steps: Step-by-step pipeline log.
        created_at: UTC timestamp of the decision.
        digest: SHA-256 over the canonical JSON of every other field.
    """

    trace_id: str
    order_id: str | None = None
    policy_id: str
    candidates_evaluated: int
    selected_sku: str | None
    reason_codes: tuple[str, ...]
    steps: tuple[TraceStep, ...] = ()
    created_at: datetime
    digest: str


def _canonical_body(body: dict[str, Any]) -> str:
    return json.dumps(body, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def _compute_digest(body: dict[str, Any]) -> str:
    return hashlib.sha256(_canonical_body(body).encode("utf-8")).hexdigest()


def _trace_body(trace: DecisionTrace) -> dict[str, Any]:
    return trace.model_dump(mode="json", exclude={"digest"})


def record_decision(
    policy: AgentPolicy,
    candidates_evaluated: int,
    selected: ProductOffer | None,
    reason_codes: Iterable[str],
    steps: Iterable[TraceStep] = (),
    order_id: str | None = None,
    config: TraceConfig | None = None,
    created_at: datetime | None = None,
) -> DecisionTrace:
    """
    Construct a :class:`DecisionTrace`.

    Reason codes keep their first-seen order; duplicates are dropped.

    Args:
        policy: The policy that governed the decision.
        candidates_evaluated: How many offers were policy-evaluated.
        selected: The offer the decision is about, if any.
        reason_codes: Codes collected during evaluation, in order.
        steps: Optional pipeline steps to keep with the trace.
        order_id: The created order, when the decision admitted one.
        config: Optional :class:`~jsonmart_admission.config.TraceConfig`.
        created_at: Decision time. Defaults to the current UTC time.

    Returns:
        A frozen :class:`DecisionTrace` with its digest populated.
    """
    cfg = config or TraceConfig()
    if candidates_evaluated < 0:
        raise ValueError(f"candidates_evaluated must be >= 0; got {candidates_evaluated}.")

    kept_steps: tuple[TraceStep, ...] = ()
    if cfg.record_steps:
        kept_steps = tuple(
            step
            if len(step.details) <= cfg.max_step_details
            else step.model_copy(update={"details": step.details[: cfg.max_step_details]})
            for step in steps
        )

    trace = DecisionTrace(
        trace_id=f"DEC-{uuid.uuid4().hex[:12].upper()}",
        order_id=order_id,
        policy_id=policy.policy_id,
        candidates_evaluated=candidates_evaluated,
        selected_sku=selected.sku if selected is not None else None,
        reason_codes=tuple(dict.fromkeys(reason_codes)),
        steps=kept_steps,
        created_at=as_utc(created_at),
        digest="",
    )
    return trace.model_copy(update={"digest": _compute_digest(_trace_body(trace))})


def verify_trace(trace: DecisionTrace) -> bool:
    """Return True if ``trace.digest`` still matches the trace contents."""
    return trace.digest == _compute_digest(_trace_body(trace))


# code -> (label, verdict)
_CODE_LINES: dict[str, tuple[str, str]] = {
    "elig.category_allowed": ("Constraint: Category allowed by policy", "PASS"),
    "policy.category_not_allowed": ("Constraint: Category allowed by policy", "FAIL"),
    "elig.within_budget": ("Policy Check: Price within budget", "PASS"),
    "policy.budget_exceeded": ("Policy Check: Price within budget", "FAIL"),
    "elig.within_sla": ("Policy Check: ETA within delivery SLA", "PASS"),
    "policy.sla_exceeded": ("Policy Check: ETA within delivery SLA", "FAIL"),
    "elig.seller_trusted": ("Policy Check: Seller trust above minimum", "PASS"),
    "policy.seller_trust_too_low": ("Policy Check: Seller trust above minimum", "FAIL"),
    "trust.source_reliable": ("Peer Trust: No BLOCKLIST verdicts", "PASS"),
    "trust.peer_blocklisted": ("Peer Trust: No BLOCKLIST verdicts", "FAIL"),
    "stock.in_stock": ("Stock: In stock", "PASS"),
    "stock.unknown": ("Stock: Availability unknown", "WARN"),
    "stock.out_of_stock": ("Stock: Out of stock", "FAIL"),
    "gate.stock_unavailable": ("Admission Gate: Stock available", "FAIL"),
    "gate.policy_violation": ("Admission Gate: Policy satisfied", "FAIL"),
    "gate.trust_unverified": ("Admission Gate: Peer trust verified", "FAIL"),
}


def render_logic_trace(trace: DecisionTrace) -> list[str]:
    """
    Re-derive the human-readable logic trace from a trace's reason codes.

    Unknown codes are rendered verbatim so nothing recorded is hidden.

    Returns:
        One line per reason code followed by a selection summary line.
    """
    lines: list[str] = []
    for code in trace.reason_codes:
        label, verdict = _CODE_LINES.get(code, (f"Code: {code}", "INFO"))
        lines.append(f"{label} ({verdict})")

    if trace.selected_sku is None:
        lines.append(
            f"Selection: none among {trace.candidates_evaluated} candidate(s)."
        )
    elif trace.order_id is not None:
        lines.append(
            f"Selection: {trace.selected_sku} selected among "
            f"{trace.candidates_evaluated} candidate(s); order {trace.order_id} held "
            "for approval."
        )
    else:
        lines.append(
            f"Selection: {trace.selected_sku} evaluated among "
            f"{trace.candidates_evaluated} candidate(s); no order created."
        )
    return lines
