# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel

from jsonmart_admission.models import AgentReview
from jsonmart_admission.types import LogLevel, ReviewVerdict

TRUST_VERIFIED_CODE = "trust.source_reliable"
TRUST_VETOED_CODE = "trust.peer_blocklisted"


class TrustSignal(BaseModel, frozen=True):
    """
    Peer consensus for one SKU.

    Attributes:
        sku: The SKU the reviews were filtered to.
        endorse_count: Number of ENDORSE verdicts.
        warn_count: Number of WARN verdicts.
        block_count: Number of BLOCKLIST verdicts.
        trust_verified: True iff ``block_count == 0``.
        reviews_considered: Reviews that targeted ``sku``.
        mean_spec_compliance: Average spec compliance, or None without reviews.
        mean_api_latency_ms: Average API latency, or None without reviews.
        mean_fulfillment_delta: Average fulfillment delta in hours, or None.
        error_events: ERROR entries across all structured logs.
        reason_code: ``trust.source_reliable`` or ``trust.peer_blocklisted``.
        reason: Human-readable explanation.
    """

    sku: str
    endorse_count: int = 0
    warn_count: int = 0
    block_count: int = 0
    trust_verified: bool = True
    reviews_considered: int = 0
    mean_spec_compliance: float | None = None
    mean_api_latency_ms: float | None = None
    mean_fulfillment_delta: float | None = None
    error_events: int = 0
    reason_code: str = TRUST_VERIFIED_CODE
    reason: str = ""


def aggregate_trust(reviews: Iterable[AgentReview], sku: str) -> TrustSignal:
    """
    Aggregate peer-agent reviews of ``sku`` into an endorsement signal.

    A single BLOCKLIST verdict from any reviewer vetoes trust regardless of
    how many ENDORSE verdicts exist. Every reviewer counts equally; there is
    no recency or reputation weighting. Reviews for other SKUs are ignored.

    This is a pure function.

    Args:
        reviews: Any iterable of :class:`~jsonmart_admission.models.AgentReview`.
        sku: The SKU to aggregate for.

    Returns:
        A frozen :class:`TrustSignal`.
    """
    relevant = [review for review in reviews if review.target_sku == sku]

    counts = {verdict: 0 for verdict in ReviewVerdict}
    for review in relevant:
        counts[review.verdict] += 1

    block_count = counts[ReviewVerdict.BLOCKLIST]
    trust_verified = block_count == 0
    total = len(relevant)

    if total:
        mean_compliance = sum(r.metrics.spec_compliance for r in relevant) / total
        mean_latency = sum(r.metrics.api_latency_ms for r in relevant) / total
        mean_delta = sum(r.metrics.fulfillment_delta for r in relevant) / total
    else:
        mean_compliance = mean_latency = mean_delta = None

    error_events = sum(
        1
        for review in relevant
        for entry in review.structured_log
        if entry.level == LogLevel.ERROR
    )

    if trust_verified:
        reason = (
            f"SKU '{sku}': {total} peer review(s), "
            f"{counts[ReviewVerdict.ENDORSE]} endorse, no blocklist verdicts."
        )
    else:
        reason = (
            f"SKU '{sku}': {block_count} of {total} peer review(s) "
            "returned BLOCKLIST; trust vetoed."
        )

    return TrustSignal(
        sku=sku,
        endorse_count=counts[ReviewVerdict.ENDORSE],
        warn_count=counts[ReviewVerdict.WARN],
        block_count=block_count,
        trust_verified=trust_verified,
        reviews_considered=total,
        mean_spec_compliance=mean_compliance,
        mean_api_latency_ms=mean_latency,
        mean_fulfillment_delta=mean_delta,
        error_events=error_events,
        reason_code=TRUST_VERIFIED_CODE if trust_verified else TRUST_VETOED_CODE,
        reason=reason,
    )
