# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from jsonmart_admission.audit.record import AuditEvent, AuditOutcome, AuditRecord
from jsonmart_admission.types import as_utc


class AuditFilter(BaseModel, frozen=True):
    """
    Filter criteria for querying audit records.

    All fields are optional. Multiple criteria are combined with AND logic.

    Attributes:
        order_id: Only include records about this order.
        policy_id: Only include records for this policy.
        event: Only include records of this event type.
        outcome: Only include records with this outcome.
        since: Only include records at or after this UTC timestamp.
        until: Only include records before this UTC timestamp.
        limit: Maximum number of records to return. 0 means no limit.
        offset: Number of records to skip before collecting results.
    """

    order_id: str | None = None
    policy_id: str | None = None
    event: AuditEvent | None = None
    outcome: AuditOutcome | None = None
    since: datetime | None = None
    until: datetime | None = None
    limit: int = 0
    offset: int = 0


class AuditQueryResult(BaseModel, frozen=True):
    """
    Attributes:
        records: The matching audit records, oldest first.
        total_matched: Matches before ``limit`` and ``offset`` were applied.
        filter_applied: The filter used.
    """

    records: list[AuditRecord]
    total_matched: int
    filter_applied: AuditFilter


def apply_filter(records: list[AuditRecord], audit_filter: AuditFilter) -> AuditQueryResult:
    """Apply an :class:`AuditFilter` to a list of records in memory."""
    matched = [record for record in records if _record_matches(record, audit_filter)]

    paginated = matched[audit_filter.offset :]
    if audit_filter.limit > 0:
        paginated = paginated[: audit_filter.limit]

    return AuditQueryResult(
        records=paginated,
        total_matched=len(matched),
        filter_applied=audit_filter,
    )


def _record_matches(record: AuditRecord, audit_filter: AuditFilter) -> bool:
    if audit_filter.order_id is not None and record.order_id != audit_filter.order_id:
        return False
    if audit_filter.policy_id is not None and record.policy_id != audit_filter.policy_id:
        return False
    if audit_filter.event is not None and record.event != audit_filter.event:
        return False
    if audit_filter.outcome is not None and record.outcome != audit_filter.outcome:
        return False
    if audit_filter.since is not None and record.timestamp < as_utc(audit_filter.since):
        return False
    if audit_filter.until is not None and record.timestamp >= as_utc(audit_filter.until):
        return False
    return True


def aggregate_outcomes(records: list[AuditRecord]) -> dict[str, Any]:
    """
    Summarise admission attempts across a list of records.

    Only ``admission`` records count; transition records are ignored.

    Returns:
        Dict with one count per admission outcome, ``'total'`` and
        ``'admission_rate'`` (fraction of attempts that created an order).
    """
    counts = {
        AuditOutcome.ADMITTED.value: 0,
        AuditOutcome.REJECTED.value: 0,
        AuditOutcome.NO_CANDIDATE.value: 0,
        AuditOutcome.INVALID_POLICY.value: 0,
    }
    total = 0
    for record in records:
        if record.event != AuditEvent.ADMISSION:
            continue
        total += 1
        if record.outcome.value in counts:
            counts[record.outcome.value] += 1

    admission_rate = counts[AuditOutcome.ADMITTED.value] / total if total > 0 else 0.0
    return {**counts, "total": total, "admission_rate": admission_rate}
