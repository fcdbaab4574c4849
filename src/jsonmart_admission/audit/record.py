# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AuditEvent(str, Enum):
    """What the audited call was."""

    ADMISSION = "admission"
    APPROVE = "approve"
    REJECT = "reject"
    EXPIRE = "expire"
    SHIP = "ship"
    DELIVER = "deliver"


class AuditOutcome(str, Enum):
    """How the audited call ended."""

    ADMITTED = "admitted"
    REJECTED = "rejected"
    NO_CANDIDATE = "no_candidate"
    INVALID_POLICY = "invalid_policy"
    APPLIED = "applied"
    REFUSED = "refused"
    FAILED = "failed"


class AuditRecord(BaseModel, frozen=True):
    """
    An immutable audit record for one admission decision or transition.

    Attributes:
        record_id: Unique UUID for this record.
        event: The audited call.
        outcome: How the call ended.
        order_id: Order affected, if any.
        policy_id: Policy evaluated, for admission records.
        sku: SKU evaluated or ordered.
        reason_codes: Reason, violation or error codes for the outcome.
        detail: Short free-text summary.
        extra: Additional key-value metadata.
        timestamp: UTC timestamp when the record was created.
    """

    record_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event: AuditEvent
    outcome: AuditOutcome
    order_id: str | None = None
    policy_id: str | None = None
    sku: str | None = None
    reason_codes: tuple[str, ...] = ()
    detail: str = ""
    extra: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))


def create_record(
    event: AuditEvent,
    outcome: AuditOutcome,
    order_id: str | None = None,
    policy_id: str | None = None,
    sku: str | None = None,
    reason_codes: tuple[str, ...] | list[str] = (),
    detail: str = "",
    extra: dict[str, Any] | None = None,
) -> AuditRecord:
    """Construct an :class:`AuditRecord` through a single consistent path."""
    return AuditRecord(
        event=event,
        outcome=outcome,
        order_id=order_id,
        policy_id=policy_id,
        sku=sku,
        reason_codes=tuple(reason_codes),
        detail=detail,
        extra=extra or {},
    )
