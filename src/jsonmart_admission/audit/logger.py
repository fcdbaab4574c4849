# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import collections
from typing import Any

from jsonmart_admission.audit.query import AuditFilter, AuditQueryResult, apply_filter
from jsonmart_admission.audit.record import (
    AuditEvent,
    AuditOutcome,
    AuditRecord,
    create_record,
)
from jsonmart_admission.config import AuditConfig


class AuditLog:
    """
    Records admission decisions and order transitions as immutable records.

    Records live in a bounded deque; once :attr:`~AuditConfig.max_records`
    is reached the oldest record is evicted.

    Example::

        log = AuditLog(AuditConfig(max_records=1000))
        log.log(AuditEvent.ADMISSION, AuditOutcome.ADMITTED, order_id="ORD-1")
        result = log.query(AuditFilter(outcome=AuditOutcome.ADMITTED))
    """

    def __init__(self, config: AuditConfig | None = None) -> None:
        self._config = config or AuditConfig()
        self._records: collections.deque[AuditRecord] = collections.deque(
            maxlen=self._config.max_records
        )

    def log(
        self,
        event: AuditEvent,
        outcome: AuditOutcome,
        order_id: str | None = None,
        policy_id: str | None = None,
        sku: str | None = None,
        reason_codes: tuple[str, ...] | list[str] = (),
        detail: str = "",
        extra: dict[str, Any] | None = None,
    ) -> AuditRecord:
        """Record one decision or transition and return the stored record."""
        record = create_record(
            event=event,
            outcome=outcome,
            order_id=order_id,
            policy_id=policy_id,
            sku=sku,
            reason_codes=reason_codes,
            detail=detail,
            extra=extra,
        )
        self._records.append(record)
        return record

    def query(self, audit_filter: AuditFilter | None = None) -> AuditQueryResult:
        """Query stored records. Returns everything when no filter is given."""
        return apply_filter(
            records=list(self._records),
            audit_filter=audit_filter or AuditFilter(),
        )

    def count(self) -> int:
        return len(self._records)

    def clear(self) -> int:
        """Remove all records and return how many there were."""
        count = len(self._records)
        self._records.clear()
        return count

    def latest(self, n: int = 10) -> list[AuditRecord]:
        """Return the ``n`` most recent records, most recent last."""
        if n < 1:
            raise ValueError(f"n must be >= 1; got {n}.")
        return list(self._records)[-n:]
