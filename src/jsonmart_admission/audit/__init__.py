# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from jsonmart_admission.audit.logger import AuditLog
from jsonmart_admission.audit.query import (
    AuditFilter,
    AuditQueryResult,
    aggregate_outcomes,
    apply_filter,
)
from jsonmart_admission.audit.record import (
    AuditEvent,
    AuditOutcome,
    AuditRecord,
    create_record,
)

__all__ = [
    "AuditLog",
    "AuditFilter",
    "AuditQueryResult",
    "AuditEvent",
    "AuditOutcome",
    "AuditRecord",
    "aggregate_outcomes",
    "apply_filter",
    "create_record",
]
