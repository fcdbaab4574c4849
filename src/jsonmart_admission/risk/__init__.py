# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from jsonmart_admission.risk.classifier import (
    EXPIRED_LABEL,
    GATE_POLICY_CODE,
    GATE_STOCK_CODE,
    GATE_TRUST_CODE,
    GateResult,
    admission_gate,
    classify_risk,
    format_time_left,
    hours_remaining,
    refresh_time_left,
    time_left_level,
)

__all__ = [
    "EXPIRED_LABEL",
    "GATE_POLICY_CODE",
    "GATE_STOCK_CODE",
    "GATE_TRUST_CODE",
    "GateResult",
    "admission_gate",
    "classify_risk",
    "format_time_left",
    "hours_remaining",
    "refresh_time_left",
    "time_left_level",
]
