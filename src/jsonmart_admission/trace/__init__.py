# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from jsonmart_admission.trace.recorder import (
    DecisionTrace,
    StepStatus,
    TraceStep,
    TraceStepType,
    record_decision,
    render_logic_trace,
    verify_trace,
)

__all__ = [
    "DecisionTrace",
    "StepStatus",
    "TraceStep",
    "TraceStepType",
    "record_decision",
    "render_logic_trace",
    "verify_trace",
]
