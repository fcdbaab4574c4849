# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from jsonmart_admission.policy.evaluator import (
    POLICY_CHECKS,
    PolicyCheck,
    PolicyResult,
    evaluate_policy,
)

__all__ = [
    "POLICY_CHECKS",
    "PolicyCheck",
    "PolicyResult",
    "evaluate_policy",
]
