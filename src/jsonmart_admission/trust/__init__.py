# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from jsonmart_admission.trust.aggregator import (
    TRUST_VERIFIED_CODE,
    TRUST_VETOED_CODE,
    TrustSignal,
    aggregate_trust,
)

__all__ = [
    "TRUST_VERIFIED_CODE",
    "TRUST_VETOED_CODE",
    "TrustSignal",
    "aggregate_trust",
]
