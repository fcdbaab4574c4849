# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from jsonmart_admission.orders.machine import (
    SYSTEM_ACTOR,
    OrderStateMachine,
    effective_order,
    new_order,
)

__all__ = [
    "SYSTEM_ACTOR",
    "OrderStateMachine",
    "effective_order",
    "new_order",
]
