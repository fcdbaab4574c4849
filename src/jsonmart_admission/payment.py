# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Payment collaborator contract.

The gateway wire protocol lives outside this library. The order state
machine only needs capture and cancel, and must treat both as slow and
fallible: a ``success=False`` result is a normal return, not an exception.
"""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class CaptureRequest(BaseModel, frozen=True):
    order_id: str
    amount: float = Field(ge=0)
    description: str = ""


class CaptureResult(BaseModel, frozen=True):
    success: bool
    reference_id: str | None = None
    error_message: str | None = None


class CancelRequest(BaseModel, frozen=True):
    reference_id: str
    reason: str = ""


class CancelResult(BaseModel, frozen=True):
    success: bool
    error_message: str | None = None


class PaymentCollaborator(ABC):
    """Capture and cancel an order's authorization hold."""

    @abstractmethod
    async def request_capture(self, request: CaptureRequest) -> CaptureResult:
        ...

    @abstractmethod
    async def cancel(self, request: CancelRequest) -> CancelResult:
        ...


class SandboxPaymentGateway(PaymentCollaborator):
    """
    Gateway stand-in for sandbox agents and tests.

    No money moves. Every request is recorded so callers can assert on it,
    and failures can be switched on to rehearse the admin error path.

    Attributes:
        captures: Every capture request received, in order.
        cancels: Every cancel request received, in order.
        fail_captures: When True, capture requests return a failure.
        fail_cancels: When True, cancel requests return a failure.
        error_message: Message returned with simulated failures.
    """

    def __init__(
        self,
        fail_captures: bool = False,
        fail_cancels: bool = False,
        error_message: str = "sandbox gateway declined the request",
    ) -> None:
        self.captures: list[CaptureRequest] = []
        self.cancels: list[CancelRequest] = []
        self.fail_captures = fail_captures
        self.fail_cancels = fail_cancels
        self.error_message = error_message

    async def request_capture(self, request: CaptureRequest) -> CaptureResult:
        self.captures.append(request)
        if self.fail_captures:
            return CaptureResult(success=False, error_message=self.error_message)
        return CaptureResult(
            success=True,
            reference_id=f"SBX-{uuid.uuid4().hex[:10].upper()}",
        )

    async def cancel(self, request: CancelRequest) -> CancelResult:
        self.cancels.append(request)
        if self.fail_cancels:
            return CancelResult(success=False, error_message=self.error_message)
        return CancelResult(success=True)
