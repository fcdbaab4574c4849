# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from collections.abc import Iterable


class AdmissionError(Exception):
    """Base class for all jsonmart-admission errors."""

    def __init__(self, message: str, code: str = "ADMISSION_ERROR") -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class PolicyParseError(AdmissionError):
    """
    Raised when an agent policy is missing fields or carries invalid values.

    Attributes:
        fields: Dotted names of the offending policy fields.
    """

    def __init__(self, fields: Iterable[str], detail: str | None = None) -> None:
        self.fields = tuple(fields)
        detail_text = f": {detail}" if detail else ""
        super().__init__(
            f"Agent policy is malformed (fields: {', '.join(self.fields) or '<root>'})"
            f"{detail_text}",
            code="POLICY_PARSE_ERROR",
        )


class NoCandidateError(AdmissionError):
    """Raised when no offer survives category/availability filtering."""

    def __init__(self, policy_id: str, sku: str | None = None) -> None:
        if sku is not None:
            text = f"Policy '{policy_id}': requested SKU '{sku}' is not in the catalog."
        else:
            text = (
                f"Policy '{policy_id}': no available offer in the allowed categories."
            )
        super().__init__(text, code="NO_CANDIDATE")
        self.policy_id = policy_id
        self.sku = sku


class AdmissionRejectedError(AdmissionError):
    """
    Raised when the admission gate refuses automatic order creation.

    This is a business outcome, not a system fault.

    Attributes:
        sku: The candidate that was evaluated.
        reason_codes: The violated reason codes, in evaluation order.
    """

    def __init__(self, sku: str, reason_codes: Iterable[str]) -> None:
        self.sku = sku
        self.reason_codes = tuple(reason_codes)
        super().__init__(
            f"Admission rejected for SKU '{sku}': {', '.join(self.reason_codes)}.",
            code="ADMISSION_REJECTED",
        )


class ConsentBlockedError(AdmissionError):
    """Raised when an administrator approves an order without sharing consent."""

    def __init__(self, order_id: str) -> None:
        super().__init__(
            f"Order '{order_id}' cannot be approved: third-party sharing consent "
            "is missing (consent risk is RED).",
            code="CONSENT_BLOCKED",
        )
        self.order_id = order_id


class ConcurrentTransitionConflict(AdmissionError):
    """
    Raised when a guarded write finds the order already changed by another actor.

    Callers must re-read the order and decide again; retrying the original
    intent blindly is wrong.
    """

    def __init__(
        self,
        order_id: str,
        expected_status: str,
        expected_version: int,
    ) -> None:
        super().__init__(
            f"Order '{order_id}' is no longer {expected_status} at version "
            f"{expected_version}; it was transitioned concurrently.",
            code="CONCURRENT_TRANSITION",
        )
        self.order_id = order_id
        self.expected_status = expected_status
        self.expected_version = expected_version


class PaymentCaptureFailure(AdmissionError):
    """
    Raised when the payment collaborator fails to capture an authorization.

    The order keeps its authorization so an administrator can retry or void.
    """

    def __init__(self, order_id: str, error_message: str | None = None) -> None:
        reason = error_message or "unknown error"
        super().__init__(
            f"Payment capture failed for order '{order_id}': {reason}.",
            code="PAYMENT_CAPTURE_FAILED",
        )
        self.order_id = order_id
        self.error_message = error_message


class PaymentCancelFailure(AdmissionError):
    """Raised when a captured payment could not be cancelled during rejection."""

    def __init__(self, order_id: str, error_message: str | None = None) -> None:
        reason = error_message or "unknown error"
        super().__init__(
            f"Payment cancel failed for order '{order_id}': {reason}.",
            code="PAYMENT_CANCEL_FAILED",
        )
        self.order_id = order_id
        self.error_message = error_message


class BackendUnavailableError(AdmissionError):
    """Raised when a store or collaborator call fails or times out."""

    def __init__(self, operation: str, detail: str | None = None) -> None:
        detail_text = f": {detail}" if detail else ""
        super().__init__(
            f"Backend operation '{operation}' failed{detail_text}.",
            code="BACKEND_UNAVAILABLE",
        )
        self.operation = operation
        self.detail = detail


class InvalidTransitionError(AdmissionError):
    """Raised when a transition is not allowed from the order's current status."""

    def __init__(self, order_id: str, current_status: str, action: str) -> None:
        super().__init__(
            f"Cannot {action} order '{order_id}' in status {current_status}.",
            code="INVALID_TRANSITION",
        )
        self.order_id = order_id
        self.current_status = current_status
        self.action = action


class OrderNotFoundError(AdmissionError):
    """Raised when a referenced order does not exist in the store."""

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order '{order_id}' does not exist.", code="ORDER_NOT_FOUND")
        self.order_id = order_id


class ConfigurationError(AdmissionError):
    """Raised when the engine is misconfigured."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR")
