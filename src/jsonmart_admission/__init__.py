# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
jsonmart-admission: order admission and risk engine for agent purchases.

Decides whether an autonomous buyer agent's purchase request is admitted,
held for an administrator, or rejected, and owns the order lifecycle after
admission.

Quick start::

    from jsonmart_admission import (
        AdmissionEngine,
        MemoryCatalogStore,
        MemoryOrderStore,
        SandboxPaymentGateway,
    )

    engine = AdmissionEngine(MemoryCatalogStore(offers), MemoryOrderStore(), SandboxPaymentGateway())
    result = engine.admit_order_sync(policy, consent={"thirdPartySharing": True})
"""
from __future__ import annotations

from jsonmart_admission.audit import AuditFilter, AuditLog, AuditRecord, aggregate_outcomes
from jsonmart_admission.config import (
    AdmissionConfig,
    AuditConfig,
    NotificationConfig,
    TraceConfig,
)
from jsonmart_admission.engine import AdmissionEngine, AdmissionResult
from jsonmart_admission.errors import (
    AdmissionError,
    AdmissionRejectedError,
    BackendUnavailableError,
    ConcurrentTransitionConflict,
    ConfigurationError,
    ConsentBlockedError,
    InvalidTransitionError,
    NoCandidateError,
    OrderNotFoundError,
    PaymentCancelFailure,
    PaymentCaptureFailure,
    PolicyParseError,
)
from jsonmart_admission.models import (
    AgentPolicy,
    AgentReview,
    ConsentFlags,
    Order,
    OrderItem,
    PaymentHold,
    ProductOffer,
    ReviewMetrics,
    RiskVector,
    StatusChange,
    StructuredLogEntry,
    parse_policy,
)
from jsonmart_admission.notify import LoggingNotifier, Notifier, NullNotifier
from jsonmart_admission.orders import OrderStateMachine, effective_order
from jsonmart_admission.payment import PaymentCollaborator, SandboxPaymentGateway
from jsonmart_admission.policy import PolicyResult, evaluate_policy
from jsonmart_admission.queue import QueueEntry, build_queue
from jsonmart_admission.risk import GateResult, admission_gate, classify_risk
from jsonmart_admission.selection import search_candidates, select_candidate
from jsonmart_admission.storage import (
    CatalogStore,
    MemoryCatalogStore,
    MemoryOrderStore,
    OrderStore,
)
from jsonmart_admission.trace import DecisionTrace, record_decision, render_logic_trace, verify_trace
from jsonmart_admission.trust import TrustSignal, aggregate_trust
from jsonmart_admission.types import (
    CAPTURE_HOLD,
    AdmissionOutcome,
    Category,
    OrderStatus,
    PaymentStatus,
    ReviewVerdict,
    RiskLevel,
    StockStatus,
)

__version__ = "0.1.0"

__all__ = [
    # Engine
    "AdmissionEngine",
    "AdmissionResult",
    "OrderStateMachine",
    "effective_order",
    # Pure functions
    "evaluate_policy",
    "aggregate_trust",
    "classify_risk",
    "admission_gate",
    "parse_policy",
    "search_candidates",
    "select_candidate",
    "build_queue",
    "record_decision",
    "render_logic_trace",
    "verify_trace",
    "aggregate_outcomes",
    # Models
    "AgentPolicy",
    "AgentReview",
    "ConsentFlags",
    "DecisionTrace",
    "GateResult",
    "Order",
    "OrderItem",
    "PaymentHold",
    "PolicyResult",
    "ProductOffer",
    "QueueEntry",
    "ReviewMetrics",
    "RiskVector",
    "StatusChange",
    "StructuredLogEntry",
    "TrustSignal",
    "AuditFilter",
    "AuditLog",
    "AuditRecord",
    # Collaborators
    "CatalogStore",
    "OrderStore",
    "MemoryCatalogStore",
    "MemoryOrderStore",
    "PaymentCollaborator",
    "SandboxPaymentGateway",
    "Notifier",
    "LoggingNotifier",
    "NullNotifier",
    # Config
    "AdmissionConfig",
    "AuditConfig",
    "NotificationConfig",
    "TraceConfig",
    # Types
    "CAPTURE_HOLD",
    "AdmissionOutcome",
    "Category",
    "OrderStatus",
    "PaymentStatus",
    "ReviewVerdict",
    "RiskLevel",
    "StockStatus",
    # Errors
    "AdmissionError",
    "AdmissionRejectedError",
    "BackendUnavailableError",
    "ConcurrentTransitionConflict",
    "ConfigurationError",
    "ConsentBlockedError",
    "InvalidTransitionError",
    "NoCandidateError",
    "OrderNotFoundError",
    "PaymentCancelFailure",
    "PaymentCaptureFailure",
    "PolicyParseError",
]
