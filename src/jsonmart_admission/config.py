# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import BaseModel, Field, ValidationError

from jsonmart_admission.errors import ConfigurationError


class TraceConfig(BaseModel, frozen=True):
    """
    Configuration for decision trace recording.

    Attributes:
        record_steps: When True, the step-by-step evaluation log is stored
            with each trace. When False, only the reason codes are kept.
        max_step_details: Maximum characters kept from each step's details
            text. Longer details are truncated.
    """

    record_steps: bool = True
    max_step_details: Annotated[int, Field(gt=0)] = 500


class AuditConfig(BaseModel, frozen=True):
    """
    Configuration for the AuditLog.

    Attributes:
        max_records: Maximum number of audit records to retain in memory.
            Oldest records are evicted when this limit is reached.
    """

    max_records: Annotated[int, Field(gt=0)] = 10_000


class NotificationConfig(BaseModel, frozen=True):
    """
    Configuration for outbound order events.

    Attributes:
        enabled: When False, no events are emitted at all.
        timeout_seconds: Upper bound on a single emit call. A slow sink is
            abandoned after this long and the failure is logged.
    """

    enabled: bool = True
    timeout_seconds: Annotated[float, Field(gt=0)] = 5.0


class AdmissionConfig(BaseModel, frozen=True):
    """
    Top-level configuration for the AdmissionEngine.

    The authorization hold window is fixed at 24 hours and is deliberately
    absent here.

    Example::

        config = AdmissionConfig(
            backend_timeout_seconds=3.0,
            trace=TraceConfig(record_steps=True),
            audit=AuditConfig(max_records=5000),
        )
        engine = AdmissionEngine(catalog, orders, payment, config=config)

    Attributes:
        backend_timeout_seconds: Timeout applied to each catalog, order store
            and payment call. Expiry surfaces as BackendUnavailableError.
        trace: Decision trace settings.
        audit: Audit log settings.
        notifications: Event emission settings.
    """

    backend_timeout_seconds: Annotated[float, Field(gt=0)] = 10.0
    trace: TraceConfig = Field(default_factory=TraceConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> AdmissionConfig:
        """
        Build a config from a plain mapping, e.g. parsed JSON.

        Raises:
            ConfigurationError: If any field fails validation.
        """
        try:
            return cls.model_validate(dict(raw))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid admission config: {exc}") from exc
