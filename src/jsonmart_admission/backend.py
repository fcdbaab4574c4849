# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from jsonmart_admission.errors import BackendUnavailableError

T = TypeVar("T")

logger = logging.getLogger("jsonmart.admission")


async def call_backend(
    operation: str,
    awaitable: Awaitable[T],
    timeout_seconds: float,
) -> T:
    """
    Await a store or collaborator call with a timeout.

    Timeouts and OS-level I/O errors are converted to
    :class:`~jsonmart_admission.errors.BackendUnavailableError`; a
    ``BackendUnavailableError`` raised by the backend itself passes through.
    Cancellation is never intercepted.

    Args:
        operation: Name of the call, used in the error and log records.
        awaitable: The pending backend call.
        timeout_seconds: Upper bound on the call duration.

    Returns:
        Whatever the backend call returned.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout_seconds)
    except asyncio.TimeoutError as exc:
        logger.warning(
            "backend_timeout",
            extra={"operation": operation, "timeout_seconds": timeout_seconds},
        )
        raise BackendUnavailableError(
            operation, f"timed out after {timeout_seconds:g}s"
        ) from exc
    except OSError as exc:
        logger.warning(
            "backend_io_error",
            extra={"operation": operation, "error": str(exc)},
        )
        raise BackendUnavailableError(operation, str(exc)) from exc
