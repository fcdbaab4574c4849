# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from __future__ import annotations

from abc import ABC, abstractmethod

from jsonmart_admission.models import AgentReview, Order, ProductOffer
from jsonmart_admission.trace.recorder import DecisionTrace
from jsonmart_admission.types import Category, OrderStatus


class CatalogStore(ABC):
    """
    Read-only access to product offers and peer reviews.

    The admission engine never writes through this interface. Implementations
    should raise :class:`~jsonmart_admission.errors.BackendUnavailableError`
    on I/O failure.
    """

    @abstractmethod
    async def fetch_offers(self, category: Category | None = None) -> list[ProductOffer]:
        """Return current offers, optionally restricted to one category."""
        ...

    @abstractmethod
    async def fetch_reviews(self, sku: str) -> list[AgentReview]:
        """Return every peer review recorded against ``sku``."""
        ...


class OrderStore(ABC):
    """
    Persistence contract for admitted orders and their decision traces.

    Implementors may back this with Postgres, Supabase RPCs, Redis, or any
    store that can perform a conditional update. Every status change goes
    through :meth:`update_order`, which must be an atomic compare-and-set on
    ``(status, version)``; a blind overwrite breaks the single-writer
    guarantee between approval and expiry.
    """

    @abstractmethod
    async def create_order(self, order: Order, trace: DecisionTrace) -> str:
        """
        Persist a new order together with its decision trace.

        Both are written or neither is. Returns the stored order ID.
        """
        ...

    @abstractmethod
    async def update_order(
        self,
        order: Order,
        expected_status: OrderStatus,
        expected_version: int,
    ) -> bool:
        """
        Replace the stored order only if it is still at the expected state.

        Returns:
            True if the write happened, False if the stored order's status or
            version no longer matched.
        """
        ...

    @abstractmethod
    async def read_order(self, order_id: str) -> Order | None:
        ...

    @abstractmethod
    async def read_trace(self, order_id: str) -> DecisionTrace | None:
        ...

    @abstractmethod
    async def list_orders(self, status: OrderStatus | None = None) -> list[Order]:
        """Return stored orders, optionally only those at ``status``."""
        ...
