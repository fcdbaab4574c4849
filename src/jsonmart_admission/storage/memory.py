# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from __future__ import annotations

import threading
from collections.abc import Iterable

from jsonmart_admission.models import AgentReview, Order, ProductOffer
from jsonmart_admission.storage.interface import CatalogStore, OrderStore
from jsonmart_admission.trace.recorder import DecisionTrace
from jsonmart_admission.types import Category, OrderStatus


class MemoryCatalogStore(CatalogStore):
    """
    In-process catalog, suitable for sandbox runs and testing.

    Offers are keyed by SKU; adding an offer with an existing SKU replaces it.
    """

    def __init__(
        self,
        offers: Iterable[ProductOffer] = (),
        reviews: Iterable[AgentReview] = (),
    ) -> None:
        self._offers: dict[str, ProductOffer] = {}
        self._reviews: list[AgentReview] = []
        for offer in offers:
            self.add_offer(offer)
        for review in reviews:
            self.add_review(review)

    def add_offer(self, offer: ProductOffer) -> None:
        self._offers[offer.sku] = offer

    def add_review(self, review: AgentReview) -> None:
        self._reviews.append(review)

    async def fetch_offers(self, category: Category | None = None) -> list[ProductOffer]:
        return [
            offer
            for offer in self._offers.values()
            if category is None or offer.category == category
        ]

    async def fetch_reviews(self, sku: str) -> list[AgentReview]:
        return [review for review in self._reviews if review.target_sku == sku]


class MemoryOrderStore(OrderStore):
    """
    In-process order store, suitable for single-process use and testing.

    All state is lost when the process exits. Updates are compare-and-set
    under a lock, so concurrent coroutines or threads racing on one order
    see exactly one winner.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._orders: dict[str, Order] = {}
        self._traces: dict[str, DecisionTrace] = {}

    async def create_order(self, order: Order, trace: DecisionTrace) -> str:
        with self._lock:
            if order.order_id in self._orders:
                raise ValueError(f"Order '{order.order_id}' already exists.")
            self._orders[order.order_id] = order.model_copy(deep=True)
            self._traces[order.order_id] = trace.model_copy(deep=True)
        return order.order_id

    async def update_order(
        self,
        order: Order,
        expected_status: OrderStatus,
        expected_version: int,
    ) -> bool:
        if order.version != expected_version + 1:
            raise ValueError(
                f"Order '{order.order_id}' must be written at version "
                f"{expected_version + 1}; got {order.version}."
            )
        with self._lock:
            current = self._orders.get(order.order_id)
            if current is None:
                return False
            if current.status != expected_status or current.version != expected_version:
                return False
            self._orders[order.order_id] = order.model_copy(deep=True)
            return True

    async def read_order(self, order_id: str) -> Order | None:
        with self._lock:
            order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order is not None else None

    async def read_trace(self, order_id: str) -> DecisionTrace | None:
        with self._lock:
            trace = self._traces.get(order_id)
        return trace.model_copy(deep=True) if trace is not None else None

    async def list_orders(self, status: OrderStatus | None = None) -> list[Order]:
        with self._lock:
            orders = list(self._orders.values())
        return [
            order.model_copy(deep=True)
            for order in orders
            if status is None or order.status == status
        ]
