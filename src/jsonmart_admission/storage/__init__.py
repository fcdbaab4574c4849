# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from jsonmart_admission.storage.interface import CatalogStore, OrderStore
from jsonmart_admission.storage.memory import MemoryCatalogStore, MemoryOrderStore

__all__ = [
    "CatalogStore",
    "OrderStore",
    "MemoryCatalogStore",
    "MemoryOrderStore",
]
