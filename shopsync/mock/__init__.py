"""
In-memory collaborators — for tests, demos and local development.

Each one has optional artificial latency and can be told to fail, so the
core's concurrency and error paths can be exercised without a backend.

    catalog = InMemoryCatalog.seeded()
    gateway = ScriptedGateway(latency=0.05)
    gateway.script(TransactionStatus.FAILED, reason="card declined")
"""

from __future__ import annotations

from shopsync.mock._collaborators import (
    DEMO_PRODUCTS,
    DEMO_METHODS,
    LookupFailed,
    InMemoryCatalog,
    InMemoryPaymentDirectory,
    CaptureCall,
    ScriptedGateway,
    InMemoryOrderStore,
)

__all__ = (
    "DEMO_PRODUCTS",
    "DEMO_METHODS",
    "LookupFailed",
    "InMemoryCatalog",
    "InMemoryPaymentDirectory",
    "CaptureCall",
    "ScriptedGateway",
    "InMemoryOrderStore",
)
