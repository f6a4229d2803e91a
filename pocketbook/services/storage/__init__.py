"""
Storage Services Package

Provides abstract interfaces and concrete implementations for ledger storage.
Ships an in-memory backend and a Google Sheets backend behind one interface.
"""

from pocketbook.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStoreInterface,
    StorageError,
)
from pocketbook.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStore,
)
from pocketbook.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStoreInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStore",
]
