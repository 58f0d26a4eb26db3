"""Public interface for the storage package."""
from .base import AppointmentStore, DedupLedger
from .factory import Storage, create_storage
from .memory import MemoryAppointmentStore, MemoryDedupLedger
from .sqlite import SQLiteAppointmentStore, SQLiteDatabase, SQLiteDedupLedger

__all__ = [
    "AppointmentStore",
    "DedupLedger",
    "MemoryAppointmentStore",
    "MemoryDedupLedger",
    "SQLiteAppointmentStore",
    "SQLiteDatabase",
    "SQLiteDedupLedger",
    "Storage",
    "create_storage",
]
