from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import Config
from .base import AppointmentStore, DedupLedger
from .memory import MemoryAppointmentStore, MemoryDedupLedger
from .sqlite import SQLiteAppointmentStore, SQLiteDatabase, SQLiteDedupLedger


@dataclass(slots=True)
class Storage:
    appointments: AppointmentStore
    ledger: DedupLedger
    database: Optional[SQLiteDatabase] = None

    def close(self) -> None:
        if self.database is not None:
            self.database.close()


def create_storage(config: Config) -> Storage:
    if config.storage_backend == "memory":
        return Storage(appointments=MemoryAppointmentStore(), ledger=MemoryDedupLedger())
    database = SQLiteDatabase(config.storage_path)
    return Storage(
        appointments=SQLiteAppointmentStore(database),
        ledger=SQLiteDedupLedger(database, batch_size=config.retention.batch_size),
        database=database,
    )
