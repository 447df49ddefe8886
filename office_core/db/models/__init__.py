from office_core.db.models.record import StoredRecord

__all__ = [
    "StoredRecord",
]
