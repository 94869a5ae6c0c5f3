from lexistore.models.entry import Entry, EntryValidation
from lexistore.models.enums import EntryStatus, LoadSource

__all__ = [
    "Entry",
    "EntryValidation",
    "EntryStatus",
    "LoadSource",
]
