# Record store: typed arena + owner indexes persisted as one JSON document.

from momentum.store.record_store import PersonaSlice, RecordStore, new_id

__all__ = ["RecordStore", "PersonaSlice", "new_id"]
