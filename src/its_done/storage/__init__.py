"""
Persistence.

- local_storage.py: SQLite-backed key/value records (one connection per call)
- state_store.py: in-memory collections, rewritten to storage after every mutation
"""
