"""Business logic layer for files app.

This package contains all business logic for stored files:
- Upload admission, content naming, atomic writes and indexing
- Owner-initiated deletes
- Expiration sweeps and their periodic scheduling

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
