"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Local sharded storage backend with atomic writes
- Content naming, path resolution and admission checks
- Per-name locking
- CDN cache invalidation

Keep infrastructure concerns separate from business logic.
"""
