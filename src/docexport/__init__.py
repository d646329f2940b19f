"""docexport

Streams a MongoDB collection into a single JSON document on S3:
- connectors: document sources (MongoDB)
- export: serializer, buffer, upload planner, multipart coordinator, orchestrator
- exporters: object stores (S3)
- config, auth, observability
"""

__all__ = [
    "config",
    "auth",
    "connectors",
    "export",
    "exporters",
    "observability",
]
