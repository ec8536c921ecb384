"""
Core business logic components.

This package contains the paste lifecycle components:
- Store contract and backends
- Rate limiting and purge scheduling
- Submission pipeline, retrieval and deletion
- Response assembly and operation dispatch
- Metrics collection
"""
